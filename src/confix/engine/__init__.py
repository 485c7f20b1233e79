"""Engine layer — merge engine, fixed-point evaluator, assertion collector.

The engine depends only on the domain layer and networkx.  It performs no
I/O: modules must be fully loaded before evaluation starts, and one
evaluation run never shares mutable state with another.
"""

from confix.engine.evaluator import Evaluation, Evaluator, evaluate
from confix.engine.view import ConfigView, ResolvedConfig

__all__ = ["ConfigView", "Evaluation", "Evaluator", "ResolvedConfig", "evaluate"]
