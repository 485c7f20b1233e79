"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, confix.toml only contains overrides.
An empty (or missing) confix.toml is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from confix.engine.evaluator import DEFAULT_MAX_ITERATIONS

# --- confix.toml sections ---


class EvaluationConfig(BaseModel):
    """[evaluation] section."""

    model_config = {"frozen": True}

    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=2)
    strict_warnings: bool = False


class ModulesConfig(BaseModel):
    """[modules] section.

    ``paths`` are extra files or directories whose modules are always
    loaded (before the files given on the command line); relative entries
    are resolved against the directory holding confix.toml.
    """

    model_config = {"frozen": True}

    paths: list[str] = Field(default_factory=list)
    entry_points: bool = True


class ConfixConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
