"""Service layer — orchestration returning ServiceResult.

Services may import from domain, engine, infrastructure and config.
They must never import from commands or output.
"""

from confix.services.evaluate import EvaluateService
from confix.services.options import OptionsService
from confix.services.result import ServiceError, ServiceResult

__all__ = ["EvaluateService", "OptionsService", "ServiceError", "ServiceResult"]
