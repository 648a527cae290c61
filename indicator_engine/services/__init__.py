"""
Indicator Engine Services

Service layer containing the indicator, storage and chart-state logic.
"""

from indicator_engine.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
