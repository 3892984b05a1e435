"""
Base service class.
Services contain the cost, currency and optimization business logic.
"""

from abc import ABC


class BaseService(ABC):
    """Base service class for all services."""
    pass
