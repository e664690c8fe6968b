"""
Core module initialization.
Exports configuration, logging utilities and domain exceptions.
"""

from takeaway.core.config import get_settings, Settings, EnvironmentMode
from takeaway.core.exceptions import BusinessError, NotFoundError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "BusinessError", "NotFoundError"]
