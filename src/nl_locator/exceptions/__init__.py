"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout NL Locator,
providing clear error types for the different ways a lookup can fail.
"""

from nl_locator.exceptions.base import (
    NLLocatorError,
    ConfigurationError,
    BackendError,
)
from nl_locator.exceptions.locator import (
    LocatorError,
    ElementNotFoundError,
    AmbiguousMatchError,
    ReadinessTimeoutError,
    ElementNotInteractableError,
)

__all__ = [
    # Base exceptions
    "NLLocatorError",
    "ConfigurationError",
    "BackendError",
    # Resolution exceptions
    "LocatorError",
    "ElementNotFoundError",
    "AmbiguousMatchError",
    "ReadinessTimeoutError",
    "ElementNotInteractableError",
]
