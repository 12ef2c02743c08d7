"""
Utilities module - Common utility functions.
"""

from nl_locator.utils.logging import setup_logging, setup_logging_from_settings
from nl_locator.utils.deadline import Deadline, with_soft_timeout

__all__ = [
    "setup_logging",
    "setup_logging_from_settings",
    "Deadline",
    "with_soft_timeout",
]
