"""
Backends module - DOM query backend implementations.
"""

from nl_locator.backends.playwright_backend import (
    PlaywrightBackend,
    PlaywrightQueryHandle,
    PlaywrightSession,
)

__all__ = [
    "PlaywrightBackend",
    "PlaywrightQueryHandle",
    "PlaywrightSession",
]
