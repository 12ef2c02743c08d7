"""
Interfaces module - Abstract contracts for pluggable components.
"""

from nl_locator.interfaces.backend import (
    IQueryBackend,
    IQueryHandle,
    BoundingBox,
    TextPattern,
    ELEMENT_STATES,
)

__all__ = [
    "IQueryBackend",
    "IQueryHandle",
    "BoundingBox",
    "TextPattern",
    "ELEMENT_STATES",
]
