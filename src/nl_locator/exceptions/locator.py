"""
Element resolution and readiness exceptions.
"""

from typing import Optional

from nl_locator.exceptions.base import NLLocatorError


class LocatorError(NLLocatorError):
    """Base exception for element resolution errors."""
    pass


class ElementNotFoundError(LocatorError):
    """
    Element not found on the page.

    Raised when every resolution strategy is exhausted without a visible match.
    """

    suggestion = "Try a different description or wait for the element to appear"

    def __init__(self, message: str, description: str, strategies_tried: int = 0):
        super().__init__(message, {"description": description, "strategies_tried": strategies_tried})
        self.description = description
        self.strategies_tried = strategies_tried


class AmbiguousMatchError(LocatorError):
    """
    More than one element matches the description.

    Raised when a strategy yields several matches and the description has no
    position modifier ("first", "last", "second", ...) to pick one.

    Attributes:
        count: Number of matching elements
        strategy: Name of the strategy that produced the matches
    """

    suggestion = 'Add a position modifier such as "first" or "last", or quote the exact text'

    def __init__(self, message: str, description: str, count: int, strategy: Optional[str] = None):
        super().__init__(message, {"description": description, "count": count, "strategy": strategy})
        self.description = description
        self.count = count
        self.strategy = strategy


class ReadinessTimeoutError(LocatorError):
    """
    Element did not become ready in time.

    Raised when a wait-until-ready operation exceeds its deadline without
    reaching the ready state.
    """

    suggestion = "Increase the timeout or check that the element eventually renders"

    def __init__(
        self,
        message: str,
        description: str,
        timeout_ms: int,
        attempts: int = 0,
        last_error: Optional[str] = None,
    ):
        super().__init__(message, {
            "description": description,
            "timeout_ms": timeout_ms,
            "attempts": attempts,
            "last_error": last_error,
        })
        self.description = description
        self.timeout_ms = timeout_ms
        self.attempts = attempts
        self.last_error = last_error


class ElementNotInteractableError(ReadinessTimeoutError):
    """
    Element was found but never became interactable.

    Raised when a candidate resolved and rendered but stayed disabled or
    covered by another element until the deadline.
    """

    suggestion = "Element is covered or disabled. Close overlays or wait for it to be enabled"

    def __init__(
        self,
        message: str,
        description: str,
        timeout_ms: int,
        attempts: int = 0,
        reason: Optional[str] = None,
    ):
        super().__init__(message, description, timeout_ms, attempts, last_error=reason)
        self.details["reason"] = reason
        self.reason = reason
