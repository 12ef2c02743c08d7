"""
Base exceptions for NL Locator.
"""


class NLLocatorError(Exception):
    """
    Base exception for all NL Locator errors.

    All custom exceptions inherit from this class, making it easy
    to catch any error from the library.

    Attributes:
        message: Human-readable error message
        details: Optional additional error details
        suggestion: Optional hint for the caller on how to recover
    """

    suggestion: str = ""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(NLLocatorError):
    """
    Error in configuration.

    Raised when there's an issue with settings, environment variables,
    or configuration files.
    """
    pass


class BackendError(NLLocatorError):
    """
    Error raised by the DOM query backend.

    Raised when the underlying browser driver cannot service a query,
    for example because the page was closed.
    """
    pass
