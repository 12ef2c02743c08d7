"""
Tests for custom exceptions.
"""

import pytest

from nl_locator.exceptions import (
    AmbiguousMatchError,
    BackendError,
    ConfigurationError,
    ElementNotFoundError,
    ElementNotInteractableError,
    LocatorError,
    NLLocatorError,
    ReadinessTimeoutError,
)


class TestNLLocatorError:
    """Test the base NLLocatorError exception."""

    def test_create_base_error(self):
        error = NLLocatorError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.details == {}

    def test_details_rendered(self):
        error = NLLocatorError("Broken", {"url": "https://example.com"})
        assert str(error) == "Broken - Details: {'url': 'https://example.com'}"

    @pytest.mark.parametrize("cls", [ConfigurationError, BackendError, LocatorError])
    def test_subclasses(self, cls):
        assert issubclass(cls, NLLocatorError)


class TestLocatorErrors:
    """Resolution and readiness errors."""

    def test_not_found(self):
        error = ElementNotFoundError("Could not find element: x", description="x", strategies_tried=16)

        assert error.description == "x"
        assert error.details["strategies_tried"] == 16
        assert error.suggestion
        assert isinstance(error, LocatorError)

    def test_ambiguous(self):
        error = AmbiguousMatchError("Found 2", description="login link", count=2, strategy="role")

        assert error.count == 2
        assert error.strategy == "role"
        assert "first" in error.suggestion

    def test_timeout(self):
        error = ReadinessTimeoutError("Timed out", description="x", timeout_ms=500, attempts=3, last_error="boom")

        assert error.timeout_ms == 500
        assert error.attempts == 3
        assert error.last_error == "boom"

    def test_not_interactable_is_a_timeout(self):
        error = ElementNotInteractableError(
            "Never interactable", description="x", timeout_ms=500, attempts=2, reason="disabled",
        )

        assert isinstance(error, ReadinessTimeoutError)
        assert error.reason == "disabled"
        assert error.details["reason"] == "disabled"
        assert error.suggestion != ReadinessTimeoutError.suggestion
