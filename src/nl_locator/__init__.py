"""
NL Locator - Find web page elements from natural-language descriptions.

Turns descriptions such as 'click the "Submit Now" button' or
"first login link" into exactly one visible, ready-to-use element on a
browser page, through a pluggable query backend (Playwright by default).

Example:
    >>> from nl_locator import ElementResolver, PlaywrightBackend
    >>> resolver = ElementResolver()
    >>> candidate = await resolver.locate_with_wait(PlaywrightBackend(page), "search field")
"""

__version__ = "0.1.0"

# Public API exports
from nl_locator.config.settings import Settings
from nl_locator.engine.description_normalizer import normalize, to_selector_hints
from nl_locator.engine.element_resolver import Candidate, ElementResolver, StructuredSelector
from nl_locator.engine.readiness_gate import ReadinessGate
from nl_locator.backends.playwright_backend import PlaywrightBackend

__all__ = [
    "ElementResolver",
    "ReadinessGate",
    "Candidate",
    "StructuredSelector",
    "PlaywrightBackend",
    "Settings",
    "normalize",
    "to_selector_hints",
    "__version__",
]
