"""
Backend Interface - Abstract base classes for DOM query backends.

This module defines the contract a browser driver must follow so the
element resolver and readiness gate can run against it. Queries are lazy:
a query returns an IQueryHandle describing a set of matches, and nothing
touches the page until the handle is counted, filtered or inspected.

Example:
    >>> from nl_locator.backends import PlaywrightBackend
    >>> backend = PlaywrightBackend(page)
    >>> handle = backend.query_by_role("button", name="Submit")
    >>> await handle.count()
    1
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Pattern, Union

# Text patterns are plain substrings or compiled (usually case-insensitive) regexes
TextPattern = Union[str, Pattern[str]]

# {"x": float, "y": float, "width": float, "height": float}
BoundingBox = Dict[str, float]

ELEMENT_STATES = ("attached", "detached", "visible", "hidden")


class IQueryHandle(ABC):
    """
    Abstract handle to the result set of one backend query.

    Matches are kept in DOM order. Positional accessors return new handles
    narrowed to a single match; they never fail, an out-of-range position
    simply yields a handle that counts zero.
    """

    @abstractmethod
    async def count(self) -> int:
        """
        Count the current matches.

        Returns:
            Number of matching nodes
        """
        ...

    @abstractmethod
    def first(self) -> "IQueryHandle":
        """Narrow to the first match."""
        ...

    @abstractmethod
    def last(self) -> "IQueryHandle":
        """Narrow to the last match."""
        ...

    @abstractmethod
    def nth(self, index: int) -> "IQueryHandle":
        """
        Narrow to the match at a zero-based position.

        Args:
            index: Zero-based position in DOM order
        """
        ...

    @abstractmethod
    async def all(self) -> List["IQueryHandle"]:
        """
        Materialize one handle per match.

        Returns:
            Handles in DOM order
        """
        ...

    @abstractmethod
    async def is_visible(self) -> bool:
        """
        Check if the (first) matched node is visible.

        Returns:
            True if the node is rendered and visible
        """
        ...

    @abstractmethod
    async def is_enabled(self) -> bool:
        """
        Check if the (first) matched node is enabled.

        Returns:
            True if the node accepts input
        """
        ...

    @abstractmethod
    async def bounding_box(self) -> Optional[BoundingBox]:
        """
        Get the node's bounding box in CSS pixels.

        Returns:
            Bounding box, or None if the node is detached or not rendered
        """
        ...

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """
        Evaluate a JavaScript function with the node as first argument.

        Args:
            expression: JavaScript function source, e.g. "el => el.tagName"
            arg: Optional serializable second argument

        Returns:
            The function's serialized return value
        """
        ...

    @abstractmethod
    async def wait_for(self, state: str = "visible", timeout: Optional[int] = None) -> None:
        """
        Wait for the node to reach a state.

        Args:
            state: One of 'attached', 'detached', 'visible', 'hidden'
            timeout: Maximum time to wait in milliseconds

        Raises:
            Exception: Backend-specific timeout error if the state is not reached
        """
        ...


class IQueryBackend(ABC):
    """
    Abstract interface for querying one live page.

    Implementations wrap a browser automation library. A backend is bound to
    a single page and is supplied per call by the orchestration layer.
    """

    # Query primitives
    @abstractmethod
    def query_by_role(self, role: str, name: Optional[TextPattern] = None) -> IQueryHandle:
        """
        Query by ARIA role, optionally filtered by accessible name.

        Args:
            role: ARIA role (button, link, textbox, ...)
            name: Optional accessible name filter
        """
        ...

    @abstractmethod
    def query_by_text(self, pattern: TextPattern, exact: bool = False) -> IQueryHandle:
        """
        Query by visible text.

        Args:
            pattern: Text or regex to match
            exact: Require a full, case-sensitive match for plain strings
        """
        ...

    @abstractmethod
    def query_by_label(self, pattern: TextPattern) -> IQueryHandle:
        """Query form controls by their associated label text."""
        ...

    @abstractmethod
    def query_by_placeholder(self, pattern: TextPattern) -> IQueryHandle:
        """Query inputs by placeholder text."""
        ...

    @abstractmethod
    def query_by_alt_text(self, pattern: TextPattern) -> IQueryHandle:
        """Query images by alt text."""
        ...

    @abstractmethod
    def query_by_title(self, text: TextPattern) -> IQueryHandle:
        """Query elements by title attribute."""
        ...

    @abstractmethod
    def query_selector(self, selector: str) -> IQueryHandle:
        """
        Query by CSS or XPath selector.

        Args:
            selector: CSS selector, or XPath starting with '/' or '//'
        """
        ...

    # Page-level operations
    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """
        Execute JavaScript in the page context.

        Args:
            expression: JavaScript expression or function to execute
            arg: Optional serializable argument

        Returns:
            The result of the JavaScript execution
        """
        ...

    @abstractmethod
    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        """
        Wait for the page to reach a load state.

        Args:
            state: 'load', 'domcontentloaded' or 'networkidle'
            timeout: Maximum time to wait in milliseconds
        """
        ...

    @abstractmethod
    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout: Optional[int] = None,
    ) -> None:
        """
        Wait for a selector to reach a state.

        Args:
            selector: CSS or XPath selector
            state: Expected element state
            timeout: Maximum time to wait in milliseconds
        """
        ...
