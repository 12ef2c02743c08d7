"""
Playwright Backend - Implementation of IQueryBackend using Playwright.

This module maps the abstract query primitives onto Playwright's async
Page and Locator API, and provides a small session helper that launches a
browser for the command line tool.
"""

from typing import Any, List, Optional
import logging

from nl_locator.interfaces.backend import (
    IQueryBackend,
    IQueryHandle,
    BoundingBox,
    TextPattern,
)
from nl_locator.exceptions.base import BackendError

logger = logging.getLogger(__name__)


class PlaywrightQueryHandle(IQueryHandle):
    """
    Playwright implementation of IQueryHandle.

    Wraps a Playwright Locator, which is already lazy and DOM-ordered.
    """

    def __init__(self, locator: Any):
        """
        Initialize the handle wrapper.

        Args:
            locator: Playwright Locator
        """
        self._locator = locator

    @property
    def locator(self) -> Any:
        """The wrapped Playwright Locator, for callers that act on the element."""
        return self._locator

    async def count(self) -> int:
        return await self._locator.count()

    def first(self) -> IQueryHandle:
        return PlaywrightQueryHandle(self._locator.first)

    def last(self) -> IQueryHandle:
        return PlaywrightQueryHandle(self._locator.last)

    def nth(self, index: int) -> IQueryHandle:
        return PlaywrightQueryHandle(self._locator.nth(index))

    async def all(self) -> List[IQueryHandle]:
        return [PlaywrightQueryHandle(loc) for loc in await self._locator.all()]

    async def is_visible(self) -> bool:
        # Locator.is_visible() is strict; narrow to the first match
        return await self._locator.first.is_visible()

    async def is_enabled(self) -> bool:
        return await self._locator.first.is_enabled()

    async def bounding_box(self) -> Optional[BoundingBox]:
        return await self._locator.first.bounding_box()

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self._locator.first.evaluate(expression, arg)

    async def wait_for(self, state: str = "visible", timeout: Optional[int] = None) -> None:
        await self._locator.first.wait_for(state=state, timeout=timeout)


class PlaywrightBackend(IQueryBackend):
    """
    Playwright implementation of IQueryBackend.

    Example:
        >>> backend = PlaywrightBackend(page)
        >>> resolver = ElementResolver()
        >>> candidate = await resolver.locate(backend, "search field")
    """

    def __init__(self, page: Any):
        """
        Initialize the backend.

        Args:
            page: Playwright Page object
        """
        self._page = page

    @property
    def page(self) -> Any:
        return self._page

    def query_by_role(self, role: str, name: Optional[TextPattern] = None) -> IQueryHandle:
        if name is None:
            return PlaywrightQueryHandle(self._page.get_by_role(role))
        return PlaywrightQueryHandle(self._page.get_by_role(role, name=name))

    def query_by_text(self, pattern: TextPattern, exact: bool = False) -> IQueryHandle:
        return PlaywrightQueryHandle(self._page.get_by_text(pattern, exact=exact))

    def query_by_label(self, pattern: TextPattern) -> IQueryHandle:
        return PlaywrightQueryHandle(self._page.get_by_label(pattern))

    def query_by_placeholder(self, pattern: TextPattern) -> IQueryHandle:
        return PlaywrightQueryHandle(self._page.get_by_placeholder(pattern))

    def query_by_alt_text(self, pattern: TextPattern) -> IQueryHandle:
        return PlaywrightQueryHandle(self._page.get_by_alt_text(pattern))

    def query_by_title(self, text: TextPattern) -> IQueryHandle:
        return PlaywrightQueryHandle(self._page.get_by_title(text))

    def query_selector(self, selector: str) -> IQueryHandle:
        # Playwright only auto-detects XPath for '//' and '..' prefixes
        if selector.startswith("/") and not selector.startswith("//"):
            selector = f"xpath={selector}"
        return PlaywrightQueryHandle(self._page.locator(selector))

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self._page.evaluate(expression, arg)

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        await self._page.wait_for_load_state(state, timeout=timeout)

    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout: Optional[int] = None,
    ) -> None:
        await self._page.wait_for_selector(selector, state=state, timeout=timeout)


class PlaywrightSession:
    """
    Launches a browser, opens one page and exposes it as a backend.

    Used by the command line tool; library callers normally wrap a page
    they already own with PlaywrightBackend.

    Example:
        >>> async with PlaywrightSession(headless=True) as session:
        ...     backend = await session.open("https://example.com")
    """

    def __init__(
        self,
        headless: bool = True,
        browser_type: str = "chromium",
        viewport_width: int = 1280,
        viewport_height: int = 720,
        timeout_ms: int = 30000,
    ):
        self._headless = headless
        self._browser_type = browser_type
        self._viewport = {"width": viewport_width, "height": viewport_height}
        self._timeout_ms = timeout_ms
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    async def __aenter__(self) -> "PlaywrightSession":
        await self.launch()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def launch(self) -> None:
        """
        Launch the browser.

        Raises:
            BackendError: If Playwright or the browser binary is unavailable
        """
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, self._browser_type, self._playwright.chromium)
            self._browser = await launcher.launch(headless=self._headless)
            self._context = await self._browser.new_context(viewport=self._viewport)

            logger.info(f"Launched {self._browser_type} browser (headless={self._headless})")

        except Exception as e:
            await self.close()
            raise BackendError(f"Failed to launch browser: {e}", {"browser_type": self._browser_type})

    async def open(self, url: str) -> PlaywrightBackend:
        """
        Open a new page at a URL.

        Args:
            url: The URL to navigate to

        Returns:
            Backend bound to the new page

        Raises:
            BackendError: If the browser is not launched or navigation fails
        """
        if not self._context:
            raise BackendError("Browser not launched. Call launch() first.")

        page = await self._context.new_page()
        try:
            await page.goto(url, timeout=self._timeout_ms)
        except Exception as e:
            raise BackendError(f"Failed to navigate to {url}: {e}", {"url": url})
        return PlaywrightBackend(page)

    async def close(self) -> None:
        """Close the browser and cleanup."""
        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.debug("Browser closed")
