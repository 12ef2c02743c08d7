"""
Element Resolver - Turn a description into exactly one visible element.

Resolution order:
1. Strings that look like CSS/XPath go straight to the backend selector query
2. StructuredSelector fields, in fixed priority order
3. The natural-language strategy chain from strategies.py

Each strategy runs the same sub-protocol: count the matches, skip on zero,
fail with AmbiguousMatchError on several matches unless a position modifier
picks one, then skip silently if the selected match is not visible.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union, TYPE_CHECKING
import logging
import re
import time

from nl_locator.config.settings import DynamicContentSettings, LocatorSettings
from nl_locator.engine.description_normalizer import DescriptionNormalizer, NormalizedDescription
from nl_locator.engine.readiness_gate import ReadinessGate
from nl_locator.engine.strategies import (
    STRATEGY_CHAIN,
    ResolutionContext,
    Strategy,
    css_string,
    looks_like_selector,
)
from nl_locator.exceptions.base import BackendError
from nl_locator.exceptions.locator import (
    AmbiguousMatchError,
    ElementNotFoundError,
    ReadinessTimeoutError,
)

if TYPE_CHECKING:
    from nl_locator.interfaces.backend import BoundingBox, IQueryBackend, IQueryHandle

logger = logging.getLogger(__name__)


_NTH_MODIFIER = re.compile(r"^:nth\((\d+)\)$")

ELEMENT_ATTRIBUTES_JS = """
el => ({
    tag_name: el.tagName.toLowerCase(),
    text_content: (el.textContent || '').trim().slice(0, 500),
    id: el.id || '',
    class_name: typeof el.className === 'string' ? el.className : '',
})
"""

CLICKABLE_ELEMENTS_JS = """
() => {
    const found = [];
    const quote = s => s.replace(/"/g, '\\\\"');
    document.querySelectorAll('button, [role="button"]').forEach(el => {
        const text = (el.textContent || '').trim();
        if (text) {
            found.push({text, selector: el.id ? `#${el.id}` : `button:has-text("${quote(text)}")`});
        }
    });
    document.querySelectorAll('a[href]').forEach(el => {
        const text = (el.textContent || '').trim();
        if (text) {
            found.push({text, selector: el.id ? `#${el.id}` : `a:has-text("${quote(text)}")`});
        }
    });
    document.querySelectorAll('input[type="button"], input[type="submit"]').forEach(el => {
        const text = el.value || el.placeholder || '';
        if (text) {
            found.push({text, selector: el.id ? `#${el.id}` : `input[value="${quote(text)}"]`});
        }
    });
    return found;
}
"""

FORM_ELEMENTS_JS = """
() => {
    const found = [];
    document.querySelectorAll('input, textarea, select').forEach(el => {
        const label = el.placeholder || el.getAttribute('aria-label') || el.name || el.id || '';
        if (label) {
            found.push({
                label,
                selector: el.id ? `#${el.id}` : (el.name ? `[name="${el.name}"]` : ''),
                type: el.tagName.toLowerCase(),
            });
        }
    });
    return found;
}
"""


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class Candidate:
    """
    A located element.

    Attributes:
        handle: Backend handle narrowed to the chosen node
        count: Number of matches the producing query had
        strategy: Name of the producing strategy
        description: The lookup target, as a string
    """
    handle: "IQueryHandle"
    count: int
    strategy: str
    description: str = ""


@dataclass
class StructuredSelector:
    """
    Field-based element target.

    The first non-empty field in priority order wins:
    css > xpath > id > text > role (with label as name) > label >
    placeholder > title > alt > name > class_name.
    `index` picks the nth match and suppresses the ambiguity check.
    """
    css: Optional[str] = None
    xpath: Optional[str] = None
    id: Optional[str] = None
    text: Optional[str] = None
    role: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    name: Optional[str] = None
    class_name: Optional[str] = None
    index: Optional[int] = None

    def describe(self) -> str:
        """Compact human-readable form, e.g. role=button, label=Save."""
        parts = [
            f"{key}={value}"
            for key, value in self.__dict__.items()
            if value is not None
        ]
        return ", ".join(parts) or "<empty selector>"

    def query(self, backend: "IQueryBackend") -> Optional["IQueryHandle"]:
        """Build the backend query for the highest-priority field set."""
        if self.css:
            return backend.query_selector(self.css)
        if self.xpath:
            xpath = self.xpath if self.xpath.startswith("xpath=") else f"xpath={self.xpath}"
            return backend.query_selector(xpath)
        if self.id:
            return backend.query_selector(f"#{self.id}")
        if self.text:
            return backend.query_by_text(self.text)
        if self.role:
            if self.label:
                return backend.query_by_role(self.role, name=self.label)
            return backend.query_by_role(self.role)
        if self.label:
            return backend.query_by_label(self.label)
        if self.placeholder:
            return backend.query_by_placeholder(self.placeholder)
        if self.title:
            return backend.query_by_title(self.title)
        if self.alt:
            return backend.query_by_alt_text(self.alt)
        if self.name:
            return backend.query_selector(f'[name="{css_string(self.name)}"]')
        if self.class_name:
            return backend.query_selector(f".{self.class_name}")
        return None


Target = Union[str, StructuredSelector]


@dataclass
class ElementInfo:
    """
    Snapshot of an element's state.

    Attributes:
        found: Whether the handle still matches a node
        visible: Visibility at snapshot time
        enabled: Enabled state at snapshot time
        bounding_box: x/y/width/height, or None when not rendered
        attributes: tag_name, text_content, id, class_name
    """
    found: bool
    visible: bool = False
    enabled: bool = False
    bounding_box: Optional["BoundingBox"] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "visible": self.visible,
            "enabled": self.enabled,
            "bounding_box": self.bounding_box,
            "attributes": dict(self.attributes),
        }


@dataclass
class ClickableElement:
    """A clickable element found by a page scan."""
    text: str
    selector: str


@dataclass
class FormElement:
    """A form field found by a page scan."""
    label: str
    selector: str
    type: str


def apply_position(handle: "IQueryHandle", modifiers: Sequence[str]) -> "IQueryHandle":
    """
    Narrow a multi-match handle with the first index-like modifier.

    Modifiers without an index meaning (e.g. [position="left"]) fall
    through to the first match.
    """
    for modifier in modifiers:
        if modifier == ":first":
            return handle.first()
        if modifier == ":last":
            return handle.last()
        match = _NTH_MODIFIER.match(modifier)
        if match:
            return handle.nth(int(match.group(1)))
    return handle.first()


# =============================================================================
# RESOLVER
# =============================================================================

class ElementResolver:
    """
    Locates elements from natural-language descriptions, selectors or
    StructuredSelector targets.

    Stateless between calls: every locate() queries the backend afresh.

    Usage:
        resolver = ElementResolver()
        candidate = await resolver.locate(backend, 'click the "Submit Now" button')
        ready = await resolver.locate_with_wait(backend, "first login link")
    """

    def __init__(
        self,
        settings: Optional[LocatorSettings] = None,
        normalizer: Optional[DescriptionNormalizer] = None,
        gate: Optional[ReadinessGate] = None,
        strategies: Sequence[Strategy] = STRATEGY_CHAIN,
        dynamic_settings: Optional[DynamicContentSettings] = None,
    ):
        """
        Initialize the resolver.

        Args:
            settings: Locator settings (defaults used if None)
            normalizer: Description normalizer
            gate: Readiness gate for the waiting operations
            strategies: Ordered strategy chain
            dynamic_settings: Settings for wait_for_dynamic_content
        """
        self._settings = settings or LocatorSettings()
        self._normalizer = normalizer or DescriptionNormalizer()
        self._gate = gate or ReadinessGate(self._settings, dynamic_settings)
        self._strategies = tuple(strategies)

    @property
    def gate(self) -> ReadinessGate:
        return self._gate

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def locate(self, backend: "IQueryBackend", target: Target) -> Candidate:
        """
        Resolve a target to exactly one visible element.

        Args:
            backend: Page backend
            target: Description, CSS/XPath selector, or StructuredSelector

        Returns:
            The located candidate

        Raises:
            AmbiguousMatchError: A strategy matched several elements and the
                target has no position modifier
            ElementNotFoundError: No strategy produced a visible match
        """
        start = time.time()
        context, strategies = self._plan(backend, target)

        for strategy in strategies:
            candidate = await self._run_strategy(backend, strategy, context)
            if candidate:
                duration = (time.time() - start) * 1000
                logger.info(
                    f"{strategy.name.upper()} resolved '{context.description}' "
                    f"({candidate.count} match(es), {duration:.0f}ms)"
                )
                return candidate

        raise ElementNotFoundError(
            f"Could not find element: {context.description}",
            description=context.description,
            strategies_tried=len(strategies),
        )

    async def locate_all(self, backend: "IQueryBackend", target: Target) -> List[Candidate]:
        """
        Return every match of the first strategy that matches anything.

        No ambiguity or visibility filtering is applied.

        Returns:
            Candidates in DOM order, or an empty list
        """
        context, strategies = self._plan(backend, target)

        for strategy in strategies:
            handle = await self._query(backend, strategy, context)
            if handle is None:
                continue
            count = await self._count(handle, strategy)
            if count == 0:
                continue

            if isinstance(target, StructuredSelector) and target.index is not None:
                handles = [handle.nth(target.index)]
            else:
                handles = await handle.all()
            logger.info(f"{strategy.name.upper()} matched {count} element(s) for '{context.description}'")
            return [
                Candidate(handle=h, count=count, strategy=strategy.name, description=context.description)
                for h in handles
            ]

        return []

    async def locate_with_wait(
        self,
        backend: "IQueryBackend",
        target: Target,
        timeout_ms: Optional[int] = None,
        wait_for_stable: Optional[bool] = None,
        wait_for_animations: Optional[bool] = None,
    ) -> Candidate:
        """
        Resolve a target and wait until it is ready for interaction.

        Re-runs locate() on every readiness attempt, so a target that is
        missing or ambiguous mid-transition can still resolve in time.

        Raises:
            ReadinessTimeoutError: Not ready before the deadline
            ElementNotInteractableError: Found but disabled or covered
        """
        return await self._gate.wait_until_ready(
            backend,
            lambda: self.locate(backend, target),
            self.describe(target),
            timeout_ms=timeout_ms,
            wait_for_stable=wait_for_stable,
            wait_for_animations=wait_for_animations,
        )

    async def wait_for_element(
        self,
        backend: "IQueryBackend",
        target: Target,
        state: str = "visible",
        timeout_ms: Optional[int] = None,
    ) -> Candidate:
        """
        Locate a target once, then wait for it to reach a state.

        Args:
            state: attached, detached, visible or hidden

        Raises:
            ElementNotFoundError / AmbiguousMatchError: From locate()
            ReadinessTimeoutError: The state was not reached in time
        """
        timeout = timeout_ms if timeout_ms is not None else self._settings.default_timeout_ms
        candidate = await self.locate(backend, target)
        try:
            await candidate.handle.wait_for(state, timeout=timeout)
        except Exception as e:
            raise ReadinessTimeoutError(
                f"Element '{candidate.description}' did not become {state} within {timeout}ms",
                description=candidate.description,
                timeout_ms=timeout,
                attempts=1,
                last_error=str(e),
            )
        return candidate

    async def wait_for_dynamic_content(
        self,
        backend: "IQueryBackend",
        timeout_ms: Optional[int] = None,
        load_state: Optional[str] = None,
        selector: Optional[str] = None,
    ) -> bool:
        """Best-effort page settle wait. See ReadinessGate.wait_for_dynamic_content."""
        return await self._gate.wait_for_dynamic_content(
            backend, timeout_ms=timeout_ms, load_state=load_state, selector=selector,
        )

    # -------------------------------------------------------------------------
    # Introspection (never raises)
    # -------------------------------------------------------------------------

    async def get_element_info(self, candidate: Candidate) -> ElementInfo:
        """
        Snapshot a candidate's state.

        Returns ElementInfo(found=False) instead of raising when the element
        is gone or the backend fails.
        """
        handle = candidate.handle
        try:
            if await handle.count() == 0:
                return ElementInfo(found=False)
            return ElementInfo(
                found=True,
                visible=await handle.is_visible(),
                enabled=await handle.is_enabled(),
                bounding_box=await handle.bounding_box(),
                attributes=await handle.evaluate(ELEMENT_ATTRIBUTES_JS) or {},
            )
        except Exception as e:
            logger.debug(f"Element info unavailable for '{candidate.description}': {e}")
            return ElementInfo(found=False)

    async def is_visible(self, backend: "IQueryBackend", target: Union[Candidate, Target]) -> bool:
        """Check visibility of a candidate or a target. Never raises."""
        try:
            if isinstance(target, Candidate):
                return await target.handle.is_visible()
            candidate = await self.locate(backend, target)
            return await candidate.handle.is_visible()
        except Exception as e:
            logger.debug(f"Visibility check failed: {e}")
            return False

    async def find_clickable_elements(self, backend: "IQueryBackend") -> List[ClickableElement]:
        """
        Scan the page for buttons, links and submit inputs.

        Raises:
            BackendError: If the page cannot be evaluated
        """
        rows = await self._scan(backend, CLICKABLE_ELEMENTS_JS)
        return [ClickableElement(text=row["text"], selector=row["selector"]) for row in rows]

    async def find_form_elements(self, backend: "IQueryBackend") -> List[FormElement]:
        """
        Scan the page for inputs, textareas and selects.

        Raises:
            BackendError: If the page cannot be evaluated
        """
        rows = await self._scan(backend, FORM_ELEMENTS_JS)
        return [
            FormElement(label=row["label"], selector=row["selector"], type=row["type"])
            for row in rows
        ]

    def describe(self, target: Target) -> str:
        if isinstance(target, StructuredSelector):
            return target.describe()
        return str(target)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _plan(self, backend: "IQueryBackend", target: Target):
        """Build the resolution context and the strategies to try for a target."""
        if isinstance(target, StructuredSelector):
            modifiers = () if target.index is None else (f":nth({target.index})",)
            context = self._context(target.describe(), modifiers=modifiers)
            return context, (Strategy("structured", lambda b, ctx: _async_value(target.query(b))),)

        description = target if isinstance(target, str) else str(target or "")
        if looks_like_selector(description):
            selector = description.strip()
            context = self._context(description, modifiers=())
            return context, (Strategy("selector", lambda b, ctx: _async_value(b.query_selector(selector))),)

        return self._context(description), self._strategies

    def _context(self, description: str, modifiers: Optional[tuple] = None) -> ResolutionContext:
        normalized = self._normalizer.normalize(description)
        if modifiers is not None:
            normalized = NormalizedDescription(
                original=normalized.original,
                normalized=normalized.normalized,
                element_type=normalized.element_type,
                element_type_term=normalized.element_type_term,
                action=normalized.action,
                modifiers=modifiers,
                attributes=normalized.attributes,
            )
        return ResolutionContext(
            description=description,
            raw=description.strip().lower(),
            normalized=normalized,
            hints=self._normalizer.to_selector_hints(normalized),
        )

    async def _query(
        self,
        backend: "IQueryBackend",
        strategy: Strategy,
        context: ResolutionContext,
    ) -> Optional["IQueryHandle"]:
        try:
            return await strategy.query(backend, context)
        except Exception as e:
            logger.debug(f"{strategy.name} failed for '{context.description}': {e}")
            return None

    async def _count(self, handle: "IQueryHandle", strategy: Strategy) -> int:
        try:
            return await handle.count()
        except Exception as e:
            logger.debug(f"{strategy.name} count failed: {e}")
            return 0

    async def _run_strategy(
        self,
        backend: "IQueryBackend",
        strategy: Strategy,
        context: ResolutionContext,
    ) -> Optional[Candidate]:
        """One step of the chain: query, count, disambiguate, check visibility."""
        handle = await self._query(backend, strategy, context)
        if handle is None:
            return None

        count = await self._count(handle, strategy)
        if count == 0:
            logger.debug(f"{strategy.name}: no match for '{context.description}'")
            return None

        if strategy.first_visible:
            selected = handle.first()
        elif count > 1 and not context.has_position_modifier:
            raise AmbiguousMatchError(
                f"Found {count} elements matching '{context.description}'",
                description=context.description,
                count=count,
                strategy=strategy.name,
            )
        else:
            selected = apply_position(handle, context.hints.modifiers)

        try:
            visible = await selected.is_visible()
        except Exception as e:
            logger.debug(f"{strategy.name}: visibility check failed: {e}")
            visible = False

        if not visible:
            logger.debug(f"{strategy.name}: match for '{context.description}' is not visible")
            return None

        return Candidate(handle=selected, count=count, strategy=strategy.name, description=context.description)

    async def _scan(self, backend: "IQueryBackend", script: str) -> List[Dict[str, Any]]:
        try:
            return await backend.evaluate(script) or []
        except Exception as e:
            raise BackendError(f"Page scan failed: {e}")


async def _async_value(value: Any) -> Any:
    return value
