"""
Resolution Strategies - The ordered strategy chain used by ElementResolver.

Every strategy shares one signature:

    async def strategy(backend, context) -> Optional[IQueryHandle]

and returns a (possibly multi-match) query handle, or None when it does not
apply to the description. Counting, ambiguity and visibility checks live in
the resolver so they are applied uniformly.

Chain (tried in order, next one only if the previous had no visible match):
1.  label_field         "username field" -> label lookup
2.  image_alt           "logo image" -> alt text lookup
3.  search_placeholder  exactly "search field"/"search input" -> placeholder
4.  search_combobox     any "search" description, role precedence
5.  search_searchbox      combobox -> searchbox -> textbox
6.  search_textbox
7.  role_with_text      role filtered by accessible name
8.  text                text match, whole quoted phrase first, then substring
9.  role                role only, position modifiers applied
10. aria_label          aria-label substring
11. placeholder         placeholder substring
12. raw_role            9-11 again with the raw description
13. raw_aria_label
14. raw_placeholder
15. fuzzy_word          single words, interactive tags only
16. raw_selector        original string as a selector, for callers that drive
                        the chain without the resolver's selector fast path
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, TYPE_CHECKING
import re

from nl_locator.engine.description_normalizer import (
    ELEMENT_TYPE_SYNONYMS,
    NormalizedDescription,
    SelectorHints,
)

if TYPE_CHECKING:
    from nl_locator.interfaces.backend import IQueryBackend, IQueryHandle


# Search widgets are marked up inconsistently across sites; this order
# (combobox first, as on large search engines) is kept as-is.
SEARCH_ROLE_PRECEDENCE: Tuple[str, ...] = ("combobox", "searchbox", "textbox")

INTERACTIVE_TAGS = frozenset({"button", "a", "input", "select", "textarea"})

FUZZY_MIN_WORD_LENGTH = 3

_SELECTOR_PREFIX = re.compile(r"^[#.\[/]")
_LABEL_FIELD = re.compile(r"(\w+)\s+(?:input|field)")
_ALT_IMAGE = re.compile(r"(\w+)\s+(?:image|img)")


@dataclass(frozen=True)
class ResolutionContext:
    """
    Everything a strategy may look at for one lookup.

    Attributes:
        description: The caller's description, verbatim
        raw: Lowercased, trimmed description
        normalized: Normalizer output
        hints: Selector hints derived from normalized
    """
    description: str
    raw: str
    normalized: NormalizedDescription
    hints: SelectorHints

    @property
    def has_position_modifier(self) -> bool:
        return bool(self.hints.modifiers)


StrategyFn = Callable[["IQueryBackend", ResolutionContext], Awaitable[Optional["IQueryHandle"]]]


@dataclass(frozen=True)
class Strategy:
    """
    One named step of the chain.

    Attributes:
        name: Stable identifier, used in logs and Candidate.strategy
        query: The strategy function
        first_visible: Heuristic step that takes its first visible match
            instead of reporting ambiguity
    """
    name: str
    query: StrategyFn
    first_visible: bool = False


def looks_like_selector(text: str) -> bool:
    """Check if a string looks like a CSS or XPath selector."""
    return bool(_SELECTOR_PREFIX.match(text.strip()))


def text_pattern(text: str) -> "re.Pattern[str]":
    """Case-insensitive literal substring pattern."""
    return re.compile(re.escape(text.strip()), re.I)


def exact_pattern(text: str) -> "re.Pattern[str]":
    """Case-sensitive pattern matching the whole (whitespace-trimmed) value."""
    return re.compile(rf"^\s*{re.escape(text.strip())}\s*$")


def css_string(value: str) -> str:
    """Escape a value for use inside a double-quoted CSS attribute selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _aria_label_selector(value: str) -> str:
    return f'[aria-label*="{css_string(value)}" i]'


# =============================================================================
# DOMAIN SHORT-CIRCUITS
# =============================================================================

async def label_field(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if "input" not in ctx.raw and "field" not in ctx.raw:
        return None
    match = _LABEL_FIELD.search(ctx.raw)
    if not match or match.group(1) == "search":
        return None
    return backend.query_by_label(text_pattern(match.group(1)))


async def image_alt(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if "image" not in ctx.raw and "img" not in ctx.raw:
        return None
    match = _ALT_IMAGE.search(ctx.raw)
    if not match:
        return None
    return backend.query_by_alt_text(text_pattern(match.group(1)))


async def search_placeholder(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if ctx.raw not in ("search field", "search input"):
        return None
    return backend.query_by_placeholder(text_pattern("search"))


def _search_role(role: str) -> StrategyFn:
    async def search_role(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
        if "search" not in ctx.raw:
            return None
        return backend.query_by_role(role)

    search_role.__name__ = f"search_{role}"
    return search_role


# =============================================================================
# HINT-DRIVEN STRATEGIES
# =============================================================================

async def role_with_text(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    hints = ctx.hints
    if not hints.role or not hints.name:
        return None
    if hints.exact_text:
        handle = backend.query_by_role(hints.role, name=exact_pattern(hints.name))
        if await handle.count() > 0:
            return handle
    return backend.query_by_role(hints.role, name=text_pattern(hints.name))


async def text(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if not ctx.hints.text:
        return None
    if ctx.hints.exact_text:
        handle = backend.query_by_text(exact_pattern(ctx.hints.text))
        if await handle.count() > 0:
            return handle
    return backend.query_by_text(text_pattern(ctx.hints.text))


async def role(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if not ctx.hints.role:
        return None
    return backend.query_by_role(ctx.hints.role)


async def aria_label(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    value = ctx.hints.label or ctx.hints.text
    if not value:
        return None
    return backend.query_selector(_aria_label_selector(value))


async def placeholder(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    value = ctx.hints.placeholder or ctx.hints.text
    if not value:
        return None
    return backend.query_by_placeholder(text_pattern(value))


# =============================================================================
# RAW-DESCRIPTION FALLBACKS
# =============================================================================

async def raw_role(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    """Role from the first alias in the raw text; the words after it are the name."""
    if not ctx.raw:
        return None
    for role_name, aliases in ELEMENT_TYPE_SYNONYMS:
        for alias in aliases:
            match = re.search(rf"(?<![\w-]){re.escape(alias)}(?![\w-])", ctx.raw)
            if not match:
                continue
            label = ctx.raw[match.end():].strip()
            if label:
                handle = backend.query_by_role(role_name, name=text_pattern(label))
                if await handle.count() > 0:
                    return handle
            handle = backend.query_by_role(role_name)
            if await handle.count() > 0:
                return handle
    return None


async def raw_aria_label(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if not ctx.raw:
        return None
    return backend.query_selector(_aria_label_selector(ctx.raw))


async def raw_placeholder(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    if not ctx.raw:
        return None
    return backend.query_by_placeholder(text_pattern(ctx.raw))


async def fuzzy_word(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    """First interactive element whose text contains one of the residual words."""
    words = [w for w in ctx.normalized.normalized.split() if len(w) >= FUZZY_MIN_WORD_LENGTH]
    for word in words:
        handle = backend.query_by_text(text_pattern(word))
        if await handle.count() == 0:
            continue
        first = handle.first()
        tag = await first.evaluate("el => el.tagName.toLowerCase()")
        if tag in INTERACTIVE_TAGS:
            return first
    return None


async def raw_selector(backend: "IQueryBackend", ctx: ResolutionContext) -> Optional["IQueryHandle"]:
    """
    Last-resort selector query.

    ElementResolver sends selector-looking strings down its fast path before
    the chain runs, so this only fires when the chain is driven directly.
    """
    if not looks_like_selector(ctx.description):
        return None
    return backend.query_selector(ctx.description.strip())


STRATEGY_CHAIN: Tuple[Strategy, ...] = (
    Strategy("label_field", label_field),
    Strategy("image_alt", image_alt),
    Strategy("search_placeholder", search_placeholder),
    *(Strategy(f"search_{r}", _search_role(r), first_visible=True) for r in SEARCH_ROLE_PRECEDENCE),
    Strategy("role_with_text", role_with_text),
    Strategy("text", text),
    Strategy("role", role),
    Strategy("aria_label", aria_label),
    Strategy("placeholder", placeholder),
    Strategy("raw_role", raw_role),
    Strategy("raw_aria_label", raw_aria_label),
    Strategy("raw_placeholder", raw_placeholder),
    Strategy("fuzzy_word", fuzzy_word),
    Strategy("raw_selector", raw_selector),
)
