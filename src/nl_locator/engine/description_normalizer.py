"""
Description Normalizer - Turn informal element descriptions into structured hints.

Pipeline (fixed order, each step consumes the residual of the previous one):
1. Strip a leading action phrase ("click on the", "type into") -> action
2. Drop stop words (articles, prepositions, demonstratives)
3. Pull out position modifiers ("first", "last", "second", ...)
4. Map color words to a semantic class ("red" -> danger)
5. Pull out the first quoted phrase as exact text
6. Detect the element type from a synonym table
7. Parse a "(key=value, key2)" parenthetical into attributes
8. Clean up what is left

Steps 2-4 never touch the inside of quoted or parenthesized spans, so
'click "Sign in to continue"' keeps its quoted text intact.

Example:
    >>> desc = normalize('click the "Submit Now" button')
    >>> desc.action, desc.element_type, desc.attributes["text"]
    ('click', 'button', 'Submit Now')
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Pattern, Tuple
import logging
import re

logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUP TABLES (read-only, shared by every call)
# =============================================================================

ACTION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^(click|press|tap|hit|push)\s+(?:on\s+)?(?:the\s+)?", re.I),
    re.compile(r"^(type|enter|input|fill)\s+(?:in(?:to)?\s+)?(?:the\s+)?", re.I),
    re.compile(r"^(select|choose|pick)\s+(?:from\s+)?(?:the\s+)?", re.I),
    re.compile(r"^(check|tick|mark)\s+(?:the\s+)?", re.I),
    re.compile(r"^(uncheck|untick|unmark)\s+(?:the\s+)?", re.I),
    re.compile(r"^(hover\s+over|mouse\s+over)\s+(?:the\s+)?", re.I),
    re.compile(r"^(scroll\s+to|go\s+to|navigate\s+to)\s+(?:the\s+)?", re.I),
    re.compile(r"^(find|locate|look\s+for)\s+(?:the\s+)?", re.I),
)

ACTION_CANONICAL: Mapping[str, str] = MappingProxyType({
    "click": "click",
    "press": "click",
    "tap": "click",
    "hit": "click",
    "push": "click",
    "type": "type",
    "enter": "type",
    "input": "type",
    "fill": "fill",
    "select": "select",
    "choose": "select",
    "pick": "select",
    "check": "check",
    "tick": "check",
    "mark": "check",
    "uncheck": "uncheck",
    "untick": "uncheck",
    "unmark": "uncheck",
    "hover": "hover",
    "mouse": "hover",
    "scroll": "scroll",
    "go": "navigate",
    "navigate": "navigate",
    "find": "find",
    "locate": "find",
    "look": "find",
})

STOP_WORDS = frozenset({
    "the", "a", "an", "on", "in", "at", "to", "for",
    "with", "by", "from", "up", "down", "out", "off",
    "that", "this", "these", "those", "which",
})

# Declaration order is extraction order, and the first extracted modifier wins
POSITION_MODIFIERS: Tuple[Tuple[str, str], ...] = (
    ("first", ":first"),
    ("last", ":last"),
    ("second", ":nth(1)"),
    ("third", ":nth(2)"),
    ("top", ":first"),
    ("bottom", ":last"),
    ("left", '[position="left"]'),
    ("right", '[position="right"]'),
    ("middle", '[position="center"]'),
    ("center", '[position="center"]'),
)

# First meaning is the representative class stored on the description
COLOR_CLASSES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("red", ("danger", "error", "alert", "warning")),
    ("green", ("success", "confirm")),
    ("blue", ("primary", "info")),
    ("yellow", ("warning", "caution")),
    ("orange", ("warning", "alert")),
    ("gray", ("disabled", "secondary")),
    ("grey", ("disabled", "secondary")),
)

# ARIA role -> phrases that imply it. The longest matching phrase wins,
# ties go to the earlier entry.
ELEMENT_TYPE_SYNONYMS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("button", ("button", "btn", "submit")),
    ("link", ("link", "anchor", "hyperlink")),
    ("searchbox", ("searchbox", "search box", "search field", "search input", "search bar")),
    ("textbox", ("textbox", "text box", "text field", "textarea", "text area", "input", "field", "entry")),
    ("combobox", ("combobox", "combo box", "autocomplete", "dropdown", "drop-down", "drop down")),
    ("checkbox", ("checkbox", "check box", "tickbox", "tick box")),
    ("radio", ("radio button", "radio", "option button")),
    ("listbox", ("listbox", "list box", "select box", "select")),
    ("image", ("image", "img", "picture", "photo", "logo")),
    ("heading", ("heading", "headline", "header", "h1", "h2", "h3", "h4", "h5", "h6")),
    ("list", ("list", "ul", "ol")),
    ("table", ("table", "grid")),
    ("form", ("form",)),
    ("navigation", ("navigation", "navbar", "nav", "menu")),
    ("main", ("main content", "main")),
    ("article", ("article",)),
    ("section", ("section", "region")),
)

ELEMENT_TYPES: Tuple[str, ...] = tuple(role for role, _ in ELEMENT_TYPE_SYNONYMS)

# Quoted phrases and parentheticals are opaque to token-level rewriting.
# A single quote only opens or closes a span at a word boundary, so
# possessives ("John's") and contractions stay plain text.
_PROTECTED_SPAN = re.compile(r"\"[^\"]*\"|(?<!\w)'[^']*'(?!\w)|\([^)]*\)")
_QUOTED = re.compile(r"^\"([^\"]+)\"$|^'([^']+)'$")
_PAREN = re.compile(r"^\(([^)]*)\)$")


def _word_regex(phrase: str) -> Pattern[str]:
    """Whole-word (hyphen-aware) case-insensitive matcher for a phrase."""
    body = r"\s+".join(re.escape(part) for part in phrase.split())
    return re.compile(rf"(?<![\w-]){body}(?![\w-])", re.I)


_MODIFIER_REGEXES = tuple((_word_regex(word), token) for word, token in POSITION_MODIFIERS)
_COLOR_REGEXES = tuple((color, _word_regex(color), classes) for color, classes in COLOR_CLASSES)
_TYPE_REGEXES = tuple(
    (role, synonym, _word_regex(synonym))
    for role, synonyms in ELEMENT_TYPE_SYNONYMS
    for synonym in synonyms
)


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass(frozen=True)
class NormalizedDescription:
    """
    Structured form of one raw element description.

    Attributes:
        original: Verbatim input
        normalized: Lowercased residual text after all extraction steps
        element_type: ARIA role implied by the description, if any
        element_type_term: The phrase that implied element_type
        action: Canonical verb from a leading action phrase, if any
        modifiers: Position modifiers in extraction order
        attributes: text / class / color / parenthetical key-value hints
    """
    original: str
    normalized: str = ""
    element_type: Optional[str] = None
    element_type_term: Optional[str] = None
    action: Optional[str] = None
    modifiers: Tuple[str, ...] = ()
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def has_position_modifier(self) -> bool:
        """A position modifier acknowledges that several elements may match."""
        return bool(self.modifiers)

    @property
    def quoted_text(self) -> Optional[str]:
        return self.attributes.get("text")


@dataclass(frozen=True)
class SelectorHints:
    """
    Projection of a NormalizedDescription into backend query terms.

    Attributes:
        role: ARIA role for role queries
        text: Quoted text if present, otherwise the residual text
        exact_text: True when text came from a quoted phrase
        name: Accessible-name filter for role queries (text minus the type word)
        label: Label hint from a parenthetical
        placeholder: Placeholder hint from a parenthetical
        class_name: Semantic class derived from a color word
        modifiers: Position modifiers, unchanged
    """
    role: Optional[str] = None
    text: Optional[str] = None
    exact_text: bool = False
    name: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    class_name: Optional[str] = None
    modifiers: Tuple[str, ...] = ()


# =============================================================================
# NORMALIZER
# =============================================================================

class DescriptionNormalizer:
    """
    Normalizes natural language element descriptions.

    Stateless; a single instance can be shared by concurrent resolutions.
    """

    def normalize(self, raw: str) -> NormalizedDescription:
        """
        Normalize a raw description. Never raises.

        Args:
            raw: Description such as 'click the first blue "Save" button'

        Returns:
            The structured description
        """
        original = raw if isinstance(raw, str) else str(raw or "")
        text = original.strip()
        attributes: dict = {}

        # 1. Leading action phrase
        text, action = self._strip_action(text)

        # 2. Stop words
        text = self._map_unprotected(text, self._remove_stop_words)

        # 3. Position modifiers
        text, modifiers = self._extract_modifiers(text)

        # 4. Color -> semantic class
        text = self._extract_color(text, attributes)

        # 5. Quoted exact text
        text = self._extract_quoted(text, attributes)

        # 6. Element type
        element_type, element_type_term = self._identify_element_type(text)

        # 7. Parenthetical attributes
        text = self._extract_parenthetical(text, attributes)

        # 8. Cleanup
        normalized = self._cleanup(text)

        result = NormalizedDescription(
            original=original,
            normalized=normalized,
            element_type=element_type,
            element_type_term=element_type_term,
            action=action,
            modifiers=tuple(modifiers),
            attributes=MappingProxyType(attributes),
        )
        logger.debug(f"Normalized '{original}' -> {result}")
        return result

    def to_selector_hints(self, description: NormalizedDescription) -> SelectorHints:
        """
        Convert a normalized description to selector hints.

        Args:
            description: Output of normalize()

        Returns:
            Hints for the resolver's strategies
        """
        attrs = description.attributes
        quoted = attrs.get("text")

        if quoted:
            text = quoted
            name: Optional[str] = quoted
        else:
            text = description.normalized or None
            name = text
            if text and description.element_type_term:
                name = self._cleanup(_word_regex(description.element_type_term).sub(" ", text)) or None

        return SelectorHints(
            role=description.element_type,
            text=text,
            exact_text=bool(quoted),
            name=name,
            label=attrs.get("label"),
            placeholder=attrs.get("placeholder"),
            class_name=attrs.get("class"),
            modifiers=description.modifiers,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _strip_action(self, text: str) -> Tuple[str, Optional[str]]:
        for pattern in ACTION_PATTERNS:
            match = pattern.match(text)
            if match:
                verb = match.group(1).split()[0].lower()
                return text[match.end():].strip(), ACTION_CANONICAL.get(verb, "click")
        return text, None

    def _remove_stop_words(self, chunk: str) -> str:
        parts = re.split(r"(\s+)", chunk)
        return "".join(p for p in parts if p.lower() not in STOP_WORDS)

    def _extract_modifiers(self, text: str) -> Tuple[str, List[str]]:
        modifiers: List[str] = []
        for regex, token in _MODIFIER_REGEXES:
            if self._search_unprotected(text, regex):
                modifiers.append(token)
                text = self._map_unprotected(text, lambda chunk, r=regex: r.sub(" ", chunk))
        return text, modifiers

    def _extract_color(self, text: str, attributes: dict) -> str:
        for color, regex, classes in _COLOR_REGEXES:
            if self._search_unprotected(text, regex):
                if "color" not in attributes:
                    attributes["color"] = color
                    attributes["class"] = classes[0]
                text = self._map_unprotected(text, lambda chunk, r=regex: r.sub(" ", chunk))
        return text

    def _extract_quoted(self, text: str, attributes: dict) -> str:
        for match in _PROTECTED_SPAN.finditer(text):
            quoted = _QUOTED.match(match.group(0))
            if quoted:
                attributes["text"] = (quoted.group(1) or quoted.group(2)).strip()
                return (text[:match.start()] + " " + text[match.end():]).strip()
        return text

    def _identify_element_type(self, text: str) -> Tuple[Optional[str], Optional[str]]:
        plain = " ".join(chunk for chunk, protected in self._segments(text) if not protected)
        best: Optional[Tuple[str, str]] = None
        for role, synonym, regex in _TYPE_REGEXES:
            if regex.search(plain) and (best is None or len(synonym) > len(best[1])):
                best = (role, synonym)
        if best is None:
            return None, None
        return best

    def _extract_parenthetical(self, text: str, attributes: dict) -> str:
        for match in _PROTECTED_SPAN.finditer(text):
            paren = _PAREN.match(match.group(0))
            if not paren:
                continue
            for pair in re.split(r"[,;]", paren.group(1)):
                key, sep, value = pair.partition("=")
                key = key.strip().strip("\"'").lower()
                value = re.sub(r"[\"']", "", value).strip()
                if key and sep and value:
                    attributes[key] = value
                elif key:
                    attributes["label"] = key
            return (text[:match.start()] + " " + text[match.end():]).strip()
        return text

    def _cleanup(self, text: str) -> str:
        text = re.sub(r"[^\w\s-]", "", text.lower())
        return re.sub(r"\s+", " ", text).strip()

    # -------------------------------------------------------------------------
    # Protected-span helpers
    # -------------------------------------------------------------------------

    def _segments(self, text: str) -> List[Tuple[str, bool]]:
        """Split text into (chunk, is_protected) pieces."""
        segments: List[Tuple[str, bool]] = []
        pos = 0
        for match in _PROTECTED_SPAN.finditer(text):
            if match.start() > pos:
                segments.append((text[pos:match.start()], False))
            segments.append((match.group(0), True))
            pos = match.end()
        if pos < len(text):
            segments.append((text[pos:], False))
        return segments

    def _map_unprotected(self, text: str, fn: Callable[[str], str]) -> str:
        return "".join(
            chunk if protected else fn(chunk)
            for chunk, protected in self._segments(text)
        )

    def _search_unprotected(self, text: str, regex: Pattern[str]) -> bool:
        return any(
            regex.search(chunk)
            for chunk, protected in self._segments(text)
            if not protected
        )


_default_normalizer = DescriptionNormalizer()


def normalize(raw: str) -> NormalizedDescription:
    """Normalize a description with the shared default normalizer."""
    return _default_normalizer.normalize(raw)


def to_selector_hints(description: NormalizedDescription) -> SelectorHints:
    """Project a normalized description into selector hints."""
    return _default_normalizer.to_selector_hints(description)
