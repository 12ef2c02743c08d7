"""
Tests for ElementResolver - strategy chain, ambiguity and introspection.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from nl_locator.engine.description_normalizer import normalize, to_selector_hints
from nl_locator.engine.element_resolver import (
    Candidate,
    ClickableElement,
    ElementInfo,
    ElementResolver,
    FormElement,
    StructuredSelector,
    apply_position,
)
from nl_locator.engine.strategies import (
    SEARCH_ROLE_PRECEDENCE,
    STRATEGY_CHAIN,
    ResolutionContext,
    Strategy,
    looks_like_selector,
    raw_selector,
    text,
)
from nl_locator.exceptions import (
    AmbiguousMatchError,
    BackendError,
    ElementNotFoundError,
    ReadinessTimeoutError,
)
from tests.fakes import FakeBackend


def login_page() -> FakeBackend:
    backend = FakeBackend()
    backend.add(tag="a", role="link", text="Login", id="login-top")
    backend.add(tag="a", role="link", text="Login with SSO", id="login-sso")
    backend.add(tag="a", role="link", text="Pricing")
    return backend


# =============================================================================
# NATURAL-LANGUAGE CHAIN
# =============================================================================

class TestNaturalLanguage:
    """Descriptions resolved through the strategy chain."""

    @pytest.mark.asyncio
    async def test_quoted_button(self, resolver, backend):
        submit = backend.add(tag="button", role="button", text="Submit Now")
        backend.add(tag="button", role="button", text="Cancel")

        candidate = await resolver.locate(backend, 'click the "Submit Now" button')

        assert candidate.strategy == "role_with_text"
        assert candidate.count == 1
        assert candidate.handle.nodes == [submit]
        assert candidate.description == 'click the "Submit Now" button'

    @pytest.mark.asyncio
    async def test_quoted_text_matches_whole_label(self, resolver, backend):
        save = backend.add(tag="button", role="button", text="Save")
        backend.add(tag="button", role="button", text="Save draft")

        candidate = await resolver.locate(backend, 'click "Save"')

        assert candidate.strategy == "text"
        assert candidate.count == 1
        assert candidate.handle.nodes == [save]

    @pytest.mark.asyncio
    async def test_quoted_role_name_matches_whole_label(self, resolver, backend):
        backend.add(tag="button", role="button", text="Save draft")
        save = backend.add(tag="button", role="button", text="Save")

        candidate = await resolver.locate(backend, 'the "Save" button')

        assert candidate.strategy == "role_with_text"
        assert candidate.handle.nodes == [save]

    @pytest.mark.asyncio
    async def test_quoted_text_falls_back_to_substring(self, resolver, backend):
        node = backend.add(tag="button", role="button", text="Save draft now")

        candidate = await resolver.locate(backend, 'click "Save draft"')

        assert candidate.strategy == "text"
        assert candidate.handle.nodes == [node]

    @pytest.mark.asyncio
    async def test_ambiguous_without_modifier(self, resolver):
        backend = login_page()

        with pytest.raises(AmbiguousMatchError) as exc_info:
            await resolver.locate(backend, "login link")

        assert exc_info.value.count == 2
        assert exc_info.value.strategy == "role_with_text"
        assert exc_info.value.suggestion

    @pytest.mark.asyncio
    async def test_ambiguity_stops_the_chain(self, resolver):
        backend = login_page()

        with pytest.raises(AmbiguousMatchError):
            await resolver.locate(backend, "login link")

        # role_with_text is the last query issued
        assert backend.calls[-1][:2] == ("role", "link")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("description,expected_id", [
        ("first login link", "login-top"),
        ("last login link", "login-sso"),
        ("second login link", "login-sso"),
        ("top login link", "login-top"),
    ])
    async def test_position_modifier_selects(self, resolver, description, expected_id):
        backend = login_page()

        candidate = await resolver.locate(backend, description)

        assert candidate.count == 2
        assert candidate.handle.nodes[0].id == expected_id

    @pytest.mark.asyncio
    async def test_non_index_modifier_takes_first(self, resolver):
        backend = login_page()
        candidate = await resolver.locate(backend, "left login link")
        assert candidate.handle.nodes[0].id == "login-top"

    @pytest.mark.asyncio
    async def test_invisible_match_is_skipped(self, resolver, backend):
        backend.add(tag="div", text="Save", visible=False)
        shown = backend.add(tag="span", aria_label="Save changes")

        candidate = await resolver.locate(backend, "save")

        assert candidate.strategy == "aria_label"
        assert candidate.handle.nodes == [shown]

    @pytest.mark.asyncio
    async def test_not_found(self, resolver, backend):
        backend.add(tag="p", text="Nothing to see")

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.locate(backend, "checkout button")

        assert exc_info.value.description == "checkout button"
        assert exc_info.value.strategies_tried == len(STRATEGY_CHAIN)

    @pytest.mark.asyncio
    async def test_label_field(self, resolver, backend):
        field = backend.add(tag="input", role="textbox", label="Username")

        candidate = await resolver.locate(backend, "username field")

        assert candidate.strategy == "label_field"
        assert candidate.handle.nodes == [field]

    @pytest.mark.asyncio
    async def test_image_alt(self, resolver, backend):
        logo = backend.add(tag="img", role="img", alt="Company logo")

        candidate = await resolver.locate(backend, "logo image")

        assert candidate.strategy == "image_alt"
        assert candidate.handle.nodes == [logo]

    @pytest.mark.asyncio
    async def test_search_placeholder(self, resolver, backend):
        box = backend.add(tag="input", role="textbox", placeholder="Search products")

        candidate = await resolver.locate(backend, "search field")

        assert candidate.strategy == "search_placeholder"
        assert candidate.handle.nodes == [box]

    @pytest.mark.asyncio
    async def test_search_role_precedence(self, resolver, backend):
        backend.add(tag="input", role="textbox", text="")
        combo = backend.add(tag="input", role="combobox")
        backend.add(tag="input", role="combobox")

        candidate = await resolver.locate(backend, "search for products")

        # several comboboxes, but search heuristics take the first visible
        assert candidate.strategy == "search_combobox"
        assert candidate.handle.nodes == [combo]
        assert SEARCH_ROLE_PRECEDENCE == ("combobox", "searchbox", "textbox")

    @pytest.mark.asyncio
    async def test_search_falls_through_hidden_roles(self, resolver, backend):
        backend.add(tag="input", role="combobox", visible=False)
        box = backend.add(tag="input", role="searchbox")

        candidate = await resolver.locate(backend, "site search")

        assert candidate.strategy == "search_searchbox"
        assert candidate.handle.nodes == [box]

    @pytest.mark.asyncio
    async def test_placeholder_hint(self, resolver, backend):
        email = backend.add(tag="input", placeholder="you@example.com")

        candidate = await resolver.locate(backend, "email (placeholder=you@example)")

        assert candidate.strategy == "placeholder"
        assert candidate.handle.nodes == [email]

    @pytest.mark.asyncio
    async def test_fuzzy_word_interactive(self, resolver, backend):
        link = backend.add(tag="a", text="Checkout")

        candidate = await resolver.locate(backend, "proceed checkout now")

        assert candidate.strategy == "fuzzy_word"
        assert candidate.handle.nodes == [link]

    @pytest.mark.asyncio
    async def test_fuzzy_word_rejects_plain_text(self, resolver, backend):
        backend.add(tag="div", text="Checkout")

        with pytest.raises(ElementNotFoundError):
            await resolver.locate(backend, "proceed checkout now")

    @pytest.mark.asyncio
    async def test_failing_strategy_is_a_miss(self, locator_settings, backend):
        async def boom(b, ctx):
            raise RuntimeError("invalid role")

        node = backend.add(tag="span", text="Help")
        resolver = ElementResolver(
            locator_settings,
            strategies=(Strategy("boom", boom), Strategy("text", text)),
        )

        candidate = await resolver.locate(backend, "help")

        assert candidate.strategy == "text"
        assert candidate.handle.nodes == [node]


# =============================================================================
# SELECTORS
# =============================================================================

class TestSelectors:
    """CSS/XPath fast path and StructuredSelector targets."""

    @pytest.mark.parametrize("value,expected", [
        ("#id", True),
        (".cls", True),
        ("[name=q]", True),
        ("//div", True),
        ("/html/body", True),
        ("  #padded", True),
        ("submit button", False),
        ("", False),
    ])
    def test_looks_like_selector(self, value, expected):
        assert looks_like_selector(value) is expected

    @pytest.mark.asyncio
    async def test_css_fast_path(self, resolver, backend):
        node = backend.add(tag="button", id="submit")

        candidate = await resolver.locate(backend, "#submit")

        assert candidate.strategy == "selector"
        assert candidate.handle.nodes == [node]
        assert backend.calls == [("selector", "#submit")]

    @pytest.mark.asyncio
    async def test_raw_selector_strategy(self, backend):
        node = backend.add(tag="button", id="submit")

        def context(description: str) -> ResolutionContext:
            normalized = normalize(description)
            return ResolutionContext(
                description=description,
                raw=description.strip().lower(),
                normalized=normalized,
                hints=to_selector_hints(normalized),
            )

        handle = await raw_selector(backend, context(" #submit "))

        assert handle.nodes == [node]
        assert backend.calls == [("selector", "#submit")]
        assert await raw_selector(backend, context("submit button")) is None

    @pytest.mark.asyncio
    async def test_selector_ambiguity(self, resolver, backend):
        backend.add(tag="button")
        backend.add(tag="button")

        with pytest.raises(AmbiguousMatchError) as exc_info:
            await resolver.locate(backend, "//button")
        assert exc_info.value.count == 2

    @pytest.mark.asyncio
    async def test_selector_not_found(self, resolver, backend):
        with pytest.raises(ElementNotFoundError):
            await resolver.locate(backend, ".missing")

    @pytest.mark.asyncio
    async def test_hidden_selector_match(self, resolver, backend):
        backend.add(tag="div", id="modal", visible=False)

        with pytest.raises(ElementNotFoundError):
            await resolver.locate(backend, "#modal")

    @pytest.mark.asyncio
    async def test_structured_role_with_label(self, resolver, backend):
        backend.add(tag="button", role="button", text="Cancel")
        save = backend.add(tag="button", role="button", text="Save")

        candidate = await resolver.locate(backend, StructuredSelector(role="button", label="Save"))

        assert candidate.strategy == "structured"
        assert candidate.handle.nodes == [save]
        assert candidate.description == "role=button, label=Save"

    @pytest.mark.asyncio
    async def test_structured_priority(self, resolver, backend):
        node = backend.add(tag="div", id="a", text="B")

        await resolver.locate(backend, StructuredSelector(css="#a", text="B"))

        assert backend.calls[0] == ("selector", "#a")
        assert node.id == "a"

    @pytest.mark.asyncio
    async def test_structured_index(self, resolver, backend):
        items = [backend.add(tag="li", class_name="item", text=f"Item {i}") for i in range(3)]

        candidate = await resolver.locate(backend, StructuredSelector(class_name="item", index=1))

        assert candidate.count == 3
        assert candidate.handle.nodes == [items[1]]

    @pytest.mark.asyncio
    async def test_structured_ambiguous(self, resolver, backend):
        for i in range(3):
            backend.add(tag="li", text=f"Item {i}")

        with pytest.raises(AmbiguousMatchError):
            await resolver.locate(backend, StructuredSelector(text="Item"))

    @pytest.mark.asyncio
    async def test_structured_name_and_xpath(self, resolver, backend):
        node = backend.add(tag="input", attrs={"name": "q"})

        assert (await resolver.locate(backend, StructuredSelector(name="q"))).handle.nodes == [node]
        assert (await resolver.locate(backend, StructuredSelector(xpath="//input"))).handle.nodes == [node]

    @pytest.mark.asyncio
    async def test_empty_structured_selector(self, resolver, backend):
        with pytest.raises(ElementNotFoundError):
            await resolver.locate(backend, StructuredSelector())

    def test_apply_position_first_modifier_wins(self):
        handle = MagicMock()
        apply_position(handle, [":last", ":first"])
        handle.last.assert_called_once()
        handle.first.assert_not_called()

    def test_apply_position_nth(self):
        handle = MagicMock()
        apply_position(handle, [":nth(2)"])
        handle.nth.assert_called_once_with(2)


# =============================================================================
# LOCATE ALL
# =============================================================================

class TestLocateAll:
    """Every match of the first matching strategy."""

    @pytest.mark.asyncio
    async def test_returns_all_matches(self, resolver):
        backend = login_page()

        candidates = await resolver.locate_all(backend, "login link")

        assert [c.handle.nodes[0].id for c in candidates] == ["login-top", "login-sso"]
        assert all(c.strategy == "role_with_text" for c in candidates)
        assert all(c.count == 2 for c in candidates)

    @pytest.mark.asyncio
    async def test_includes_hidden_matches(self, resolver, backend):
        backend.add(tag="li", text="Row", visible=False)
        backend.add(tag="li", text="Row")

        candidates = await resolver.locate_all(backend, "row")

        assert len(candidates) == 2

    @pytest.mark.asyncio
    async def test_no_match_is_empty(self, resolver, backend):
        assert await resolver.locate_all(backend, "nonexistent widget") == []

    @pytest.mark.asyncio
    async def test_selector(self, resolver, backend):
        backend.add(tag="li", class_name="item")
        backend.add(tag="li", class_name="item")

        candidates = await resolver.locate_all(backend, ".item")

        assert len(candidates) == 2
        assert candidates[0].strategy == "selector"


# =============================================================================
# WAITING AND INTROSPECTION
# =============================================================================

class TestIntrospection:
    """get_element_info, is_visible, wait_for_element and page scans."""

    @pytest.mark.asyncio
    async def test_element_info(self, resolver, backend):
        backend.add(tag="button", role="button", text="Save", id="save", class_name="btn primary")
        candidate = await resolver.locate(backend, "#save")

        info = await resolver.get_element_info(candidate)

        assert info.found is True
        assert info.visible is True
        assert info.enabled is True
        assert info.bounding_box == {"x": 10.0, "y": 10.0, "width": 100.0, "height": 20.0}
        assert info.attributes == {
            "tag_name": "button",
            "text_content": "Save",
            "id": "save",
            "class_name": "btn primary",
        }

    @pytest.mark.asyncio
    async def test_element_info_idempotent(self, resolver, backend):
        backend.add(tag="button", id="save")
        candidate = await resolver.locate(backend, "#save")

        first = await resolver.get_element_info(candidate)
        second = await resolver.get_element_info(candidate)

        assert first == second
        assert first.to_dict() == second.to_dict()

    @pytest.mark.asyncio
    async def test_element_info_after_detach(self, resolver, backend):
        node = backend.add(tag="button", id="save")
        candidate = await resolver.locate(backend, "#save")
        node.attached = False

        info = await resolver.get_element_info(candidate)

        assert info == ElementInfo(found=False)

    @pytest.mark.asyncio
    async def test_element_info_never_raises(self, resolver):
        handle = MagicMock()
        handle.count = AsyncMock(side_effect=RuntimeError("page closed"))

        info = await resolver.get_element_info(Candidate(handle=handle, count=1, strategy="text"))

        assert info.found is False

    @pytest.mark.asyncio
    async def test_is_visible(self, resolver, backend):
        node = backend.add(tag="button", id="go")
        candidate = await resolver.locate(backend, "#go")

        assert await resolver.is_visible(backend, candidate) is True
        assert await resolver.is_visible(backend, "#go") is True

        node.visible = False
        assert await resolver.is_visible(backend, candidate) is False
        assert await resolver.is_visible(backend, "#go") is False
        assert await resolver.is_visible(backend, "missing thing") is False

    @pytest.mark.asyncio
    async def test_wait_for_element(self, resolver, backend):
        node = backend.add(tag="div", id="toast")

        candidate = await resolver.wait_for_element(backend, "#toast", state="attached", timeout_ms=100)

        assert candidate.handle.nodes == [node]

    @pytest.mark.asyncio
    async def test_wait_for_element_timeout(self, resolver, backend):
        backend.add(tag="div", id="toast")

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            await resolver.wait_for_element(backend, "#toast", state="hidden", timeout_ms=100)

        assert exc_info.value.timeout_ms == 100
        assert "hidden" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_find_clickable_elements(self, resolver, backend):
        backend.scripts["a[href]"] = [
            {"text": "Home", "selector": "#home"},
            {"text": "Buy", "selector": 'button:has-text("Buy")'},
        ]

        found = await resolver.find_clickable_elements(backend)

        assert found == [
            ClickableElement(text="Home", selector="#home"),
            ClickableElement(text="Buy", selector='button:has-text("Buy")'),
        ]

    @pytest.mark.asyncio
    async def test_find_form_elements(self, resolver, backend):
        backend.scripts["textarea"] = [{"label": "Email", "selector": "#email", "type": "input"}]

        found = await resolver.find_form_elements(backend)

        assert found == [FormElement(label="Email", selector="#email", type="input")]

    @pytest.mark.asyncio
    async def test_page_scan_failure(self, resolver, backend):
        backend.scripts["textarea"] = RuntimeError("target closed")

        with pytest.raises(BackendError):
            await resolver.find_form_elements(backend)
