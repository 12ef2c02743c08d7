"""
Pytest configuration and fixtures.
"""

import pytest

from tests.fakes import FakeBackend


@pytest.fixture
def locator_settings():
    """Locator settings with short intervals so wait loops finish quickly."""
    from nl_locator.config import LocatorSettings

    return LocatorSettings(
        default_timeout_ms=1000,
        poll_interval_ms=10,
        retry_pause_ms=10,
        animation_settle_ms=0,
        animation_ceiling_ms=100,
    )


@pytest.fixture
def dynamic_settings():
    """Dynamic content settings with short windows."""
    from nl_locator.config import DynamicContentSettings

    return DynamicContentSettings(
        network_idle_cap_ms=100,
        dom_quiet_ms=10,
        dom_ceiling_ms=100,
    )


@pytest.fixture
def settings(locator_settings, dynamic_settings):
    """Provide test settings."""
    from nl_locator.config import Settings

    return Settings(locator=locator_settings, dynamic_content=dynamic_settings)


@pytest.fixture
def backend():
    """Provide an empty in-memory backend."""
    return FakeBackend()


@pytest.fixture
def resolver(locator_settings, dynamic_settings):
    """Provide a resolver wired to the fast test settings."""
    from nl_locator.engine import ElementResolver

    return ElementResolver(locator_settings, dynamic_settings=dynamic_settings)


@pytest.fixture(autouse=True)
def _reset_settings():
    """Keep the global settings singleton from leaking between tests."""
    from nl_locator.config import reset_settings

    reset_settings()
    yield
    reset_settings()
