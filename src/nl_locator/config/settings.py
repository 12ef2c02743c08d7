"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from nl_locator.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.locator.poll_interval_ms)
    100
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocatorSettings(BaseModel):
    """
    Element resolution and readiness settings.

    Attributes:
        default_timeout_ms: Deadline for wait-until-ready calls
        poll_interval_ms: Interval between bounding box polls
        stable_checks_required: Consecutive unchanged polls needed for stability
        stability_threshold_px: Largest per-axis delta still counted as unchanged
        animation_settle_ms: Extra delay after animations report completion
        animation_ceiling_ms: Upper bound on waiting for animations
        retry_pause_ms: Pause between readiness attempts
        wait_for_stable: Run the stability check by default
        wait_for_animations: Run the animation check by default
    """
    default_timeout_ms: int = Field(default=30000, ge=100, le=300000)
    poll_interval_ms: int = Field(default=100, ge=1, le=5000)
    stable_checks_required: int = Field(default=3, ge=1, le=20)
    stability_threshold_px: float = Field(default=1.0, gt=0.0, le=50.0)
    animation_settle_ms: int = Field(default=200, ge=0, le=5000)
    animation_ceiling_ms: int = Field(default=5000, ge=0, le=60000)
    retry_pause_ms: int = Field(default=100, ge=1, le=5000)
    wait_for_stable: bool = True
    wait_for_animations: bool = True


class DynamicContentSettings(BaseModel):
    """
    Page-level dynamic content wait settings.

    Attributes:
        load_state: Load state to wait for before anything else
        network_idle_cap_ms: Upper bound on the network-idle wait
        dom_quiet_ms: Mutation-free window that counts as quiescent
        dom_ceiling_ms: Upper bound on the mutation-quiescence wait
    """
    load_state: Literal["load", "domcontentloaded", "networkidle"] = "domcontentloaded"
    network_idle_cap_ms: int = Field(default=5000, ge=0, le=60000)
    dom_quiet_ms: int = Field(default=500, ge=10, le=10000)
    dom_ceiling_ms: int = Field(default=3000, ge=10, le=60000)


class BrowserSettings(BaseModel):
    """
    Browser settings used by the command line tool.

    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser to launch
        timeout_ms: Navigation timeout
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
    """
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)


class LoggingSettings(BaseModel):
    """
    Logging configuration.

    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


def deep_merge(base: dict, updates: dict) -> dict:
    """Recursively merge updates into base (in place) and return base."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.

    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with NL_LOCATOR__)
    3. Config file (YAML)
    4. Default values

    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(locator=LocatorSettings(poll_interval_ms=50))
    """

    model_config = SettingsConfigDict(
        env_prefix="NL_LOCATOR__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    locator: LocatorSettings = Field(default_factory=LocatorSettings)
    dynamic_content: DynamicContentSettings = Field(default_factory=DynamicContentSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = False

    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New Settings instance with overrides applied
        """
        merged = deep_merge(self.model_dump(), overrides)
        return Settings(**merged)
