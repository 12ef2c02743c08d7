"""
NL Locator - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--timeout, --visible, etc.)
    2. Environment variables (NL_LOCATOR__LOCATOR__DEFAULT_TIMEOUT_MS, etc.)
    3. Config file (nl-locator.yaml)

Usage:
    nl-locator normalize 'click the "Submit Now" button'
    nl-locator locate https://example.com "first login link" --wait
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from nl_locator import __version__
from nl_locator.backends.playwright_backend import PlaywrightSession
from nl_locator.config import get_settings, load_config
from nl_locator.config.settings import Settings
from nl_locator.engine.description_normalizer import DescriptionNormalizer
from nl_locator.engine.element_resolver import ElementInfo, ElementResolver
from nl_locator.exceptions import NLLocatorError
from nl_locator.utils.logging import setup_logging_from_settings

# Create the CLI app
app = typer.Typer(
    name="nl-locator",
    help="Find web page elements from natural-language descriptions",
    add_completion=False,
)

console = Console()


def _load_settings(config: Optional[str]) -> Settings:
    if config:
        return load_config(config_path=config)
    return get_settings()


@app.command()
def normalize(
    description: str = typer.Argument(..., help="Element description to normalize"),
):
    """
    Show how a description is interpreted.

    Examples:
        nl-locator normalize 'click the "Submit Now" button'
        nl-locator normalize "red warning banner"
    """
    normalizer = DescriptionNormalizer()
    result = normalizer.normalize(description)
    hints = normalizer.to_selector_hints(result)

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("normalized", escape(repr(result.normalized)))
    table.add_row("element_type", str(result.element_type))
    table.add_row("action", str(result.action))
    table.add_row("modifiers", escape(", ".join(result.modifiers)) or "-")
    for key, value in result.attributes.items():
        table.add_row(f"attributes.{key}", escape(value))
    table.add_row("hint.role", str(hints.role))
    table.add_row("hint.name", escape(str(hints.name)))
    table.add_row("hint.text", escape(str(hints.text)))

    console.print(Panel.fit(f"[bold blue]{escape(description)}[/bold blue]", border_style="blue"))
    console.print(table)


@app.command()
def locate(
    url: str = typer.Argument(..., help="Page to open"),
    description: str = typer.Argument(..., help="Element description or selector"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait until the element is ready"),
    all_matches: bool = typer.Option(False, "--all", "-a", help="List every match"),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-t", help="Readiness timeout in ms"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Open a page and resolve a description to an element.

    Examples:
        nl-locator locate https://example.com "more information link"
        nl-locator locate https://example.com "#main" --all
    """
    try:
        settings = _load_settings(config)
    except NLLocatorError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    setup_logging_from_settings(settings.logging, verbose=verbose)

    try:
        asyncio.run(_locate_async(
            settings=settings,
            url=url,
            description=description,
            wait=wait,
            all_matches=all_matches,
            timeout_ms=timeout,
            headless=not visible,
        ))
    except NLLocatorError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        if e.suggestion:
            console.print(f"[dim]Hint: {escape(e.suggestion)}[/dim]")
        raise typer.Exit(1)


async def _locate_async(
    settings: Settings,
    url: str,
    description: str,
    wait: bool,
    all_matches: bool,
    timeout_ms: Optional[int],
    headless: bool,
):
    """Launch a browser, open the page, resolve and print."""
    b = settings.browser
    resolver = ElementResolver(settings.locator, dynamic_settings=settings.dynamic_content)

    async with PlaywrightSession(
        headless=headless,
        browser_type=b.browser_type,
        viewport_width=b.viewport_width,
        viewport_height=b.viewport_height,
        timeout_ms=b.timeout_ms,
    ) as session:
        console.print(f"[dim]🌐 Navigating to {url}...[/dim]")
        backend = await session.open(url)
        await resolver.wait_for_dynamic_content(backend)

        if all_matches:
            candidates = await resolver.locate_all(backend, description)
            if not candidates:
                console.print(f"[yellow]⚠ No elements match '{escape(description)}'[/yellow]")
                return
            console.print(f"[green]✓ {len(candidates)} match(es) via {candidates[0].strategy}[/green]")
            for i, candidate in enumerate(candidates, 1):
                info = await resolver.get_element_info(candidate)
                console.print(f"  {i}. {_summarize(info)}")
            return

        if wait:
            candidate = await resolver.locate_with_wait(backend, description, timeout_ms=timeout_ms)
        else:
            candidate = await resolver.locate(backend, description)

        info = await resolver.get_element_info(candidate)
        console.print(f"[green]✓ Found via {candidate.strategy}[/green] ({candidate.count} match(es))")
        _print_info(info)


def _summarize(info: ElementInfo) -> str:
    attrs = info.attributes
    text = (attrs.get("text_content") or "")[:60]
    state = "visible" if info.visible else "hidden"
    return escape(f"<{attrs.get('tag_name', '?')}> {text!r} ({state})")


def _print_info(info: ElementInfo) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    for key in ("found", "visible", "enabled", "bounding_box"):
        table.add_row(key, escape(str(getattr(info, key))))
    for key, value in info.attributes.items():
        table.add_row(key, escape(str(value)))
    console.print(table)


@app.command()
def version():
    """Show version information."""
    console.print(f"nl-locator version {__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
