"""tourlens CLI - discover and narrate landmarks from the terminal."""

from __future__ import annotations

import asyncio
import base64
import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.status import Status
from rich.table import Table

from tourlens import __version__
from tourlens.common.errors import TourLensError
from tourlens.common.events import Event
from tourlens.common.logging import setup_logging
from tourlens.config import Config, load_config
from tourlens.discovery import CandidatePlace
from tourlens.generation import create_generation_provider
from tourlens.guide import PHASE_TOPIC, GuidePhase, OutputFormat, TourGuide
from tourlens.location import create_location_provider

app = typer.Typer(
    name="tourlens",
    help="Identify landmarks, read their history and listen to a narration",
    no_args_is_help=True,
)
console = Console()

LanguageOption = typer.Option(None, "--language", "-l", help="Output language, e.g. 'English'")
FormatOption = typer.Option(None, "--format", "-f", help="What to produce for a landmark")
MockOption = typer.Option(False, "--mock", help="Use mock providers (no network, no audio device)")
PlayOption = typer.Option(True, "--play/--no-play", help="Play the narration when available")


def get_config(mock: bool = False) -> Config:
    """Get configuration."""
    config = load_config()
    if mock:
        config.mock_mode = True
    return config


def build_guide(
    config: Config,
    language: str | None = None,
    output_format: OutputFormat | None = None,
) -> TourGuide:
    """Wire a guide from configuration."""
    setup_logging(
        level=config.app.log_level,
        json_output=config.app.mode == "production",
        app_name=config.app.name,
    )
    guide = TourGuide(
        config,
        provider=create_generation_provider(config, config.mock_mode),
        locator=create_location_provider(config, config.mock_mode),
    )
    if language:
        guide.language = language
    if output_format:
        guide.output_format = output_format
    return guide


@contextmanager
def progress(guide: TourGuide, message: str) -> Iterator[Status]:
    """Spinner that follows the guide's phase changes."""
    with console.status(message) as status:

        async def on_phase(event: Event) -> None:
            status.update(event.data.get("step") or event.data["phase"])

        unsubscribe = guide.events.subscribe(PHASE_TOPIC, on_phase)
        try:
            yield status
        finally:
            unsubscribe()


def _print_places(places: list[CandidatePlace]) -> None:
    table = Table(title="Nearby historical places")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Distance", justify="right")

    for i, place in enumerate(places, start=1):
        table.add_row(str(i), place.name, place.category, place.distance_label)

    console.print(table)


def _print_error(guide: TourGuide) -> None:
    if guide.error:
        console.print(f"[red]Error:[/] {guide.error.message}")


async def _present_result(guide: TourGuide, play: bool) -> None:
    result = guide.result
    if result is None:
        _print_error(guide)
        return

    console.print(Panel(f"[bold]{result.landmark_name}[/]", title="Landmark"))
    if result.confidence_score is not None:
        console.print(f"  Confidence: {result.confidence_score:.0%}")
    if result.photos_link:
        console.print(f"  Real photos and map: [link={result.photos_link}]{result.photos_link}[/link]")

    if guide.output_format.wants_text:
        console.print()
        console.print(result.history)

    if result.citations:
        table = Table(title="Sources")
        table.add_column("Kind", style="cyan")
        table.add_column("Title")
        table.add_column("Host", style="dim")
        for citation in result.citations:
            table.add_row(citation.kind, citation.label, citation.host)
        console.print(table)

    narration = guide.narration
    if not guide.output_format.wants_audio:
        return
    if not narration.is_ready:
        console.print("[dim]Narration unavailable.[/]")
        return
    if not play:
        console.print(f"[dim]Narration ready ({narration.audio.duration:.1f}s).[/]")
        return

    if not narration.play():
        console.print("[yellow]Narration could not be played on this device.[/]")
        return
    console.print("[green]Playing narration[/] (Ctrl+C to stop)")
    try:
        await narration.wait_finished()
    except (KeyboardInterrupt, asyncio.CancelledError):
        narration.stop()
        raise


@app.command()
def nearby(
    language: Optional[str] = LanguageOption,
    output_format: Optional[OutputFormat] = FormatOption,
    mock: bool = MockOption,
    play: bool = PlayOption,
):
    """Discover historical places around you and pick one."""

    async def _nearby() -> int:
        async with build_guide(get_config(mock), language, output_format) as guide:
            with progress(guide, "Starting"):
                await guide.discover_nearby()

            if not guide.places:
                _print_error(guide)
                return 1

            while True:
                _print_places(guide.places)
                choice = await asyncio.to_thread(
                    Prompt.ask, "Pick a number, m for more, q to quit", default="1"
                )
                choice = choice.strip().lower()

                if choice == "q":
                    return 0
                if choice == "m":
                    with progress(guide, "Loading more places"):
                        await guide.load_more()
                    if guide.phase is GuidePhase.ERROR:
                        _print_error(guide)
                    continue
                if choice.isdigit() and 1 <= int(choice) <= len(guide.places):
                    name = guide.places[int(choice) - 1].name
                    with progress(guide, "Resolving"):
                        await guide.select_place(name)
                    await _present_result(guide, play)
                    return 0 if guide.result else 1

                console.print("[yellow]Unknown choice[/]")

    sys.exit(asyncio.run(_nearby()))


@app.command()
def identify(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Photo of the landmark"),
    language: Optional[str] = LanguageOption,
    output_format: Optional[OutputFormat] = FormatOption,
    mock: bool = MockOption,
    play: bool = PlayOption,
):
    """Identify the landmark in a photo."""
    image_b64 = base64.b64encode(image.read_bytes()).decode("ascii")

    async def _identify() -> int:
        async with build_guide(get_config(mock), language, output_format) as guide:
            with progress(guide, "Starting"):
                await guide.analyze_image(image_b64)
            await _present_result(guide, play)
            return 0 if guide.result else 1

    sys.exit(asyncio.run(_identify()))


@app.command()
def place(
    name: str = typer.Argument(..., help="Landmark name, ideally with its city"),
    language: Optional[str] = LanguageOption,
    output_format: Optional[OutputFormat] = FormatOption,
    mock: bool = MockOption,
    play: bool = PlayOption,
):
    """Show the history of a named landmark."""

    async def _place() -> int:
        async with build_guide(get_config(mock), language, output_format) as guide:
            with progress(guide, "Starting"):
                await guide.select_place(name)
            await _present_result(guide, play)
            return 0 if guide.result else 1

    sys.exit(asyncio.run(_place()))


@app.command()
def config(json_output: bool = typer.Option(False, "--json", help="Print as JSON")):
    """Show configuration."""
    cfg = get_config()

    if json_output:
        data = cfg.model_dump()
        if data["gemini"]["api_key"]:
            data["gemini"]["api_key"] = "***"
        print(json.dumps(data, indent=2, default=str))
        return

    console.print("[bold]Configuration[/]")
    console.print(f"  Mode: {cfg.app.mode}")
    console.print(f"  Mock Mode: {cfg.mock_mode}")
    console.print(f"  Language: {cfg.guide.language}")
    console.print(f"  Output: {cfg.guide.output_format}")
    console.print("\n[bold]Gemini[/]")
    console.print(f"  API key: {'set' if cfg.gemini.api_key else 'missing'}")
    console.print(f"  Search model: {cfg.gemini.search_model}")
    console.print(f"  Voice: {cfg.gemini.voice}")
    console.print("\n[bold]Location[/]")
    console.print(f"  Provider: {cfg.location.provider}")
    console.print(f"  Discovery timeout: {cfg.location.discovery_timeout_seconds:g}s")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]tourlens[/] v{__version__}")


def main():
    """Main entry point."""
    try:
        app()
    except TourLensError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
