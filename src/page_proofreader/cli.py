"""
Command-line interface for the page proofreader.

Proofreads a web page or local HTML file and writes the page back out with
inline correction annotations.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_MODEL, ProofreaderConfig
from .content_selector import ContentSelector
from .correction_service import CorrectionService, create_correction_service
from .errors import ConfigError, ContentLoadError, CorrectionServiceError
from .layout import StaticLayout
from .models import ElementOutcome, OutcomeStatus, RunSummary
from .page_sources import load_html
from .pipeline import ProofreadSession

console = Console()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    else:
        logging.basicConfig(level=logging.WARNING)


@click.command()
@click.argument("source", required=False, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--url",
    type=str,
    help="URL of the page to proofread.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output path for the annotated HTML page.",
)
@click.option(
    "--api-key",
    type=str,
    envvar="ANTHROPIC_API_KEY",
    help="Anthropic API key. Can also be set via ANTHROPIC_API_KEY env var.",
)
@click.option(
    "--model",
    type=str,
    default=DEFAULT_MODEL,
    show_default=True,
    help="Model used for proofreading.",
)
@click.option(
    "--corrections",
    type=click.Path(exists=True, path_type=Path),
    help="JSON file of recorded corrections to replay instead of calling the API.",
)
@click.option(
    "--max-candidates",
    type=int,
    default=20,
    help="Maximum number of elements to select (default: 20).",
)
@click.option(
    "--list-candidates",
    is_flag=True,
    default=False,
    help="Only list the selected elements; do not proofread.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
def main(
    source: Optional[Path],
    url: Optional[str],
    output: Optional[Path],
    api_key: Optional[str],
    model: str,
    corrections: Optional[Path],
    max_candidates: int,
    list_candidates: bool,
    verbose: bool,
) -> None:
    """
    Page Proofreader - Annotate spelling and grammar fixes inline.

    Selects the readable content of a page, proofreads each block with an
    AI correction service, and writes the page back with every correction
    marked up in place.

    Examples:

        page-proofread article.html -o article.proofread.html

        page-proofread --url https://example.com/post --list-candidates

        page-proofread page.html --corrections recorded.json -o out.html
    """
    if not source and not url:
        console.print("[red]Error:[/red] Must provide either a SOURCE file or --url")
        sys.exit(1)

    if source and url:
        console.print("[red]Error:[/red] Provide only one of SOURCE or --url")
        sys.exit(1)

    _configure_logging(verbose)

    console.print(Panel.fit(
        "[bold blue]Page Proofreader[/bold blue]\n"
        "Inline spelling, grammar and punctuation corrections",
        border_style="blue",
    ))

    try:
        config = ProofreaderConfig(max_candidates=max_candidates, model=model)

        with console.status("[bold green]Loading page..."):
            document = load_html(url or str(source))
        console.print(f"  Loaded page from: {url or source}")

        if list_candidates:
            _display_candidates(document, config)
            return

        service = create_correction_service(
            api_key=api_key,
            model=config.model,
            max_tokens=config.max_tokens,
            corrections_file=corrections,
        )

        console.print("\n[bold]Proofreading...[/bold]")
        summary = asyncio.run(_run_session(service, config, document, verbose))

        if output:
            output.write_text(str(document), encoding="utf-8")
            console.print(f"\n[bold green]Success![/bold green] Output saved to: {output}")

        _display_summary(summary, verbose)

    except ContentLoadError as e:
        console.print(f"[red]Page loading error:[/red] {e}")
        sys.exit(1)
    except CorrectionServiceError as e:
        console.print(f"[red]Correction service error:[/red] {e}")
        sys.exit(1)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        sys.exit(1)


async def _run_session(
    service: CorrectionService,
    config: ProofreaderConfig,
    document,
    verbose: bool,
) -> RunSummary:
    """Run one session, printing a line per finished element."""
    session = ProofreadSession(service, config=config, layout=StaticLayout())

    def on_element_done(outcome: ElementOutcome) -> None:
        style = {
            OutcomeStatus.CHANGED: "green",
            OutcomeStatus.UNCHANGED: "dim",
            OutcomeStatus.FAILED: "red",
        }.get(outcome.status, "yellow")
        preview = " ".join(outcome.candidate.text.split())[:60]
        line = f"  [{style}]{outcome.status.value:>9}[/{style}] {outcome.candidate.type.value}: {preview}"
        if outcome.annotations:
            line += f" [cyan]({outcome.annotations} corrections)[/cyan]"
        if verbose and outcome.error:
            line += f" [red]{outcome.error}[/red]"
        console.print(line)

    try:
        return await session.run(document, on_element_done=on_element_done)
    finally:
        await service.aclose()


def _display_candidates(document, config: ProofreaderConfig) -> None:
    """Display the elements content selection picked."""
    selector = ContentSelector(config, StaticLayout())
    candidates = selector.select_candidates(document)

    table = Table(title=f"Selected Elements ({len(candidates)})", show_header=True)
    table.add_column("#", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Priority", style="yellow")
    table.add_column("Text", style="green")

    for index, candidate in enumerate(candidates):
        preview = " ".join(candidate.text.split())
        if len(preview) > 70:
            preview = preview[:67] + "..."
        table.add_row(str(index), candidate.type.value, str(candidate.priority), preview)

    console.print(table)


def _display_summary(summary: RunSummary, verbose: bool) -> None:
    """Display run summary."""
    console.print("\n[bold]Proofreading Summary[/bold]")

    table = Table(show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")

    table.add_row("Candidates", str(summary.candidates))
    table.add_row("Processed", str(summary.processed))
    table.add_row("Changed", str(summary.changed))
    table.add_row("Unchanged", str(summary.unchanged))
    table.add_row("Failed", str(summary.failed))

    console.print(table)

    if summary.cancelled:
        console.print("\n[yellow]Run was cancelled before all elements were processed.[/yellow]")

    if verbose:
        annotations = sum(outcome.annotations for outcome in summary.outcomes)
        console.print(f"\n[dim]Corrections annotated: {annotations}[/dim]")


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
