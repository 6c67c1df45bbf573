"""
Travel Guard CLI

Checks exported login histories for "impossible travel": logins of one identity whose
locations are too far apart for the time between them.
"""

import csv
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from travelguard import configure_logging
from travelguard.analyzer import generate_verdict_summary, validate_login_history
from travelguard.config import ValidatorConfig, build_config, with_max_allowed_speed, with_max_events
from travelguard.events import (
    CompletionEvent,
    DataLoadingEvent,
    ErrorEvent,
    EventType,
    IdentityCheckedEvent,
    ProcessingEvent,
)
from travelguard.loader import load_login_history, validate_data
from travelguard.models import IdentityVerdict

configure_logging(level="ERROR", enable_dev_logging=False)

REPORT_FIELDS = [
    "identity",
    "is_valid",
    "login_count",
    "violation_distance_km",
    "violation_hours",
    "violation_speed_kmh",
]


class AnalysisError(Exception):
    """Custom exception for analysis errors."""

    def __init__(self, error_type: str, message: str):
        self.error_type = error_type
        super().__init__(f"{error_type}: {message}")


class ProgressManager:
    """Manages Rich progress bars and UI updates during validation."""

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet
        self.progress: Optional[Progress] = None
        self.main_task = None

    def __enter__(self):
        if not self.quiet:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TimeElapsedColumn(),
                console=self.console,
            )
            self.progress.__enter__()
            self.main_task = self.progress.add_task("Starting validation...", total=100)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.progress:
            self.progress.__exit__(exc_type, exc_val, exc_tb)

    def update_data_loading(self, event: DataLoadingEvent) -> None:
        if not self.quiet and self.progress:
            self.progress.update(self.main_task, description=f"📊 {event.message}")
            if event.data and event.data.get("total_records") is not None:
                self.console.print(
                    f"  📈 {event.data['total_records']:,} logins across {event.data['identities']:,} identities"
                )

    def update_processing(self, event: ProcessingEvent) -> None:
        if not self.quiet and self.progress:
            self.progress.update(self.main_task, description=f"📏 {event.message}")

    def update_identity_checked(self, event: IdentityCheckedEvent) -> None:
        if not self.quiet and self.progress:
            self.progress.update(self.main_task, completed=event.data["progress_percentage"])
            if not event.data["is_valid"]:
                self.console.print(f"  🔴 {event.data['identity']}: impossible travel")

    def update_completion(self, event: CompletionEvent) -> None:
        if self.progress:
            self.progress.update(self.main_task, completed=100, description="✅ Validation completed")

    def handle_error(self, event: ErrorEvent) -> None:
        if self.progress:
            self.progress.update(self.main_task, description=f"❌ {event.message}")
        self.console.print(f"[red]❌ Error: {event.message}[/red]")
        if event.data.get("error_details"):
            self.console.print(f"[red]   Details: {event.data['error_details']}[/red]")


class ResultCollector:
    """Collects verdicts as identities are checked."""

    def __init__(self):
        self.verdicts: list[IdentityVerdict] = []
        self.flagged_count = 0

    def handle_identity_checked(self, event: IdentityCheckedEvent) -> None:
        if not event.data.get("is_valid"):
            self.flagged_count += 1

    def set_final_verdicts(self, verdicts: list[IdentityVerdict]) -> None:
        self.verdicts = verdicts

    def get_verdicts(self) -> list[IdentityVerdict]:
        return self.verdicts


class AnalysisEventProcessor:
    """Drives the validation generator and routes its events to the UI."""

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet

    def process_stream(self, df, config: ValidatorConfig) -> list[IdentityVerdict]:
        progress_manager = ProgressManager(self.console, self.quiet)
        result_collector = ResultCollector()

        with progress_manager:
            stream = validate_login_history(df, config)

            while True:
                try:
                    event = next(stream)
                except StopIteration as e:
                    result_collector.set_final_verdicts(e.value if e.value is not None else [])
                    break

                self._dispatch_event(event, progress_manager, result_collector)

        return result_collector.get_verdicts()

    def _dispatch_event(self, event, progress_manager: ProgressManager, result_collector: ResultCollector) -> None:
        if event.type == EventType.DATA_LOADING:
            progress_manager.update_data_loading(event)

        elif event.type == EventType.PROCESSING:
            progress_manager.update_processing(event)

        elif event.type == EventType.IDENTITY_CHECKED:
            progress_manager.update_identity_checked(event)
            result_collector.handle_identity_checked(event)

        elif event.type == EventType.COMPLETION:
            progress_manager.update_completion(event)

        elif event.type == EventType.ERROR:
            progress_manager.handle_error(event)
            raise AnalysisError(event.data["error_type"], event.message)


console = Console()
app = typer.Typer(
    name="travelguard",
    help="🧭 Detect impossible travel in login histories",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback() -> None:
    """🧭 Detect impossible travel in login histories."""


def write_csv_report(verdicts: list[IdentityVerdict], output_path: str) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=REPORT_FIELDS)
        writer.writeheader()

        for verdict in verdicts:
            writer.writerow(verdict.to_csv_row())

    console.print(f"✅ Verdicts written to: [bold green]{output_path}[/bold green]")


def print_rich_data_summary(stats: dict[str, any]) -> None:
    info_table = Table(title="📊 Data Summary", show_header=False, box=None)
    info_table.add_column("Metric", style="cyan", width=25)
    info_table.add_column("Value", style="white")

    info_table.add_row("Total logins", f"{stats['total_records']:,}")
    info_table.add_row("Identities", f"{stats['identities']:,}")
    info_table.add_row("Logins with location", f"[green]{stats['records_with_location']:,}[/green]")
    info_table.add_row("Logins without location", f"[dim]{stats['records_without_location']:,}[/dim]")

    if stats["date_range"]:
        start_date, end_date = stats["date_range"]
        info_table.add_row(
            "Date range", f"{start_date.strftime('%Y-%m-%d %H:%M')} to {end_date.strftime('%Y-%m-%d %H:%M')}"
        )

    console.print(Panel(info_table, expand=False, border_style="blue"))


def print_rich_verdict_summary(summary: dict[str, any]) -> None:
    if not summary:
        console.print("[red]❌ No verdicts to display.[/red]")
        return

    results_table = Table(title="🎯 Verdicts", show_header=False, box=None)
    results_table.add_column("Metric", style="cyan", width=30)
    results_table.add_column("Value", style="white")

    color = "red" if summary["invalid_identities"] else "green"
    results_table.add_row("Identities checked", f"{summary['total_identities']:,}")
    results_table.add_row("Logins compared", f"{summary['total_logins']:,}")
    results_table.add_row("Impossible travel", f"[bold {color}]{summary['invalid_identities']:,}[/bold {color}]")
    results_table.add_row("Flagged share", f"[bold {color}]{summary['invalid_percentage']:.1f}%[/bold {color}]")

    console.print(Panel(results_table, expand=False, border_style="green"))

    if summary["flagged_identities"]:
        console.print(
            Panel(", ".join(summary["flagged_identities"]), title="🔴 Flagged identities", border_style="red")
        )


@app.command()
def check(
    input_file: Path = typer.Argument(  # noqa: B008
        ...,
        help="CSV with identity, longitude, latitude and created_at columns",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    output: Path = typer.Option("travel_verdicts.csv", "--output", "-o", help="Output CSV file path"),  # noqa: B008
    max_speed: float = typer.Option(
        0.0, "--max-speed", "-s", help="Maximum plausible speed in km/h (0 keeps the default of 10)", min=0.0
    ),
    max_events: int = typer.Option(
        0, "--max-events", help="Most recent logins compared per identity (0 keeps the default)", min=0
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress verbose output"),
) -> None:
    """
    🧭 Check every identity in a login history for impossible travel.

    Each identity's logins are compared pairwise; an identity is flagged when any two of its
    logins imply a travel speed above the configured maximum.
    """
    config = build_config(with_max_allowed_speed(max_speed), with_max_events(max_events))

    if not quiet:
        config_table = Table(title="⚙️  Configuration", show_header=False)
        config_table.add_column("Parameter", style="cyan")
        config_table.add_column("Value", style="white")

        config_table.add_row("Input file", str(input_file))
        config_table.add_row("Output file", str(output))
        config_table.add_row("Max speed", f"{config.max_allowed_speed_kmh:g} km/h")
        config_table.add_row("Max logins per identity", f"{config.max_events:,}")

        console.print(Panel(config_table, expand=False, border_style="cyan"))

    try:
        df = load_login_history(str(input_file))
        stats = validate_data(df)

        if not quiet:
            print_rich_data_summary(stats)

        if df.empty:
            console.print("[red]❌ No valid records found in input file.[/red]")
            raise typer.Exit(1)

        processor = AnalysisEventProcessor(console, quiet)
        verdicts = processor.process_stream(df, config)

        if not verdicts:
            console.print("[red]❌ No verdicts produced.[/red]")
            raise typer.Exit(1)

        write_csv_report(verdicts, str(output))

        if not quiet:
            print_rich_verdict_summary(generate_verdict_summary(verdicts))

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]❌ Error during validation: {e}[/red]")
        if not quiet:
            console.print_exception()
        raise typer.Exit(1) from e


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
