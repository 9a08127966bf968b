"""
MirrorHistory CLI - command-line interface for the correlation engines.

Every command opens one database session, commits on success and rolls
back on failure.
"""

import logging
import uuid
from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from mirrorhistory.logging_config import setup_logging

app = typer.Typer(
    name="mirrorhistory",
    help="MirrorHistory - cross-domain temporal correlation over your life log",
    no_args_is_help=True,
)

console = Console()


def _init_logging() -> None:
    # Fall back to console logging if file logging is not permitted
    try:
        setup_logging(context="cli")
    except PermissionError:
        logging.basicConfig(level=logging.INFO)


def _parse_date(value: str) -> date:
    from mirrorhistory.utils.timeutils import parse_date

    try:
        return parse_date(value)
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Invalid date (expected YYYY-MM-DD): {value}")
        raise typer.Exit(1)


@app.command("init-db")
def init_db() -> None:
    """Create the database schema."""
    from mirrorhistory.config import settings
    from mirrorhistory.db.connection import init_db as create_schema

    _init_logging()
    create_schema()
    console.print(f"[green]✓ Database ready:[/green] {settings.database_url}")


@app.command()
def redo(
    day: str = typer.Argument(..., help="UTC day to relive (YYYY-MM-DD)"),
) -> None:
    """Reconstruct a day hour by hour."""
    from mirrorhistory.db.connection import db_session
    from mirrorhistory.redo import SnapshotBuilder

    _init_logging()
    target = _parse_date(day)

    with db_session() as session:
        result = SnapshotBuilder(session).get_hourly_reconstruction(target)

        console.print(f"[bold blue]Re-do {result.date}[/bold blue]: {result.total_events} events")
        for slice_ in result.slices:
            if slice_.event_count == 0:
                continue
            kind = slice_.dominant_type.value if slice_.dominant_type else "-"
            line = f"  {slice_.label}  {slice_.event_count:>3} events  ({kind})"
            if slice_.snapshot.mood is not None:
                line += f"  mood {slice_.snapshot.mood.score}/5"
            if slice_.snapshot.location is not None:
                line += f"  @ {slice_.snapshot.location.address}"
            console.print(line)
        if result.mood_arc:
            arc = " → ".join(f"{p.hour:02d}h:{p.score}" for p in result.mood_arc)
            console.print(f"\n[bold]Mood arc:[/bold] {arc}")


@app.command()
def forensic(
    event_id: str = typer.Argument(..., help="Event to examine"),
    window: Optional[int] = typer.Option(None, help="Neighbourhood half-width in minutes"),
) -> None:
    """Zoom into one event: what surrounded it and what it echoes."""
    from mirrorhistory.db.connection import db_session
    from mirrorhistory.exceptions import EventNotFoundError
    from mirrorhistory.forensic import ForensicReconstructor

    _init_logging()
    try:
        target = uuid.UUID(event_id)
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Invalid event id: {event_id}")
        raise typer.Exit(1)

    with db_session() as session:
        try:
            context = ForensicReconstructor(session).get_context(target, window)
        except EventNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

        event = context.event
        console.print(
            f"[bold blue]{event.type.value}[/bold blue] at {event.timestamp.isoformat()}: "
            f"{event.summary}"
        )
        console.print(f"  Before: {len(context.before)} events")
        for e in context.before:
            console.print(f"    {e.timestamp:%H:%M} {e.type.value} {e.summary}")
        console.print(f"  After: {len(context.after)} events")
        for e in context.after:
            console.print(f"    {e.timestamp:%H:%M} {e.type.value} {e.summary}")

        if context.similar_moments:
            console.print("\n[bold]Similar moments:[/bold]")
            for moment in context.similar_moments:
                console.print(
                    f"  {moment.date}  {moment.similarity:.0%}  {moment.summary}"
                )

        console.print("\n[bold]Questions:[/bold]")
        for question in context.suggested_questions:
            console.print(f"  • {question}")


@app.command()
def moments(
    start: Optional[str] = typer.Option(None, help="First day (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, help="Last day (YYYY-MM-DD)"),
) -> None:
    """Show the significant moments of a range (default: the last week)."""
    from mirrorhistory.db.connection import db_session
    from mirrorhistory.moments import MomentDetector

    _init_logging()
    with db_session() as session:
        detector = MomentDetector(session)
        if start is None and end is None:
            found = detector.weekly_highlights()
        else:
            end_date = _parse_date(end) if end else detector.clock().date()
            start_date = _parse_date(start) if start else end_date
            found = detector.detect(start_date, end_date)

        if not found:
            console.print("[yellow]No significant moments found[/yellow]")
            return
        for moment in found:
            console.print(
                f"{moment.icon} [bold]{moment.title}[/bold] ({moment.date}, "
                f"score {moment.score:.2f})"
            )
            console.print(f"   {moment.description}")


@app.command()
def confront(
    period: str = typer.Option("weekly", help="weekly or monthly"),
) -> None:
    """Regenerate and show the confrontations for a period."""
    from mirrorhistory.confrontations import ConfrontationGenerator
    from mirrorhistory.db.connection import db_session
    from mirrorhistory.exceptions import InvalidPeriodError

    _init_logging()
    with db_session() as session:
        try:
            result = ConfrontationGenerator(session).generate(period)
        except InvalidPeriodError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

        if not result.generated:
            console.print("[green]Nothing to confront you with. For now.[/green]")
            return
        for row in sorted(result.confrontations, key=lambda r: r.severity, reverse=True):
            console.print(
                f"[bold red]{row.title}[/bold red] "
                f"[dim]({row.category.value}, severity {row.severity:.2f})[/dim]"
            )
            console.print(f"  {row.insight}")
            for point in row.data_points:
                console.print(f"    {point['label']}: {point['value']}")


@app.command()
def compare(
    p1_start: str = typer.Argument(..., help="Period 1 first day"),
    p1_end: str = typer.Argument(..., help="Period 1 last day"),
    p2_start: str = typer.Argument(..., help="Period 2 first day"),
    p2_end: str = typer.Argument(..., help="Period 2 last day"),
) -> None:
    """Compare two periods metric by metric."""
    from mirrorhistory.comparison import ComparisonEngine
    from mirrorhistory.db.connection import db_session

    _init_logging()
    dates = [_parse_date(v) for v in (p1_start, p1_end, p2_start, p2_end)]

    with db_session() as session:
        result = ComparisonEngine(session).compare(*dates)

    console.print(
        f"[bold blue]{result.period1.start}..{result.period1.end}[/bold blue] vs "
        f"[bold blue]{result.period2.start}..{result.period2.end}[/bold blue]"
    )
    if not result.changes:
        console.print("[yellow]No data in either period[/yellow]")
    arrows = {"up": "↑", "down": "↓", "stable": "→"}
    for change in result.changes:
        console.print(
            f"  {escape(f'[{change.domain}]')} {change.metric}: "
            f"{change.period1_value:g} → {change.period2_value:g} "
            f"{arrows[change.direction]} {change.change_pct:+.1f}%"
        )
    if result.narrative:
        console.print(f"\n{result.narrative}")


@app.command()
def scan(
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)"),
    end: str = typer.Argument(..., help="Last day (YYYY-MM-DD)"),
) -> None:
    """Scan a date range for inconsistencies."""
    from mirrorhistory.db.connection import db_session
    from mirrorhistory.inconsistencies import InconsistencyScanner

    _init_logging()
    start_date, end_date = _parse_date(start), _parse_date(end)
    if end_date < start_date:
        console.print("[bold red]Error:[/bold red] END is before START")
        raise typer.Exit(1)

    with db_session() as session:
        result = InconsistencyScanner(session).scan(start_date, end_date)

        console.print(
            f"Scanned {result.scanned_days} day(s), "
            f"found {len(result.found)} inconsistencies"
        )
        for row in result.found:
            console.print(f"  [bold]{row.date}[/bold] {row.title}")
            console.print(f"    {row.description}")
            if row.suggested_question:
                console.print(f"    [italic]{row.suggested_question}[/italic]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Defaults come from the API settings.
    """
    import uvicorn

    from mirrorhistory.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    reload = settings.api_reload if reload is None else reload

    console.print("[bold green]Starting MirrorHistory API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "mirrorhistory.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
