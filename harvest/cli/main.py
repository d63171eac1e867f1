"""Main CLI entrypoint for harvest.

Commands:
    harvest extract --scheduled              Scheduled run (as launched by cron)
    harvest extract --session <id>           Extract one specific session
    harvest extract --since 30m --slugs ...  Extract recent sessions matching slugs
    harvest extract --dry-run                Report without staging anything
"""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler

import click
from rich.console import Console
from rich.logging import RichHandler

from harvest import __version__
from harvest.config import get_config

console = Console()

RULE = "═" * 59


def setup_logging() -> None:
    """Configure logging with rich console output and an optional rotating file."""
    config = get_config()

    handlers: list[logging.Handler] = [RichHandler(console=console, rich_tracebacks=True)]
    if config.logging.file:
        config.logging.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.logging.file,
            maxBytes=config.logging.max_bytes,
            backupCount=config.logging.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(config.logging.format))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
        handlers=handlers,
    )


@click.group()
@click.version_option(version=__version__, prog_name="harvest")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """harvest - guardrailed extraction scheduler.

    Pulls todos, bugs, decisions and worklogs out of cleaned session
    transcripts and stages them for downstream routing.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        get_config().logging.level = "DEBUG"

    setup_logging()


@cli.command()
def init() -> None:
    """Initialize the database."""
    from harvest.db import get_database

    console.print("[bold blue]Initializing harvest...[/]")

    try:
        db = get_database()
        db.migrate()
        console.print(f"[green]✓[/] Database initialized at [cyan]{db.db_path}[/]")
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {e}")
        sys.exit(1)


@cli.command()
@click.option("--scheduled", is_flag=True, help="Run in scheduled mode")
@click.option("--session", "session_id", default=None, help="Extract from a specific session ID")
@click.option(
    "--since",
    default=None,
    help="Lookback duration, e.g. 30m, 1h, 24h (default from config)",
)
@click.option(
    "--slugs",
    default=None,
    help="Comma-separated slug filter (default: the configured allowlist)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be extracted without staging")
@click.option(
    "--limit",
    default=None,
    type=click.IntRange(min=1),
    help="Max sessions to process (default from config)",
)
@click.option(
    "--status",
    default=None,
    help="Required session status (default from config)",
)
@click.option(
    "--verify-transcripts/--no-verify-transcripts",
    default=None,
    help="Only select sessions with a stored clean transcript",
)
@click.option("--json", "output_json", is_flag=True, help="Output the run report as JSON")
def extract(
    scheduled: bool,
    session_id: str | None,
    since: str | None,
    slugs: str | None,
    dry_run: bool,
    limit: int | None,
    status: str | None,
    verify_transcripts: bool | None,
    output_json: bool,
) -> None:
    """Extract todos, bugs, worklogs and decisions from sessions."""
    from harvest.db import get_database
    from harvest.pipeline import NoValidSlugsError, RunOptions, run_extraction

    config = get_config()
    slug_list = (
        [s.strip() for s in slugs.split(",") if s.strip()]
        if slugs is not None
        else None
    )

    options = RunOptions.from_config(
        config,
        session_id=session_id,
        since=since,
        slugs=slug_list,
        limit=limit,
        status=status,
        verify_transcripts=verify_transcripts,
        dry_run=dry_run,
        scheduled=scheduled,
    )
    if status == "any":
        options.status = None

    try:
        db = get_database()
        db.migrate()
        report = run_extraction(options, db=db)
    except NoValidSlugsError:
        console.print(
            f"[red]Error:[/] No valid slugs provided. Allowed: "
            f"{', '.join(config.extraction.allowed_slugs)}"
        )
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Extraction run failed:[/] {e}")
        if get_config().logging.level == "DEBUG":
            console.print_exception()
        sys.exit(1)

    if output_json:
        payload = report.to_dict()
        payload["previews"] = [
            {"session_id": p.session_id, "bucket": p.bucket, "text": p.text}
            for p in report.previews
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    for preview in report.previews:
        console.print(f"  [dim]\\[{preview.bucket}][/] {preview.text}...")

    stats = report.stats
    color = "green" if report.status == "RUN_OK" else "yellow"
    console.print()
    console.print(RULE)
    console.print(
        f"  [bold {color}]EXTRACTION {'(DRY RUN) ' if report.dry_run else ''}"
        f"COMPLETE - {report.status}[/]"
    )
    console.print(RULE)
    for key, value in stats.to_dict().items():
        console.print(f"  {key}=[cyan]{value}[/]")
    console.print(f"  duration=[cyan]{report.duration_seconds:.1f}s[/]")
    console.print(RULE)


@cli.command()
def status() -> None:
    """Show the last run and cumulative counters."""
    from harvest.api.routes.health import build_status
    from harvest.db import get_database

    try:
        db = get_database()
        db.migrate()
        payload = build_status(db)
    except Exception as e:
        console.print(f"[red]Error reading status:[/] {e}")
        sys.exit(1)

    click.echo(json.dumps(payload, indent=2))


@cli.command()
@click.option("--host", default=None, help="Host to bind to (default from config)")
@click.option("--port", "-p", default=None, type=int, help="Port to listen on (default from config)")
def serve(host: str | None, port: int | None) -> None:
    """Start the read-only status server."""
    import uvicorn

    from harvest.db import get_database

    config = get_config()
    host = host or config.server.host
    port = port or config.server.port

    get_database().migrate()

    console.print(f"[bold blue]Status server on[/] [cyan]http://{host}:{port}/health[/]")

    try:
        uvicorn.run(
            "harvest.api.app:create_app",
            host=host,
            port=port,
            factory=True,
            log_level="info",
        )
    except KeyboardInterrupt:
        console.print("\n[bold green]Server stopped.[/]")


if __name__ == "__main__":
    cli()
