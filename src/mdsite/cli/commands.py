"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from mdsite.config import Settings, load_config
from mdsite.core.errors import MalformedFrontMatter, OutputPathError
from mdsite.core.pipeline import render_one, run_build, run_check
from mdsite.crud.builds import get_all_records
from mdsite.crud.database import init_db, make_engine, reset_db


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


class _EchoHandler(logging.Handler):
    """Route log records through typer.echo so they follow the active stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            typer.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(level: int) -> None:
    logger = logging.getLogger("mdsite")
    logger.setLevel(level)
    if not any(isinstance(h, _EchoHandler) for h in logger.handlers):
        handler = _EchoHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)


def _settings(overrides: dict = None, verbose: bool = False) -> Settings:
    """Load config with standard CLI error handling and configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    _configure_logging(logging.DEBUG if verbose else getattr(logging, settings.log_level))
    return settings


def _echo_failures(failures: list) -> None:
    for f in failures:
        typer.echo(f"  failed: {f.error}", err=True)


Verbose = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output")]


def build_cmd(
    source: Annotated[Optional[str], typer.Argument(help="Source directory or file (default: source_dir)")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    layouts: Annotated[Optional[str], typer.Option("--layouts-dir", help="Directory of layout templates")] = None,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Prefix for absolute link URLs")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Documents rendered in parallel")] = None,
    verbose: Verbose = False,
    ):
    """Render every markdown document to HTML. Bad files are reported; the rest still publish."""
    settings = _settings(overrides={
        "source_dir": source, "output_dir": out, "layouts_dir": layouts,
        "base_url": base_url, "workers": workers,
    }, verbose=verbose)
    if not Path(settings.source_dir).exists():
        _fail(f"Source not found: {settings.source_dir}")

    try:
        engine = make_engine(settings.db_url)
        init_db(engine)
        report = run_build(engine, settings)
    except SQLAlchemyError as e:
        _fail("Build manifest unavailable", e)

    for status, output in report.changes:
        typer.echo(f"  {status}: {output}")
    _echo_failures(report.failures)
    c = report.counts
    typer.echo(
        f"Build complete - "
        f"{c['created']} created, {c['updated']} updated, {c['unchanged']} unchanged, "
        f"{c['removed']} removed, {c['failed']} failed"
    )
    if not report.ok:
        raise typer.Exit(1)


def render_cmd(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="Markdown file to render")],
    layouts: Annotated[Optional[str], typer.Option("--layouts-dir", help="Directory of layout templates")] = None,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Prefix for absolute link URLs")] = None,
    verbose: Verbose = False,
    ):
    """Render a single document and print its HTML."""
    settings = _settings(overrides={"layouts_dir": layouts, "base_url": base_url}, verbose=verbose)
    try:
        html = render_one(path, settings)
    except MalformedFrontMatter as e:
        _fail("Malformed front matter", e)
    except OutputPathError as e:
        _fail("Invalid permalink", e)
    typer.echo(html, nl=False)


def check_cmd(
    source: Annotated[Optional[str], typer.Argument(help="Source directory or file (default: source_dir)")] = None,
    verbose: Verbose = False,
    ):
    """Report malformed front matter, duplicate permalinks, duplicate navigation and unresolved links."""
    settings = _settings(overrides={"source_dir": source}, verbose=verbose)
    if not Path(settings.source_dir).exists():
        _fail(f"Source not found: {settings.source_dir}")
    result = run_check(settings)

    _echo_failures(result["failures"])
    for link, paths in result["duplicate_permalinks"]:
        typer.echo(f"  duplicate permalink {link}: {', '.join(p.as_posix() for p in paths)}")
    for entry in result["duplicate_navigation"]:
        typer.echo(f"  duplicate navigation in {entry.source.as_posix()}: {entry.title} -> {entry.target}")
    for src, target in result["unresolved_links"]:
        typer.echo(f"  unresolved link in {src.as_posix()}: {target}")

    warnings = len(result["duplicate_permalinks"]) + len(result["duplicate_navigation"]) + len(result["unresolved_links"])
    typer.echo(f"Check complete - {len(result['failures'])} error(s), {warnings} warning(s)")
    if result["failures"]:
        raise typer.Exit(1)


def list_cmd():
    """List pages recorded by the last build."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        records = get_all_records(session)
    if not records:
        typer.echo("No pages built yet.")
        raise typer.Exit(1)
    for r in records:
        typer.echo(f"{r.path} -> {r.output_path}")


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate the build manifest")] = False,
    ):
    """Initialize the build manifest. Use --reset to force a full rebuild next time."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing build manifest cleared.")
    else:
        init_db(engine)
    typer.echo(f"Build manifest initialized at: {settings.db_url}")
