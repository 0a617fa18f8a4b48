# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.cli",
#   "purpose": "Typer CLI that prints the copy jobs an invocation would perform",
#   "sections": [
#     {"id": "build-options", "name": "_build_options", "anchor": "function-build-options", "kind": "function"},
#     {"id": "plan", "name": "plan", "anchor": "function-plan", "kind": "function"},
#     {"id": "version-cmd", "name": "version_cmd", "anchor": "function-version-cmd", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line interface for copy planning.

``bucketcopy plan`` classifies the arguments, drains the job stream, and prints
one row per planned copy.  Error jobs are reported on stderr and do not stop the
listing.

Exit codes:
    0: every job was planned successfully.
    1: at least one job carried an error.
    2: the arguments are invalid (unclassifiable shape or bad configuration).

Example:
    $ bucketcopy plan --recursive play/bucket/dir1 play/bucket2/out
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .aliases import AliasTable, load_alias_config
from .clients import FsspecBackend
from .errors import TracedError, UserConfigError
from .logging_utils import generate_correlation_id, setup_logging
from .models import CopyJob, RequestOptions
from .pipeline import prepare_copy_jobs
from .settings import get_settings
from .timefilter import parse_duration

__all__ = ["app", "plan", "version_cmd"]

EXIT_OK = 0
EXIT_JOB_ERRORS = 1
EXIT_INVALID = 2

_console = Console()

app = typer.Typer(
    name="bucketcopy",
    help="BucketCopy CLI - Plan bulk copies between local paths and object storage",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    table = "table"
    json = "json"


def _build_options(
    paths: List[str],
    *,
    recursive: bool,
    older_than: str,
    newer_than: str,
    rewind: str,
    version_id: str,
    archive_mode: bool,
) -> RequestOptions:
    if len(paths) < 2:
        raise UserConfigError("At least one source and a target are required")
    time_ref: Optional[datetime] = None
    if rewind:
        time_ref = datetime.now(timezone.utc) - parse_duration(rewind)
    return RequestOptions(
        source_urls=tuple(paths[:-1]),
        target_url=paths[-1],
        recursive=recursive,
        older_than=older_than,
        newer_than=newer_than,
        time_ref=time_ref,
        version_id=version_id,
        archive_mode=archive_mode,
    )


def _job_record(job: CopyJob) -> Dict[str, object]:
    assert job.source_content is not None
    source = job.source_content
    return {
        "source": job.source_url,
        "target": job.target_url,
        "size": source.size,
        "modified": source.time.isoformat(),
        "version_id": source.version_id or None,
    }


def _print_table(records: List[Dict[str, object]]) -> None:
    table = Table(title="Planned copy jobs")
    table.add_column("Source", style="cyan")
    table.add_column("Target", style="green")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="yellow")
    for record in records:
        table.add_row(
            str(record["source"]),
            str(record["target"]),
            str(record["size"]),
            str(record["modified"]),
        )
    _console.print(table)


@app.command()
def plan(
    paths: List[str] = typer.Argument(
        ..., metavar="SOURCES... TARGET", help="One or more sources followed by the target"
    ),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="Copy directories and prefixes recursively"
    ),
    older_than: str = typer.Option(
        "", "--older-than", help="Only copy objects older than this duration, e.g. 7d10h"
    ),
    newer_than: str = typer.Option(
        "", "--newer-than", help="Only copy objects newer than this duration, e.g. 7d10h"
    ),
    rewind: str = typer.Option(
        "", "--rewind", help="Plan against the state of the sources this long ago"
    ),
    version_id: str = typer.Option("", "--version-id", help="Copy a specific object version"),
    archive_mode: bool = typer.Option(False, "--zip", help="Extract objects from an archive"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="BUCKETCOPY_CONFIG_PATH",
        help="Alias file (YAML)",
    ),
    format_output: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format: table, json"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """Print the single-file copy jobs that copying SOURCES to TARGET performs.

    Example:
        $ bucketcopy plan file.txt play/bucket/
        $ bucketcopy plan -r --older-than 7d dir/ play/bucket/
    """
    try:
        settings = get_settings()
        if log_level is not None:
            settings = settings.model_copy(update={"log_level": log_level.upper()})
        logging_config = settings.logging
        setup_logging(
            level=logging_config.level,
            retention_days=logging_config.retention_days,
            max_log_size_mb=logging_config.max_log_size_mb,
            log_dir=logging_config.log_dir,
        )
        aliases = AliasTable(load_alias_config(config or settings.config_path))
        options = _build_options(
            paths,
            recursive=recursive,
            older_than=older_than,
            newer_than=newer_than,
            rewind=rewind,
            version_id=version_id,
            archive_mode=archive_mode,
        )
        stream = prepare_copy_jobs(
            options,
            FsspecBackend(aliases),
            settings=settings,
            correlation_id=generate_correlation_id(),
        )
    except (TracedError, UserConfigError, ValueError) as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(EXIT_INVALID)

    records: List[Dict[str, object]] = []
    planned = 0
    errors = 0
    with stream:
        for job in stream:
            if job.error is not None:
                errors += 1
                typer.echo(f"ERROR: {job.error}", err=True)
                continue
            planned += 1
            record = _job_record(job)
            if format_output is OutputFormat.json:
                typer.echo(json.dumps(record, default=str))
            else:
                records.append(record)

    if format_output is OutputFormat.table:
        _print_table(records)
    typer.echo(f"{planned} job(s), {errors} error(s)", err=True)
    raise typer.Exit(EXIT_JOB_ERRORS if errors else EXIT_OK)


@app.command("version")
def version_cmd() -> None:
    """Show version information.

    Example:
        $ bucketcopy version
    """
    _console.print(f"[bold]bucketcopy[/bold] version {__version__}")
