"""CLI entry point for the artifact tracker."""

import json
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from artifact_tracker.config import TrackerSettings, find_project_root, get_settings
from artifact_tracker.errors import (
    ArtifactTrackerError,
    Busy,
    NotFound,
    SourceFileNotFound,
    Unavailable,
)
from artifact_tracker.models import CommentStatus, FileStatus, SyncStatus
from artifact_tracker.service import ArtifactService
from artifact_tracker.utils.logging import get_logger, init_logger

TITLE_WIDTH = 20
TARGET_PREVIEW_WIDTH = 30


def format_timestamp(ts: str) -> str:
    """Display form of an ISO timestamp: "2026-02-01T10:00:00.123Z" -> "2026-02-01 10:00:00"."""
    return ts.replace("T", " ").rstrip("Z").split(".")[0]


def truncate_title(title: str, width: int = TITLE_WIDTH) -> str:
    """Cut titles longer than width to width - 3 characters plus "..."."""
    if len(title) > width:
        return f"{title[: width - 3]}..."
    return title


def preview_target(text: str, width: int = TARGET_PREVIEW_WIDTH) -> str:
    """Single-line preview of anchored text, cut at width characters plus "..."."""
    text = text.replace("\n", " ")
    if len(text) > width:
        return f"{text[:width]}..."
    return text


def _service(ctx: click.Context) -> ArtifactService:
    return ctx.obj["service"]


def _run(ctx: click.Context) -> str:
    return ctx.obj["run"]


def _abs(path: Path) -> Path:
    return path.resolve()


def _fail(error: ArtifactTrackerError, suggestion: str | None = None) -> NoReturn:
    """Report an engine error and exit: 2 for operational errors, 1 otherwise."""
    get_logger().error(str(error), suggestion=suggestion)
    if isinstance(error, (Busy, Unavailable)):
        sys.exit(2)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="artifact")
@click.option(
    "--store",
    "store_dir",
    type=click.Path(path_type=Path),
    help="Store directory (default: .artifacts under the project root)",
)
@click.option("--run", "run_id", help="Run id (default: ARTIFACT_TRACKER_DEFAULT_RUN or 'default')")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output on stderr")
@click.pass_context
def cli(ctx: click.Context, store_dir: Path | None, run_id: str | None, verbose: bool):
    """Track versions of text artifacts and keep comments anchored to their text."""
    init_logger(verbose=verbose, use_colors=os.environ.get("NO_COLOR") is None)

    settings: TrackerSettings = get_settings()
    if store_dir is not None:
        settings = settings.model_copy(update={"store_dir": store_dir.resolve()})

    ctx.ensure_object(dict)
    ctx.obj["service"] = ArtifactService(find_project_root(), settings=settings)
    ctx.obj["run"] = run_id or settings.default_run


@cli.command(name="list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def list_artifacts(ctx: click.Context, json_output: bool):
    """
    List all tracked artifacts of the run.

    Artifacts whose file no longer exists at the tracked path are shown as
    MISSING.
    """
    try:
        artifacts = _service(ctx).list_artifacts(_run(ctx))
    except ArtifactTrackerError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps([a.model_dump(mode="json") for a in artifacts], indent=2))
        return

    if not artifacts:
        click.echo("No tracked artifacts.")
        return

    click.echo(f"{'PATH':<30} {'STATUS':<8} {'COMMENTS':<8} {'VERSIONS':<8} {'TITLE':<20}")
    for a in artifacts:
        status = "MISSING" if a.status == FileStatus.MISSING else a.status.value
        if a.status == FileStatus.MISSING:
            status_display = click.style(f"{status:<8}", fg="red")
        else:
            status_display = f"{status:<8}"
        click.echo(
            f"{a.path:<30} {status_display} {a.comment_count:<8} {a.version_count:<8} "
            f"{truncate_title(a.title):<20}"
        )


@cli.command()
@click.argument("file_path", type=click.Path(path_type=Path))
@click.pass_context
def sync(ctx: click.Context, file_path: Path):
    """
    Register a new file or record a new version of a tracked one.

    Examples:

        artifact sync docs/plan.md
    """
    if not file_path.exists():
        get_logger().error(f"file not found: {file_path}")
        sys.exit(1)

    try:
        result = _service(ctx).sync(_run(ctx), _abs(file_path))
    except ArtifactTrackerError as e:
        _fail(e)

    if result.status == SyncStatus.UNCHANGED:
        click.echo(f"Artifact unchanged: {file_path} (version {result.version})")
        return

    label = "registered" if result.status == SyncStatus.REGISTERED else "synced"
    click.echo(f"Artifact {label}: {file_path}")
    click.echo(f"  Title: {result.title}")
    click.echo(f"  Version: {result.version}")
    if result.status == SyncStatus.SYNCED:
        click.echo(f"  Changes: +{result.lines_added} -{result.lines_removed} lines")
        if result.comments_relocated or result.comments_orphaned:
            click.echo(
                f"  {result.comments_relocated} comments relocated, "
                f"{result.comments_orphaned} orphaned"
            )


@cli.command(name="mv")
@click.argument("old_path", type=click.Path(path_type=Path))
@click.argument("new_path", type=click.Path(path_type=Path))
@click.option(
    "--refs-only",
    is_flag=True,
    help="Only update the tracked path (the file was already moved)",
)
@click.pass_context
def move(ctx: click.Context, old_path: Path, new_path: Path, refs_only: bool):
    """
    Move an artifact to a new path, preserving its history and comments.

    Examples:

        artifact mv docs/draft.md docs/plan.md

        artifact mv --refs-only docs/draft.md docs/plan.md
    """
    logger = get_logger()
    if refs_only and not new_path.exists():
        logger.error(
            f"new file not found: {new_path}",
            suggestion="With --refs-only the file must already exist at the new location.",
        )
        sys.exit(1)
    if not refs_only and not old_path.exists():
        logger.error(
            f"source file not found: {old_path}",
            suggestion="Use --refs-only if the file was already moved.",
        )
        sys.exit(1)

    try:
        result = _service(ctx).move(_run(ctx), _abs(old_path), _abs(new_path), refs_only)
    except SourceFileNotFound as e:
        _fail(e)
    except NotFound as e:
        _fail(e, suggestion=f"The artifact must be synced first. Run: artifact sync {old_path}")
    except ArtifactTrackerError as e:
        _fail(e)

    if result.file_moved:
        click.echo(f"File moved: {old_path} -> {new_path}")
    click.echo(f"Artifact refs updated: {old_path} -> {new_path}")
    click.echo(f"  {result.comments_preserved} comments preserved")


@cli.command()
@click.argument("file_path", type=click.Path(path_type=Path))
@click.argument("target_text")
@click.argument("message")
@click.option(
    "-a",
    "--author",
    envvar="ARTIFACT_TRACKER_AUTHOR",
    default="unknown",
    show_default=True,
    help="Author identity",
)
@click.option(
    "--line",
    "line_hint",
    type=click.IntRange(min=1),
    help="Prefer the occurrence of TARGET_TEXT nearest to this line",
)
@click.pass_context
def comment(
    ctx: click.Context,
    file_path: Path,
    target_text: str,
    message: str,
    author: str,
    line_hint: int | None,
):
    """
    Add a comment anchored to specific text of the latest version.

    Examples:

        artifact comment docs/plan.md "linear scaling" "Does this hold past 1k nodes?"
    """
    try:
        created = _service(ctx).add_comment(
            _run(ctx), _abs(file_path), target_text, message, author, line_hint
        )
    except ArtifactTrackerError as e:
        _fail(e)

    click.echo(f"Comment added: {created.id}")


@cli.command()
@click.argument("file_path", type=click.Path(path_type=Path))
@click.option(
    "--status",
    "status_filter",
    type=click.Choice(["open", "resolved", "all"], case_sensitive=False),
    default="open",
    show_default=True,
    help="Which comments to show",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def comments(ctx: click.Context, file_path: Path, status_filter: str, json_output: bool):
    """List comments on an artifact."""
    try:
        found = _service(ctx).list_comments(_run(ctx), _abs(file_path), status_filter.lower())
    except ArtifactTrackerError as e:
        _fail(e)

    if json_output:
        click.echo(json.dumps([c.model_dump(mode="json") for c in found], indent=2))
        return

    if not found:
        click.echo("No comments.")
        return

    for c in found:
        status = c.status.value
        if c.status == CommentStatus.OPEN and c.is_orphaned:
            status = click.style("open, orphaned", fg="red")
        click.echo(
            f'[{c.id}] "{preview_target(c.anchor.target_text)}" - {c.message} ({status})'
        )


@cli.command()
@click.argument("comment_id")
@click.option(
    "--resolver",
    envvar="ARTIFACT_TRACKER_AUTHOR",
    default="unknown",
    show_default=True,
    help="Identity resolving the comment",
)
@click.pass_context
def resolve(ctx: click.Context, comment_id: str, resolver: str):
    """Resolve a comment. Resolved comments are never reopened."""
    try:
        outcome = _service(ctx).resolve_comment(_run(ctx), comment_id, resolver)
    except ArtifactTrackerError as e:
        _fail(e)

    if outcome.already_resolved:
        click.echo(
            f"Comment already resolved: {comment_id} "
            f"(by {outcome.comment.resolved_by} at {format_timestamp(outcome.comment.resolved_at)})"
        )
    else:
        click.echo(f"Comment resolved: {comment_id}")


@cli.command()
@click.argument("file_path", type=click.Path(path_type=Path))
@click.pass_context
def versions(ctx: click.Context, file_path: Path):
    """List all versions of an artifact, oldest first."""
    try:
        summaries = _service(ctx).list_versions(_run(ctx), _abs(file_path))
    except NotFound as e:
        _fail(e, suggestion=f"Run: artifact sync {file_path}")
    except ArtifactTrackerError as e:
        _fail(e)

    click.echo(f"{'VERSION':<8} {'TIMESTAMP':<20} CHANGES")
    for v in summaries:
        changes = "(initial)" if v.initial else f"+{v.lines_added} -{v.lines_removed} lines"
        click.echo(f"{v.version:<8} {format_timestamp(v.timestamp):<20} {changes}")


@cli.command()
@click.argument("file_path", type=click.Path(path_type=Path))
@click.argument("version", type=int)
@click.pass_context
def show(ctx: click.Context, file_path: Path, version: int):
    """Show the content of a specific version."""
    try:
        found = _service(ctx).get_version(_run(ctx), _abs(file_path), version)
    except ArtifactTrackerError as e:
        _fail(e)

    click.echo(f"# {found.title} (version {found.version})")
    click.echo(f"# Synced: {format_timestamp(found.timestamp)}")
    click.echo(f"# {'-' * 60}")
    click.echo()
    click.echo(found.content)


if __name__ == "__main__":
    cli()
