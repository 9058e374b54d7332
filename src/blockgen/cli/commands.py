"""CLI command implementations"""

import json
import logging
from typing import Annotated, Optional

import typer
from sqlmodel import Session

from blockgen.config import Settings, load_config
from blockgen.core.coordinator import Services, build_sql_services
from blockgen.core.errors import BlockgenError
from blockgen.core.models import GenerationReport, SaveOutcome
from blockgen.core.utils.slug import slugify
from blockgen.crud.database import init_db, make_engine, reset_db
from blockgen.crud.tables import ContentType, PostStatus


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling and apply its log level."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    return settings


def _session(settings: Settings) -> Session:
    engine = make_engine(settings.db_url)
    init_db(engine)
    return Session(engine)


def _echo_reports(reports: list[GenerationReport]) -> None:
    for r in reports:
        status = "ok" if r.ok else f"failed: {', '.join(r.failed)}"
        typer.echo(f"  post {r.post_id} ({r.content_type}) -> {r.output_path or '-'} [{status}]")


def _echo_outcome(outcome: SaveOutcome) -> None:
    if outcome.skipped:
        typer.echo(f"Post {outcome.post_id}: nothing to do.")
        return
    _echo_reports(outcome.reports)
    if outcome.recompile is not None:
        summary = outcome.recompile
        typer.echo(
            f"Recompile: {summary.blocks_affected} block(s) affected, "
            f"{summary.compilations_triggered} flagged"
        )
    if outcome.full_regeneration:
        typer.echo(f"Full regeneration complete - {len(outcome.reports)} post(s)")


def _run(settings: Settings, action):
    """Run action(services) inside one session, mapping blockgen errors to exit code 1."""
    with _session(settings) as session:
        services: Services = build_sql_services(settings, session)
        try:
            return action(services)
        except BlockgenError as e:
            _fail(str(e))


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize database schema. Use --reset to clear existing data."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing data cleared.")
    else:
        init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def create_cmd(
    content_type: Annotated[ContentType, typer.Argument(help="block, symbol or scss_partial")],
    title: Annotated[str, typer.Argument(help="Post title")],
    slug: Annotated[Optional[str], typer.Option("--slug", help="Slug; derived from the title when omitted")] = None,
    status: Annotated[PostStatus, typer.Option("--status", help="Post status")] = PostStatus.publish,
    ):
    """Create a post. Files are generated on the next save."""
    settings = _settings()
    post = _run(settings, lambda s: s.store.create_post(content_type, slugify(slug or title), title, status))
    typer.echo(f"Created {post.type.value} {post.id}: {post.slug}")


def meta_cmd(
    post_id: Annotated[int, typer.Argument(help="Post id")],
    key: Annotated[str, typer.Argument(help="Meta key")],
    value: Annotated[str, typer.Argument(help="Value; parsed as JSON when --json is given")],
    as_json: Annotated[bool, typer.Option("--json", help="Decode value as JSON before storing")] = False,
    ):
    """Set one metadata value on a post."""
    settings = _settings()
    if as_json:
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            _fail("Value is not valid JSON", e)

    def action(s: Services):
        if s.store.get_post(post_id) is None:
            _fail(f"Post {post_id} not found")
        s.store.set_meta(post_id, key, value)

    _run(settings, action)
    typer.echo(f"Set {key} on post {post_id}")


def save_cmd(
    post_id: Annotated[int, typer.Argument(help="Post id")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Generated-files root")] = None,
    ):
    """Regenerate one post's files (and dependents, for partials)."""
    settings = _settings(overrides={"output_dir": out})
    _echo_outcome(_run(settings, lambda s: s.coordinator.handle_post_save(post_id)))


def rename_cmd(
    post_id: Annotated[int, typer.Argument(help="Post id")],
    new_slug: Annotated[str, typer.Argument(help="New slug")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Generated-files root")] = None,
    ):
    """Change a post's slug and rebuild every generated file."""
    settings = _settings(overrides={"output_dir": out})

    def action(s: Services):
        post = s.store.get_post(post_id)
        if post is None:
            _fail(f"Post {post_id} not found")
        old_slug = post.slug
        s.store.update_post(post_id, slug=slugify(new_slug))
        return s.coordinator.handle_post_rename(post_id, old_slug)

    _echo_outcome(_run(settings, action))


def delete_cmd(
    post_id: Annotated[int, typer.Argument(help="Post id")],
    trash: Annotated[bool, typer.Option("--trash", help="Move to trash instead of deleting")] = False,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Generated-files root")] = None,
    ):
    """Delete a post and rebuild every generated file."""
    settings = _settings(overrides={"output_dir": out})
    _echo_outcome(_run(settings, lambda s: s.coordinator.handle_post_deletion(post_id, purge=not trash)))


def regenerate_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Generated-files root")] = None,
    ):
    """Wipe the generated-files root and regenerate every published post."""
    settings = _settings(overrides={"output_dir": out})
    reports = _run(settings, lambda s: s.coordinator.regenerate_all())
    _echo_reports(reports)
    typer.echo(f"Regenerated {len(reports)} post(s) into {settings.output_dir}/")


def recompile_cmd(
    partial_id: Annotated[int, typer.Argument(help="SCSS partial id")],
    ):
    """Flag every block depending on a partial for recompilation."""
    settings = _settings()
    summary = _run(settings, lambda s: s.scheduler.recompile_affected(partial_id))
    if not summary.success:
        _fail(f"Recompilation failed for partial {partial_id}", summary.error)
    typer.echo(json.dumps(summary.public(), indent=2))


def pending_cmd():
    """Show the pending recompile work item and every flagged block."""
    settings = _settings()

    def action(s: Services):
        return s.scheduler.pending_work_item(), s.scheduler.flagged_blocks()

    item, flagged = _run(settings, action)
    if item is None:
        typer.echo("No pending work item.")
    else:
        typer.echo(f"Pending: partial {item.partial_id} -> blocks {item.block_ids} (since {item.enqueued_at.isoformat()})")
    typer.echo(f"Flagged blocks: {flagged or 'none'}")


def stats_cmd(
    partial_id: Annotated[Optional[int], typer.Option("--partial", help="Usage counts for one partial")] = None,
    ):
    """Global-partial impact, or usage counts for one partial."""
    settings = _settings()
    if partial_id is not None:
        try:
            stats = _run(settings, lambda s: s.usage.get_partial_usage_stats(partial_id))
        except ValueError as e:
            _fail(str(e))
    else:
        stats = _run(settings, lambda s: s.resolver.get_global_impact_stats())
    typer.echo(json.dumps(stats, indent=2))
