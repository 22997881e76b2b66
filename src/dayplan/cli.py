"""dayplan CLI - Personal work planner."""

import json
import logging
import sys
from pathlib import Path

import click

from .adapters.json_rows import JsonCalendarRepository, JsonTaskRepository
from .config import DATA_DIR, load_config
from .core.briefing import render_day_plan
from .core.capacity import capacity_breakdown_lines, format_capacity_display
from .core.planner import DIRECTIVE_STRENGTH_MULTIPLIERS, PLAN_MODES, FocusDirective
from .workflows import (
    build_calendar_report,
    build_day_plan,
    detect_calendar_changes,
    get_snapshot_store,
    plan_tasks,
    project_capacity,
    rank_open_tasks,
)

DEFAULT_EVENTS_FILE = DATA_DIR / "events.json"
DEFAULT_TASKS_FILE = DATA_DIR / "tasks.json"

events_option = click.option(
    "--events",
    "events_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Event rows JSON (default: $DAYPLAN_HOME/data/events.json)",
)
tasks_option = click.option(
    "--tasks",
    "tasks_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Task rows JSON (default: $DAYPLAN_HOME/data/tasks.json)",
)
range_options = [
    click.option("--start", "range_start", default=None, help="First date (YYYY-MM-DD), defaults to today"),
    click.option("--end", "range_end", default=None, help="Last date (YYYY-MM-DD), defaults to a week out"),
]
json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON")
focus_options = [
    click.option("--focus", default=None, help="Focus directive query (matches title or pinned excerpt)"),
    click.option(
        "--strength",
        type=click.Choice(list(DIRECTIVE_STRENGTH_MULTIPLIERS)),
        default="strong",
        show_default=True,
        help="Focus directive strength",
    ),
]


def _apply(options):
    def decorator(f):
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


def _calendar_repo(events_file: Path | None, required: bool = True) -> JsonCalendarRepository | None:
    path = events_file or DEFAULT_EVENTS_FILE
    if not path.exists():
        if required:
            click.echo(f"Error: events file not found: {path}", err=True)
            sys.exit(1)
        return None
    return JsonCalendarRepository(path)


def _task_repo(tasks_file: Path | None) -> JsonTaskRepository:
    path = tasks_file or DEFAULT_TASKS_FILE
    if not path.exists():
        click.echo(f"Error: tasks file not found: {path}", err=True)
        sys.exit(1)
    return JsonTaskRepository(path)


def _directive(focus: str | None, strength: str) -> FocusDirective | None:
    if not focus:
        return None
    return FocusDirective(id="cli", text=focus, scope_type="query", scope_value=focus, strength=strength)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """dayplan - Personal work planner CLI."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@events_option
@_apply(range_options)
@json_option
def busy(events_file: Path | None, range_start: str | None, range_end: str | None, as_json: bool):
    """Show busy blocks and focus time for a date range."""
    config = load_config()
    try:
        report = build_calendar_report(_calendar_repo(events_file), config, range_start, range_end)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(
            {
                "rangeStart": report.range_start.isoformat(),
                "rangeEnd": report.range_end.isoformat(),
                "busyBlocks": [b.to_dict() for b in report.busy_blocks],
                "stats": report.stats.to_dict(),
            }
        )
        return

    tz = config.workday().zone
    click.echo(f"Calendar {report.range_start} to {report.range_end}\n")
    current_date = None
    for block in report.busy_blocks:
        block_date = block.start_at.astimezone(tz).date()
        if block_date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {block_date.strftime('%A, %B %d')}")
            current_date = block_date
        click.echo(f"  {block.format(tz)}")

    if not report.busy_blocks:
        click.echo("No meetings in range.")
    stats = report.stats
    click.echo(
        f"\nBusy: {stats.busy_minutes} min in {stats.block_count} blocks, "
        f"largest focus block {stats.largest_focus_block_minutes} min"
    )


@main.command()
@events_option
@_apply(range_options)
@json_option
def changes(events_file: Path | None, range_start: str | None, range_end: str | None, as_json: bool):
    """Show what changed since the last fingerprint of a range."""
    config = load_config()
    try:
        report = detect_calendar_changes(
            _calendar_repo(events_file), get_snapshot_store(config), config, range_start, range_end
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(
            {
                "rangeStart": report.range_start.isoformat(),
                "rangeEnd": report.range_end.isoformat(),
                "changesSince": report.delta.to_dict(),
                "changed": [c.to_dict() for c in report.details],
            }
        )
        return

    if not report.had_previous:
        click.echo("No previous snapshot; everything is new.")
    if report.delta.is_empty:
        click.echo("No changes.")
        return
    for label, ids in (
        ("Added", report.delta.added),
        ("Removed", report.delta.removed),
        ("Changed", report.delta.changed),
    ):
        if ids:
            click.echo(f"{label}:")
            for event_id in ids:
                click.echo(f"  • {event_id}")


@main.command()
@tasks_option
@_apply(focus_options)
@json_option
def score(tasks_file: Path | None, focus: str | None, strength: str, as_json: bool):
    """Score and rank open tasks."""
    config = load_config()
    try:
        ranked = rank_open_tasks(_task_repo(tasks_file), config, directive=_directive(focus, strength))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json([r.to_dict() for r in ranked])
        return

    if not ranked:
        click.echo("No open tasks.")
        return
    for r in ranked:
        marker = "!" if r.exception_eligible else " "
        click.echo(f"[{marker}] {r.final_score:6.2f}  {r.task.title}")


@main.command()
@tasks_option
@events_option
@click.option("--top", "top_ids", multiple=True, help="Top task id (repeatable, default: top 3 by priority)")
@json_option
def capacity(tasks_file: Path | None, events_file: Path | None, top_ids: tuple[str, ...], as_json: bool):
    """Project today's capacity."""
    config = load_config()
    try:
        result = project_capacity(
            _task_repo(tasks_file),
            config,
            _calendar_repo(events_file, required=False),
            set(top_ids) if top_ids else None,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(result.to_dict())
        return

    click.echo(f"{result.rag.value}: {format_capacity_display(result)}")
    for line in capacity_breakdown_lines(result):
        click.echo(f"  {line}")


@main.command()
@tasks_option
@click.option("--mode", type=click.Choice(PLAN_MODES), default="today", show_default=True)
@_apply(focus_options)
@json_option
def plan(tasks_file: Path | None, mode: str, focus: str | None, strength: str, as_json: bool):
    """Pick what to work on now and next."""
    config = load_config()
    try:
        result = plan_tasks(_task_repo(tasks_file), config, mode, directive=_directive(focus, strength))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(result.to_dict())
        return

    if result.now_next is None:
        click.echo("Nothing to do.")
        return
    click.echo(f"Now: {result.now_next.task.title}")
    for r in result.next3:
        click.echo(f"Next: {r.task.title}")
    for e in result.exceptions:
        click.echo(f"Exception: {e.title} ({e.reason})")
    if result.dependency_fallback_used:
        click.echo("(every candidate is blocked by a dependency)")


def _show_day(target: str, tasks_file: Path | None, events_file: Path | None, focus, strength, as_json: bool):
    config = load_config()
    try:
        day_plan = build_day_plan(
            _task_repo(tasks_file),
            _calendar_repo(events_file, required=False),
            config,
            target,
            directive=_directive(focus, strength),
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(day_plan.to_dict())
    else:
        click.echo(render_day_plan(day_plan))


@main.command()
@tasks_option
@events_option
@_apply(focus_options)
@json_option
def today(tasks_file: Path | None, events_file: Path | None, focus: str | None, strength: str, as_json: bool):
    """Full plan for today."""
    _show_day("today", tasks_file, events_file, focus, strength, as_json)


@main.command()
@tasks_option
@events_option
@_apply(focus_options)
@json_option
def tomorrow(tasks_file: Path | None, events_file: Path | None, focus: str | None, strength: str, as_json: bool):
    """Full plan for tomorrow."""
    _show_day("tomorrow", tasks_file, events_file, focus, strength, as_json)


if __name__ == "__main__":
    main()
