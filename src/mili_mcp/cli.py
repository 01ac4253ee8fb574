"""CLI for the mili active-task tracker.

Operates on the project in --project (default: cwd), the same
``.mili/`` files the MCP server uses.

Usage:
    mili task start --name "Fix login" --plan "1. repro 2. fix"
    mili task read
    mili task update --status "In review" --note "PR opened"
    mili task complete
    mili task history
    mili serve                                   # Run the MCP server on stdio
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path

import click

from mili_mcp import __version__
from mili_mcp.task_store import TaskError
from mili_mcp.tasks import TaskController, TaskOutcome
from mili_mcp.types.tasks import ActiveTaskDict, ArchivedTaskDict


def _print_task(task: ActiveTaskDict | ArchivedTaskDict) -> None:
    click.echo(f"{task['name']}  [{task['status']}]")
    click.echo(f"  Started:   {task['startDate']}")
    if "completedDate" in task:
        click.echo(f"  Completed: {task['completedDate']}")
    if task.get("plan"):
        click.echo("  Plan:")
        for line in task.get("plan", "").splitlines():
            click.echo(f"    {line}")
    click.echo("  History:")
    for entry in task["history"]:
        click.echo(f"    [{entry['date']}] {entry['note']}")


def _emit(outcome: TaskOutcome, as_json: bool, *, show_task: bool = False) -> None:
    """Print an outcome and exit non-zero when it is an error."""
    if as_json:
        if outcome.is_error:
            click.echo(json_mod.dumps({"error": outcome.message, "code": outcome.code}))
        elif outcome.kind == "info":
            click.echo(json_mod.dumps({"active": False, "message": outcome.message}))
        else:
            click.echo(json_mod.dumps({"status": "ok", "message": outcome.message, "task": outcome.task}, indent=2))
    elif outcome.is_error:
        click.echo(f"Error: {outcome.message}", err=True)
    else:
        click.echo(outcome.message)
        if show_task and outcome.task is not None:
            _print_task(outcome.task)
    if outcome.is_error:
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="mili")
@click.option(
    "--project",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root holding .mili/ (default: current directory)",
)
@click.pass_context
def cli(ctx: click.Context, project: Path | None) -> None:
    """Mili: active-task tracking and project automation."""
    ctx.ensure_object(dict)
    ctx.obj["project"] = (project or Path.cwd()).resolve()


@cli.group()
@click.pass_context
def task(ctx: click.Context) -> None:
    """Manage the project's active task."""
    ctx.obj["controller"] = TaskController.for_project(ctx.obj["project"])


@task.command("start")
@click.option("--name", "name", default=None, help="Task name (default: Untitled Task)")
@click.option("--status", default=None, help="Initial status (default: Pending)")
@click.option("--plan", default=None, help="Working plan")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def start(ctx: click.Context, name: str | None, status: str | None, plan: str | None, as_json: bool) -> None:
    """Start a task. Replaces any active task without archiving it."""
    controller: TaskController = ctx.obj["controller"]
    _emit(controller.start(name=name, status=status, plan=plan), as_json)


@task.command("read")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def read(ctx: click.Context, as_json: bool) -> None:
    """Show the active task."""
    controller: TaskController = ctx.obj["controller"]
    outcome = controller.read()
    if not as_json and outcome.kind == "ok" and outcome.task is not None:
        _print_task(outcome.task)
        return
    _emit(outcome, as_json)


@task.command("update")
@click.option("--name", "name", default=None, help="New task name")
@click.option("--status", default=None, help="New status")
@click.option("--plan", default=None, help="New plan")
@click.option("--note", "notes", default=None, help="Progress note to append to history")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def update(
    ctx: click.Context,
    name: str | None,
    status: str | None,
    plan: str | None,
    notes: str | None,
    as_json: bool,
) -> None:
    """Update fields of the active task and/or append a note."""
    controller: TaskController = ctx.obj["controller"]
    _emit(controller.update(name=name, status=status, plan=plan, notes=notes), as_json)


@task.command("complete")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def complete(ctx: click.Context, as_json: bool) -> None:
    """Archive the active task as completed."""
    controller: TaskController = ctx.obj["controller"]
    _emit(controller.complete(), as_json, show_task=True)


@task.command("history")
@click.option("--limit", default=10, type=click.IntRange(min=1), help="Show the N most recent tasks")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """List archived tasks, most recent last."""
    controller: TaskController = ctx.obj["controller"]
    try:
        archived = controller.store.read_archive()
    except TaskError as e:
        if as_json:
            click.echo(json_mod.dumps({"error": str(e), "code": e.code}))
        else:
            click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    recent = archived[-limit:]
    if as_json:
        click.echo(json_mod.dumps(recent, indent=2))
        return
    if not recent:
        click.echo("No archived tasks.")
        return
    for entry in recent:
        click.echo(f"{entry.get('completedDate', '?')}  {entry.get('name', '?')}  ({len(entry.get('history', []))} notes)")


@cli.command("serve")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for mili.log")
def serve(log_dir: Path | None) -> None:
    """Run the MCP server on stdio."""
    import asyncio
    from dataclasses import replace

    from mili_mcp.config import ServerConfig, load_env_file
    from mili_mcp.mcp_server import _run

    load_env_file()
    config = ServerConfig.from_env()
    if log_dir is not None:
        config = replace(config, log_dir=log_dir)
    asyncio.run(_run(config))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
