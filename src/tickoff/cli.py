"""CLI interface for tickoff."""

from __future__ import annotations

import json
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from tickoff import __version__
from tickoff.config import CONFIG_FILE, TickoffConfig
from tickoff.dispatcher import (
    BeginEdit,
    CommandError,
    Confirm,
    Dismiss,
    IntentDispatcher,
    RequestClearCompleted,
    RequestDelete,
    SelectFilter,
    SubmitText,
    Toggle,
    parse_command,
)
from tickoff.logging_setup import setup_logging
from tickoff.models import Filter
from tickoff.render import ConsoleRenderer, HtmlRenderer
from tickoff.storage import FileKeyValueStore, MemoryKeyValueStore, TaskRepository
from tickoff.store import TaskStore

console = Console()

FILTER_CHOICE = click.Choice([f.value for f in Filter], case_sensitive=False)

SHELL_HELP = """\
Type a task and press enter to add it (or commit an edit).

  toggle <id>       mark done / not done
  edit <id>         start editing; the next submitted text replaces it
  cancel            stop editing
  delete <id>       delete a task (asks first)
  clear             delete completed tasks (asks first)
  yes / no          answer a pending question
  filter <value>    all, active or completed
  list              show the list again
  help              this text
  quit              leave"""


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="tickoff")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.json (default: .tickoff/config.json)",
)
@click.option(
    "--storage",
    type=click.Choice(["file", "memory"]),
    default=None,
    help="Override the configured storage backend",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, storage: str | None) -> None:
    """tickoff - a small task list that remembers.

    \b
    Examples:
      tickoff add Buy milk
      tickoff list --filter active
      tickoff toggle 1736503200000
      tickoff shell
    """
    ctx.ensure_object(dict)

    try:
        config = TickoffConfig.load(config_path or CONFIG_FILE)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        ctx.exit(1)

    if storage is not None:
        config.storage.backend = storage  # type: ignore[assignment]

    setup_logging(level=config.logging.level, log_file=config.logging.file)
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _open_store(config: TickoffConfig) -> TaskStore:
    """Build and load a store for the configured backend."""
    if config.storage.backend == "memory":
        kv = MemoryKeyValueStore()
    else:
        kv = FileKeyValueStore(Path(config.storage.directory))

    store = TaskStore(TaskRepository(kv, key=config.storage.key))
    store.load()
    return store


def _dispatcher(ctx: click.Context, renderer: ConsoleRenderer | None = None) -> IntentDispatcher:
    config: TickoffConfig = ctx.obj["config"]
    return IntentDispatcher(_open_store(config), renderer=renderer)


def _report_save_error(dispatcher: IntentDispatcher) -> None:
    error = dispatcher.store.last_save_error
    if error is not None:
        console.print(f"[yellow]Warning:[/yellow] changes not saved: {escape(str(error))}")


@main.command()
@click.argument("text", nargs=-1, required=True)
@click.pass_context
def add(ctx: click.Context, text: tuple[str, ...]) -> None:
    """Add a task."""
    dispatcher = _dispatcher(ctx)
    before = len(dispatcher.store.snapshot())
    dispatcher.dispatch(SubmitText(" ".join(text)))

    snapshot = dispatcher.store.snapshot()
    if len(snapshot) == before:
        console.print("[yellow]Nothing to add:[/yellow] task text is empty")
        ctx.exit(1)

    task = snapshot.tasks[-1]
    console.print(f"[green]Added[/green] [cyan]{task.id}[/cyan]: {escape(task.text)}")
    _report_save_error(dispatcher)


@main.command("list")
@click.option("--filter", "-f", "filter_value", type=FILTER_CHOICE, default="all")
@click.pass_context
def list_command(ctx: click.Context, filter_value: str) -> None:
    """Show tasks."""
    config: TickoffConfig = ctx.obj["config"]
    renderer = ConsoleRenderer(console, show_timestamps=config.display.show_timestamps)
    dispatcher = _dispatcher(ctx, renderer)
    dispatcher.dispatch(SelectFilter(Filter(filter_value.lower())))


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
def toggle(ctx: click.Context, task_id: int) -> None:
    """Mark a task done, or not done again."""
    dispatcher = _dispatcher(ctx)
    dispatcher.dispatch(Toggle(task_id))

    task = dispatcher.store.get(task_id)
    if task is None:
        console.print(f"[yellow]No task with id[/yellow] {task_id}")
        ctx.exit(1)

    state = "done" if task.completed else "not done"
    console.print(f"[green]Marked {state}:[/green] {escape(task.text)}")
    _report_save_error(dispatcher)


@main.command()
@click.argument("task_id", type=int)
@click.argument("text", nargs=-1, required=True)
@click.pass_context
def edit(ctx: click.Context, task_id: int, text: tuple[str, ...]) -> None:
    """Replace the text of a task."""
    dispatcher = _dispatcher(ctx)
    dispatcher.dispatch(BeginEdit(task_id))
    if dispatcher.store.editing_id is None:
        console.print(f"[yellow]No task with id[/yellow] {task_id}")
        ctx.exit(1)

    dispatcher.dispatch(SubmitText(" ".join(text)))
    if dispatcher.store.editing_id is not None:
        console.print("[yellow]Nothing to change:[/yellow] task text is empty")
        ctx.exit(1)

    new_text = " ".join(text).strip()
    console.print(f"[green]Updated[/green] [cyan]{task_id}[/cyan]: {escape(new_text)}")
    _report_save_error(dispatcher)


@main.command()
@click.argument("task_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Delete without asking")
@click.pass_context
def delete(ctx: click.Context, task_id: int, yes: bool) -> None:
    """Delete a task."""
    dispatcher = _dispatcher(ctx)
    view = dispatcher.dispatch(RequestDelete(task_id))
    if view.confirmation is None:
        console.print(f"[yellow]No task with id[/yellow] {task_id}")
        ctx.exit(1)

    if not yes and not click.confirm(view.confirmation.message, default=False):
        dispatcher.dispatch(Dismiss())
        console.print("[dim]Cancelled.[/dim]")
        return

    dispatcher.dispatch(Confirm())
    console.print(f"[green]Deleted[/green] {task_id}")
    _report_save_error(dispatcher)


@main.command("clear-completed")
@click.option("--yes", "-y", is_flag=True, help="Clear without asking")
@click.pass_context
def clear_completed(ctx: click.Context, yes: bool) -> None:
    """Delete every completed task."""
    dispatcher = _dispatcher(ctx)
    view = dispatcher.dispatch(RequestClearCompleted())
    if view.confirmation is None:
        console.print("[dim]No completed tasks.[/dim]")
        return

    count = view.confirmation.count
    if not yes and not click.confirm(view.confirmation.message, default=False):
        dispatcher.dispatch(Dismiss())
        console.print("[dim]Cancelled.[/dim]")
        return

    dispatcher.dispatch(Confirm())
    console.print(f"[green]Cleared {count} completed task{'s' if count != 1 else ''}[/green]")
    _report_save_error(dispatcher)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the page (default from config)",
)
@click.option("--filter", "-f", "filter_value", type=FILTER_CHOICE, default="all")
@click.pass_context
def html(ctx: click.Context, output: Path | None, filter_value: str) -> None:
    """Write the task list as an HTML page."""
    config: TickoffConfig = ctx.obj["config"]
    dispatcher = _dispatcher(ctx)
    view = dispatcher.dispatch(SelectFilter(Filter(filter_value.lower())))

    path = HtmlRenderer().write(view, output or Path(config.display.html_output))
    console.print(f"[green]Wrote[/green] {escape(str(path))}")


@main.command()
@click.pass_context
def shell(ctx: click.Context) -> None:
    """Interactive session: edits and filters persist between commands."""
    config: TickoffConfig = ctx.obj["config"]
    renderer = ConsoleRenderer(console, show_timestamps=config.display.show_timestamps)
    dispatcher = _dispatcher(ctx, renderer)

    console.print(Panel.fit("[bold]tickoff[/bold] - type [cyan]help[/cyan] for commands"))
    view = dispatcher.refresh()

    while True:
        try:
            line = click.prompt(
                view.submit_label.lower(),
                default="",
                show_default=False,
                prompt_suffix="> ",
            )
        except click.Abort:
            break

        command = line.strip().lower()
        if command in ("quit", "exit", "q"):
            break
        if command == "help":
            console.print(SHELL_HELP, markup=False, highlight=False)
            continue
        if command in ("list", "ls"):
            view = dispatcher.refresh()
            continue

        try:
            intent = parse_command(line)
        except CommandError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            continue

        if intent is None:
            continue
        view = dispatcher.dispatch(intent)
