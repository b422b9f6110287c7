"""Rendering surfaces for a projected ``ViewModel``.

Task text is user input and is always treated as plain text: the HTML
renderer autoescapes it, and the console renderer wraps it in ``rich.text.Text``
so rich never reads it as console markup.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, Environment
from rich.console import Console
from rich.table import Table
from rich.text import Text

from tickoff.models import Filter
from tickoff.view import ViewModel

HTML_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<div class="todo-app">
  <form class="task-form">
    <input id="taskInput" type="text" value="{{ view.input_text }}" placeholder="What needs to be done?">
    <button id="addBtn" type="submit">{{ view.submit_label }}</button>
  </form>
  <nav class="filters">
{% for value in filters %}
    <button class="filter-btn{% if value == view.filter %} active{% endif %}" data-filter="{{ value.value }}">{{ value.value | capitalize }}</button>
{% endfor %}
  </nav>
{% if view.warning %}
  <p class="warning">{{ view.warning }}</p>
{% endif %}
{% if view.confirmation %}
  <div class="confirm" data-action="{{ view.confirmation.action }}">{{ view.confirmation.message }}</div>
{% endif %}
  <ul id="taskList">
{% if view.empty_message %}
    <div class="empty-state">
      <h3>📝</h3>
      <p>{{ view.empty_message }}</p>
    </div>
{% else %}
{% for row in view.rows %}
    <li class="task-item{% if row.completed %} completed{% endif %}{% if row.editing %} editing{% endif %}" data-id="{{ row.id }}">
      <input type="checkbox" class="task-checkbox"{% if row.completed %} checked{% endif %}>
      <span class="task-text">{{ row.text }}</span>
      <div class="task-actions">
        <button class="edit-btn"{% if not row.can_edit %} disabled{% endif %}>Edit</button>
        <button class="delete-btn">Delete</button>
      </div>
    </li>
{% endfor %}
{% endif %}
  </ul>
  <footer>
    <span id="taskCount">{{ view.summary.label }}</span>
{% if view.show_clear_completed %}
    <button id="clearCompleted">Clear Completed</button>
{% endif %}
  </footer>
</div>
</body>
</html>
"""


class HtmlRenderer:
    """Renders the view model to a standalone HTML page."""

    def __init__(self, title: str = "To-Do List") -> None:
        self.title = title
        self.last_output = ""
        env = Environment(loader=BaseLoader(), autoescape=True)
        self._template = env.from_string(HTML_TEMPLATE)

    def render(self, view: ViewModel) -> str:
        return self._template.render(view=view, filters=list(Filter), title=self.title)

    def write(self, view: ViewModel, path: Path) -> Path:
        """Render and write the page, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(view), encoding="utf-8")
        return path

    def __call__(self, view: ViewModel) -> None:
        self.last_output = self.render(view)


class ConsoleRenderer:
    """Draws the view model as a rich table."""

    def __init__(self, console: Console | None = None, show_timestamps: bool = False) -> None:
        self.console = console or Console()
        self.show_timestamps = show_timestamps

    def build_table(self, view: ViewModel) -> Table:
        table = Table(title=f"Tasks ({view.filter.value})", show_lines=False)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("", no_wrap=True)
        table.add_column("Task")
        if self.show_timestamps:
            table.add_column("Updated", style="dim")

        for row in view.rows:
            text = Text(row.text)
            if row.completed:
                text.stylize("strike dim")
            if row.editing:
                text.stylize("bold yellow")
            cells = [str(row.id), "✓" if row.completed else "○", text]
            if self.show_timestamps:
                cells.append(row.updated_at)
            table.add_row(*cells)

        return table

    def render(self, view: ViewModel) -> None:
        if view.warning:
            self.console.print(Text(f"⚠ {view.warning}", style="yellow"))

        if view.empty_message:
            self.console.print(Text(view.empty_message))
        else:
            self.console.print(self.build_table(view))

        self.console.print(Text(view.summary.label, style="bold"))
        if view.show_clear_completed:
            self.console.print(
                Text(f"{view.summary.completed} completed", style="dim")
            )
        if view.confirmation:
            self.console.print(Text(view.confirmation.message, style="bold red"))

    def __call__(self, view: ViewModel) -> None:
        self.render(view)
