"""Main gitnotify TUI application."""

from __future__ import annotations

import contextlib
import threading
import webbrowser

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import DataTable, Footer, Header, Static

from ..config import TuiConfig
from ..engine import Outcome, ReconciliationEngine
from ..inbox.models import Category, IconStyle
from ..log import get_logger
from .utils import build_bindings, format_timestamp, next_category, status_line, styled_cell

_log = get_logger("tui")


class GitNotifyApp(App):
    """gitnotify TUI - GitHub notifications inbox."""

    CSS = """
    #main_table {
        height: 1fr;
    }

    #status {
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(self, engine: ReconciliationEngine, config: TuiConfig | None = None) -> None:
        super().__init__()
        self.engine = engine
        self.config = config or TuiConfig()
        self.category = Category.ALL
        self._icon = IconStyle.GIT_BRANCH
        self._show_badge = True
        self._setup_keybindings()
        if self.config.transparent:
            self.ansi_color = True
            self.dark = True

    def _setup_keybindings(self) -> None:
        """Build keybindings from config."""
        kb = self.config.keybindings
        for keys, action, label in (
            (kb.quit, "quit", "Quit"),
            (kb.refresh, "refresh", "Refresh"),
            (kb.mark_read, "mark_read", "Mark Read"),
            (kb.mark_all_read, "mark_all_read", "Mark All Read"),
            (kb.open, "open", "Open"),
            (kb.next_category, "next_category", "Category"),
        ):
            for b in build_bindings(keys, action, label):
                self.bind(b.key, b.action, description=b.description, show=b.show)
        self.bind("escape", "quit", description="Quit", show=False)

        if len(kb.up_down) == 2:
            up, down = kb.up_down
            self.bind(up, "cursor_up", description="Up", show=False)
            self.bind(down, "cursor_down", description="Down", show=False)

    def compose(self) -> ComposeResult:
        yield Header()
        yield DataTable(id="main_table")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "gitnotify"

        table = self.query_one("#main_table", DataTable)
        if self.config.transparent:
            self.screen.styles.background = "transparent"
            table.styles.background = "transparent"
        table.cursor_type = "row"
        table.add_column("Updated", width=10)
        table.add_column("", width=1)  # Unread indicator
        table.add_column("Repository", width=28)
        table.add_column("Type", width=12)
        table.add_column("Reason", width=18)
        table.add_column("Title")

        settings = self.engine.load_settings()
        self._icon = settings.icon_style
        self._show_badge = settings.show_badge

        self.engine.add_change_listener(self._on_engine_change)
        self.engine.add_listener(self._on_engine_outcome)
        self.engine.start(poll_immediately=True)

        self._refresh_notifications()
        # keeps "next poll" and the in-flight marker current
        self.set_interval(5.0, self._update_status)
        self.refresh_bindings()

    def on_unmount(self) -> None:
        self.engine.stop()

    # --- engine callbacks (any thread) ---

    def _on_engine_change(self) -> None:
        self._call_on_ui(self._refresh_notifications)

    def _on_engine_outcome(self, outcome: Outcome) -> None:
        if outcome.error is not None:
            self._call_on_ui(self.notify, outcome.error.message, severity="error")
        self._call_on_ui(self._update_status)

    def _call_on_ui(self, callback, *args, **kwargs) -> None:
        if threading.get_ident() == self._thread_id:
            callback(*args, **kwargs)
        else:
            with contextlib.suppress(RuntimeError):  # app already shut down
                self.call_from_thread(callback, *args, **kwargs)

    # --- rendering ---

    def _get_current_row_key(self) -> str | None:
        """Get the row key (notification ID) at current cursor."""
        table = self.query_one("#main_table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value if row_key else None

    def _refresh_notifications(self) -> None:
        table = self.query_one("#main_table", DataTable)
        current_key = self._get_current_row_key()
        current_index = table.cursor_coordinate.row

        table.clear()
        for n in self.engine.notifications(self.category):
            table.add_row(
                styled_cell(format_timestamp(n.updated_at), n.unread),
                Text("●", style="bold cyan") if n.unread else Text(""),
                styled_cell(n.container_name, n.unread),
                styled_cell(n.subject_type.display_name, n.unread),
                styled_cell(n.reason.display_name, n.unread),
                styled_cell(n.subject_title, n.unread),
                key=n.id,
            )

        if table.row_count > 0:
            target_index = None
            if current_key:
                with contextlib.suppress(Exception):
                    target_index = table.get_row_index(current_key)
            if target_index is None:
                target_index = min(current_index, table.row_count - 1)
            table.move_cursor(row=target_index)

        self._update_status()

    def _update_status(self) -> None:
        counts = self.engine.unread_counts()
        unread = counts.get(Category.ALL, 0)
        self.sub_title = f"{unread} unread" if self._show_badge and unread else ""
        self.query_one("#status", Static).update(
            status_line(self._icon, counts, self.category, self.engine.poll_state)
        )

    # --- actions ---

    def action_refresh(self) -> None:
        """Poll now on a background thread; the engine drops it if one is running."""
        threading.Thread(target=self.engine.poll_now, name="gitnotify-refresh", daemon=True).start()
        self._update_status()

    def action_mark_read(self) -> None:
        notification_id = self._get_current_row_key()
        if notification_id is None:
            return
        threading.Thread(
            target=self.engine.mark_as_read, args=(notification_id,), daemon=True
        ).start()

    def action_mark_all_read(self) -> None:
        threading.Thread(target=self.engine.mark_all_as_read, daemon=True).start()

    def action_open(self) -> None:
        """Open the selected notification in the browser and mark it read."""
        notification_id = self._get_current_row_key()
        if notification_id is None:
            return
        record = next(
            (n for n in self.engine.notifications() if n.id == notification_id), None
        )
        if record is None:
            return
        if record.html_url:
            webbrowser.open(record.html_url)
        else:
            self.notify("No web page for this notification", severity="warning")
        if record.unread:
            self.action_mark_read()

    def action_next_category(self) -> None:
        self.category = next_category(self.category)
        self._refresh_notifications()

    def action_cursor_up(self) -> None:
        self.query_one("#main_table", DataTable).action_cursor_up()

    def action_cursor_down(self) -> None:
        self.query_one("#main_table", DataTable).action_cursor_down()
