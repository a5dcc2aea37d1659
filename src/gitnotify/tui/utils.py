"""TUI utilities and helpers."""

from __future__ import annotations

import time
from datetime import datetime

from rich.text import Text
from textual.binding import Binding

from ..engine import PollState
from ..inbox.models import Category, IconStyle

_DAY_SECONDS = 86400


def build_bindings(keys: str, action: str, label: str, show: bool = True) -> list[Binding]:
    """Build Binding objects for all keys mapped to an action.

    Each character of `keys` is one key. Only the first is shown in the footer.
    """
    if not keys:
        return []

    bindings = [Binding(keys[0], action, label, show=show)]
    for key in keys[1:]:
        bindings.append(Binding(key, action, label, show=False))
    return bindings


def styled_cell(value: str, is_unread: bool) -> Text:
    """Style a cell value based on read/unread status."""
    if is_unread:
        return Text(value, style="bold cyan")

    return Text(value, style="dim")


def format_timestamp(ts: float, now: float | None = None) -> str:
    """Time of day for the last 24 hours, the date before that."""
    if now is None:
        now = time.time()
    dt = datetime.fromtimestamp(ts)
    if now - ts < _DAY_SECONDS:
        return dt.strftime("%H:%M")
    return dt.strftime("%Y-%m-%d")


def next_category(current: Category) -> Category:
    """The tab after `current`, wrapping around."""
    members = list(Category)
    return members[(members.index(current) + 1) % len(members)]


def status_line(
    icon: IconStyle,
    counts: dict[Category, int],
    category: Category,
    poll: PollState,
) -> str:
    """One-line summary: unread counts, poll state and the last error."""
    tabs = "  ".join(
        f"[b]{c.label} {counts.get(c, 0)}[/b]" if c is category else f"{c.label} {counts.get(c, 0)}"
        for c in Category
    )
    parts = [f"{icon.glyph} {tabs}"]

    if poll.in_flight:
        parts.append("polling...")
    elif poll.next_fire_at is not None:
        parts.append(f"next poll {datetime.fromtimestamp(poll.next_fire_at):%H:%M}")

    if poll.last_error is not None:
        parts.append(f"[red]{poll.last_error.message}[/red]")
    return "  |  ".join(parts)
