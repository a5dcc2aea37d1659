"""gitnotify TUI package."""

from .app import GitNotifyApp

__all__ = ["GitNotifyApp"]
