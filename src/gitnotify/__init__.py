"""gitnotify - keeps a local inbox of GitHub notifications in sync."""

__version__ = "0.3.0"
