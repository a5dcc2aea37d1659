"""Path utilities for gitnotify."""

from pathlib import Path


def get_state_dir() -> Path:
    """Get the gitnotify state directory (~/.local/state/gitnotify/)."""
    state_dir = Path.home() / ".local" / "state" / "gitnotify"
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def get_data_dir() -> Path:
    """Get the gitnotify data directory, following XDG conventions."""
    data_dir = Path.home() / ".local" / "share" / "gitnotify"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_log_dir() -> Path:
    """Get the directory for gitnotify logs.

    Uses XDG state directory: ~/.local/state/gitnotify/logs/
    """
    log_dir = get_state_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_log_path(name: str) -> Path:
    """Get the path to a specific log file.

    Args:
        name: Log file name (e.g., "gitnotify", "watch")

    Returns:
        Path to ~/.local/state/gitnotify/logs/{name}.log
    """
    return get_log_dir() / f"{name}.log"


def get_token_path() -> Path:
    """Where the file-backed token store keeps the GitHub token."""
    return get_state_dir() / "token"
