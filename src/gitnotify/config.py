"""Configuration management for gitnotify.

This is the file-backed configuration (API endpoint, timeouts, storage and
notifier choices). User preferences such as the poll interval live in the
database; see gitnotify.inbox.settings.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .log import get_logger

_log = get_logger("config")


def get_config_path() -> Path:
    """Get the path to the gitnotify config file."""
    xdg_config = Path.home() / ".config"
    return xdg_config / "gitnotify" / "config.toml"


def get_default_config() -> str:
    """Return the default config file contents."""
    return """\
# gitnotify configuration

[github]
# api_url = "https://api.github.com"
# Seconds before a request to GitHub is abandoned
timeout = 15.0
# Transport errors (not HTTP errors) are retried with exponential backoff
max_retries = 2
retry_backoff = 1.0

[storage]
# db_path = "~/.local/share/gitnotify/gitnotify.db"
# Read notifications older than this are removed after each poll
retention_days = 30

[notifier]
# Options: "auto", "osascript" (macOS), "notify-send" (Linux), "none"
backend = "auto"
"""


@dataclass
class GitHubConfig:
    """Configuration for the GitHub API client."""

    api_url: str = "https://api.github.com"
    api_version: str = "2022-11-28"
    timeout: float = 15.0
    max_retries: int = 2
    retry_backoff: float = 1.0


@dataclass
class StorageConfig:
    """Where and how long notifications are kept."""

    db_path: Path | None = None  # None means the XDG default
    retention_days: int = 30


@dataclass
class NotifierConfig:
    backend: str = "auto"  # "auto", "osascript", "notify-send" or "none"


@dataclass
class KeybindingsConfig:
    """Configuration for TUI keybindings.

    Each command field is a string where each character is a valid key binding.
    For example, quit="qQ" means both 'q' and 'Q' will quit.
    """

    quit: str = "q"
    refresh: str = "g"
    mark_read: str = "m"
    mark_all_read: str = "M"
    open: str = "o"
    next_category: str = "c"
    up_down: str = ""  # 2-char string: up, down (e.g., "kj" for vim)


@dataclass
class TuiConfig:
    """Configuration for the TUI."""

    transparent: bool = False  # Use ANSI colors for terminal transparency
    keybindings: KeybindingsConfig = field(default_factory=KeybindingsConfig)


@dataclass
class Config:
    """gitnotify configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)
    tui: TuiConfig = field(default_factory=TuiConfig)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, or return defaults."""
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return Config()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        _log.warning("could not load config from %s: %s", config_path, e)
        return Config()

    return _parse_config(data)


def _defaults_merged(cls: type, section: dict[str, Any]) -> Any:
    """Build a dataclass from a TOML section, using dataclass defaults for missing keys."""
    defaults = cls()
    return cls(
        **{
            name: section.get(name, getattr(defaults, name))
            for name in defaults.__dataclass_fields__
        }
    )


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse config dict into Config object."""
    github = _defaults_merged(GitHubConfig, data.get("github", {}))
    github.api_url = github.api_url.rstrip("/")

    storage_data = data.get("storage", {})
    db_path = storage_data.get("db_path")
    storage = StorageConfig(
        db_path=Path(db_path).expanduser() if db_path else None,
        retention_days=storage_data.get("retention_days", 30),
    )

    notifier = NotifierConfig(backend=data.get("notifier", {}).get("backend", "auto"))

    tui_data = data.get("tui", {})
    # Use dataclass defaults for any unspecified keybindings
    keybindings = _defaults_merged(KeybindingsConfig, tui_data.get("keybindings", {}))
    tui = TuiConfig(
        transparent=tui_data.get("transparent", False),
        keybindings=keybindings,
    )

    return Config(github=github, storage=storage, notifier=notifier, tui=tui)


def ensure_config_exists() -> Path:
    """Ensure the config file exists, creating with defaults if needed."""
    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(get_default_config())

    return config_path
