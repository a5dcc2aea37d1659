"""LaunchAgent management for running `gitnotify watch` at login."""

import os
import plistlib
import shutil
import subprocess
import sys
from pathlib import Path

from ..errors import LaunchAgentError
from ..log import get_logger

_log = get_logger("launchd")

LABEL = "com.gitnotify.watch"
PLIST_NAME = f"{LABEL}.plist"


def _get_launch_agents_dir() -> Path:
    """Get the user's LaunchAgents directory."""
    return Path.home() / "Library" / "LaunchAgents"


def get_plist_path() -> Path:
    """Get the path to our LaunchAgent plist."""
    return _get_launch_agents_dir() / PLIST_NAME


def _get_log_dir() -> Path:
    from ..paths import get_log_dir

    return get_log_dir()


def _get_program_arguments() -> list[str]:
    """Command line launchd runs: the installed script, else this interpreter."""
    gitnotify_path = shutil.which("gitnotify")
    if gitnotify_path:
        return [gitnotify_path, "watch"]

    # Fall back to assuming it's installed via uv tool
    uv_bin = Path.home() / ".local" / "bin" / "gitnotify"
    if uv_bin.exists():
        return [str(uv_bin), "watch"]

    return [sys.executable, "-m", "gitnotify.cli", "watch"]


def generate_plist() -> dict:
    """Generate the LaunchAgent plist configuration."""
    log_dir = _get_log_dir()

    return {
        "Label": LABEL,
        "ProgramArguments": _get_program_arguments(),
        "RunAtLoad": True,
        "KeepAlive": False,
        "StandardOutPath": str(log_dir / "watch.out"),
        "StandardErrorPath": str(log_dir / "watch.err"),
        "EnvironmentVariables": {
            "PATH": os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin"),
        },
    }


def install_agent(load: bool = True) -> Path:
    """Write the LaunchAgent plist and, optionally, load it now.

    Replaces any existing agent. Raises LaunchAgentError if launchctl fails.
    """
    plist_path = get_plist_path()
    plist_path.parent.mkdir(parents=True, exist_ok=True)

    if plist_path.exists():
        subprocess.run(["launchctl", "unload", str(plist_path)], capture_output=True)

    with open(plist_path, "wb") as f:
        plistlib.dump(generate_plist(), f)
    _log.info("installed launch agent %s", plist_path)

    if load:
        result = subprocess.run(
            ["launchctl", "load", str(plist_path)], capture_output=True, text=True
        )
        if result.returncode != 0:
            raise LaunchAgentError(f"launchctl load failed: {result.stderr.strip()}")
    return plist_path


def uninstall_agent() -> bool:
    """Unload and remove the LaunchAgent. Returns False if it was not installed."""
    plist_path = get_plist_path()
    if not plist_path.exists():
        return False

    result = subprocess.run(
        ["launchctl", "unload", str(plist_path)], capture_output=True, text=True
    )
    if result.returncode != 0:
        _log.warning("launchctl unload failed: %s", result.stderr.strip())

    plist_path.unlink()
    _log.info("removed launch agent %s", plist_path)
    return True


def agent_status() -> str:
    """One of "not installed", "installed" or "running"."""
    if not get_plist_path().exists():
        return "not installed"
    result = subprocess.run(["launchctl", "list", LABEL], capture_output=True, text=True)
    return "running" if result.returncode == 0 else "installed"


def set_launch_at_login(enabled: bool) -> None:
    """Register or unregister the login item. Only meaningful on macOS."""
    if sys.platform != "darwin":
        _log.info("launch at login is only supported on macOS")
        return
    if enabled:
        install_agent()
    else:
        uninstall_agent()
