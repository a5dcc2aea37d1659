"""CLI entry point for gitnotify.

gitnotify polls GitHub for notifications, keeps them in a local inbox and
raises desktop alerts for new ones. With no command it opens the TUI.
"""

import argparse
import getpass
import json
import sys
import threading
import webbrowser
from dataclasses import asdict
from datetime import datetime

from . import __version__
from .config import Config, ensure_config_exists, get_config_path, load_config
from .credentials import FileTokenStore, mask_token
from .engine import Outcome, ReconciliationEngine
from .errors import GitNotifyError, NoCredential, NotFound
from .github import GitHubClient
from .inbox.models import Category, IconStyle, NotificationRecord
from .inbox.settings import MAX_POLL_INTERVAL, MIN_POLL_INTERVAL
from .log import get_logger
from .notify import get_sink

_log = get_logger("cli")


def build_engine(config: Config | None = None) -> ReconciliationEngine:
    """Wire the client, token store, sink and store into an engine."""
    if config is None:
        config = load_config()
    return ReconciliationEngine(
        client=GitHubClient(config.github),
        token_store=FileTokenStore(),
        sink=get_sink(config.notifier.backend),
        db_path=config.storage.db_path,
        retention_days=config.storage.retention_days,
    )


def _fail(error: GitNotifyError) -> None:
    print(f"Error: {error.message}", file=sys.stderr)
    if error.recovery:
        print(error.recovery, file=sys.stderr)
    sys.exit(1)


def _check(outcome: Outcome | None) -> Outcome | None:
    if outcome is not None and outcome.error is not None:
        _fail(outcome.error)
    return outcome


def _format_time(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")


def _record_to_json(n: NotificationRecord) -> dict:
    data = asdict(n)
    data["category"] = n.category.value
    data["html_url"] = n.html_url
    return data


# --- auth ---


def cmd_auth_login(args: argparse.Namespace) -> None:
    """Validate a token with GitHub and store it."""
    token = args.token or getpass.getpass("GitHub token: ")
    engine = build_engine()
    try:
        login = engine.sign_in(token)
    except GitNotifyError as e:
        _fail(e)
    print(f"Signed in as {login}")


def cmd_auth_status(args: argparse.Namespace) -> None:
    token = FileTokenStore().get()
    if token is None:
        print("Not signed in.")
        print("Run 'gitnotify auth login' to add a token.")
        sys.exit(1)
    print(f"Token: {mask_token(token)}")


def cmd_auth_logout(args: argparse.Namespace) -> None:
    """Forget the token and clear the local inbox."""
    build_engine().sign_out()
    print("Signed out.")


# --- polling ---


def cmd_poll(args: argparse.Namespace) -> None:
    """Run one poll now."""
    engine = build_engine()
    outcome = _check(engine.run_pass(use_conditional_fetch=not args.force))
    if outcome is None:
        print("A poll is already running.")
        return
    print(f"{outcome.new_count} new notifications")


def cmd_watch(args: argparse.Namespace) -> None:
    """Poll on the configured interval until interrupted."""
    engine = build_engine()
    if not engine.is_authenticated:
        _fail(NoCredential())

    def report(outcome: Outcome) -> None:
        if outcome.error is not None:
            print(f"{outcome.action}: {outcome.error.message}", file=sys.stderr)
        elif outcome.action == "poll" and outcome.new_count:
            print(f"{outcome.new_count} new notifications")

    engine.add_listener(report)
    engine.start(poll_immediately=True)
    state = engine.poll_state
    print(f"Watching (every {state.interval / 60:.0f} min). Ctrl-C to stop.")
    _log.info("watch started")

    stop = threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        engine.stop()
        _log.info("watch stopped")


# --- inbox ---


def cmd_list(args: argparse.Namespace) -> None:
    """List stored notifications, unread only unless --all."""
    engine = build_engine()
    engine.reload()
    notifications = engine.notifications(Category(args.category))
    if not args.all:
        notifications = [n for n in notifications if n.unread]

    if args.json:
        print(json.dumps([_record_to_json(n) for n in notifications]))
        return

    if not notifications:
        print("No unread notifications." if not args.all else "No notifications.")
        return

    for n in notifications:
        marker = "*" if n.unread else " "
        print(
            f"{marker} [{n.id}] {_format_time(n.updated_at)} | {n.container_name}"
            f" | {n.subject_type.short_label} | {n.subject_title}"
        )


def cmd_read(args: argparse.Namespace) -> None:
    """Mark one notification, or all of them, as read."""
    engine = build_engine()
    engine.reload()
    if args.all:
        _check(engine.mark_all_as_read())
        print("Marked all notifications as read")
        return
    if args.id is None:
        print("Error: give a notification ID or --all", file=sys.stderr)
        sys.exit(1)
    _check(engine.mark_as_read(args.id))
    print(f"Marked notification {args.id} as read")


def cmd_open(args: argparse.Namespace) -> None:
    """Open a notification in the browser and mark it read."""
    engine = build_engine()
    engine.reload()
    record = next((n for n in engine.notifications() if n.id == args.id), None)
    if record is None:
        _fail(NotFound(f"Notification {args.id} not found"))

    url = record.html_url
    if url:
        webbrowser.open(url)
    else:
        print(f"Notification {args.id} has no web page", file=sys.stderr)
    _check(engine.mark_as_read(args.id))


# --- settings ---


def cmd_settings_show(args: argparse.Namespace) -> None:
    from .macos.launchd import agent_status

    settings = build_engine().load_settings()
    print(f"poll_interval_minutes = {settings.poll_interval_minutes}")
    print(f"show_badge            = {str(settings.show_badge).lower()}")
    print(f"notifications_enabled = {str(settings.notifications_enabled).lower()}")
    print(f"launch_at_login       = {str(settings.launch_at_login).lower()}")
    print(f"launch_agent          = {agent_status()}")
    print(f"icon_style            = {settings.icon_style.value}")
    if settings.last_poll_at is not None:
        print(f"last_poll_at          = {_format_time(settings.last_poll_at)}")


def cmd_settings_set(args: argparse.Namespace) -> None:
    changes: dict = {}
    if args.interval is not None:
        changes["poll_interval_minutes"] = args.interval
    if args.badge is not None:
        changes["show_badge"] = args.badge
    if args.notifications is not None:
        changes["notifications_enabled"] = args.notifications
    if args.icon_style is not None:
        changes["icon_style"] = IconStyle(args.icon_style)
    if args.launch_at_login is not None:
        from .macos.launchd import set_launch_at_login

        try:
            set_launch_at_login(args.launch_at_login)
        except GitNotifyError as e:
            _fail(e)
        changes["launch_at_login"] = args.launch_at_login

    if not changes:
        cmd_settings_show(args)
        return

    settings = build_engine().update_settings(**changes)
    print(f"Saved. Polling every {settings.poll_interval_minutes} minutes.")


# --- config ---


def cmd_config_init(args: argparse.Namespace) -> None:
    """Initialize config file with defaults."""
    config_path = ensure_config_exists()
    print(f"Config file at: {config_path}")


def cmd_config_path(args: argparse.Namespace) -> None:
    """Print config file path."""
    print(get_config_path())


def cmd_config_show(args: argparse.Namespace) -> None:
    """Show current config."""
    config_path = get_config_path()
    if config_path.exists():
        print(config_path.read_text())
    else:
        print(f"No config file at {config_path}")
        print("Run 'gitnotify config init' to create one.")


def cmd_tui(args: argparse.Namespace) -> None:
    """Launch the inbox TUI."""
    from .tui import GitNotifyApp

    config = load_config()
    app = GitNotifyApp(build_engine(config), config=config.tui)
    app.run()


# --- parsers ---


def setup_auth_parser(subparsers: argparse._SubParsersAction) -> None:
    auth_parser = subparsers.add_parser("auth", help="Manage the GitHub token")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command")

    login_parser = auth_subparsers.add_parser("login", help="Add or replace the token")
    login_parser.add_argument("--token", help="Token to store (prompted if omitted)")
    login_parser.set_defaults(func=cmd_auth_login)

    status_parser = auth_subparsers.add_parser("status", help="Show whether a token is stored")
    status_parser.set_defaults(func=cmd_auth_status)

    logout_parser = auth_subparsers.add_parser(
        "logout", help="Delete the token and clear the inbox"
    )
    logout_parser.set_defaults(func=cmd_auth_logout)

    auth_parser.set_defaults(func=lambda a: auth_parser.print_help())


def setup_inbox_parsers(subparsers: argparse._SubParsersAction) -> None:
    poll_parser = subparsers.add_parser("poll", help="Fetch notifications now")
    poll_parser.add_argument(
        "--force", action="store_true", help="Ignore Last-Modified and fetch everything"
    )
    poll_parser.set_defaults(func=cmd_poll)

    watch_parser = subparsers.add_parser("watch", help="Poll in the foreground until Ctrl-C")
    watch_parser.set_defaults(func=cmd_watch)

    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List notifications")
    list_parser.add_argument(
        "-c",
        "--category",
        choices=[c.value for c in Category],
        default=Category.ALL.value,
        help="Only show one category",
    )
    list_parser.add_argument("-a", "--all", action="store_true", help="Include read ones")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    read_parser = subparsers.add_parser("read", help="Mark notifications as read")
    read_parser.add_argument("id", nargs="?", help="Notification thread ID")
    read_parser.add_argument("--all", action="store_true", help="Mark everything read")
    read_parser.set_defaults(func=cmd_read)

    open_parser = subparsers.add_parser("open", help="Open in the browser and mark read")
    open_parser.add_argument("id", help="Notification thread ID")
    open_parser.set_defaults(func=cmd_open)

    tui_parser = subparsers.add_parser("tui", help="Open the interactive inbox")
    tui_parser.set_defaults(func=cmd_tui)


def setup_settings_parser(subparsers: argparse._SubParsersAction) -> None:
    settings_parser = subparsers.add_parser("settings", help="Show or change preferences")
    settings_subparsers = settings_parser.add_subparsers(dest="settings_command")

    show_parser = settings_subparsers.add_parser("show", help="Show current settings")
    show_parser.set_defaults(func=cmd_settings_show)

    set_parser = settings_subparsers.add_parser("set", help="Change settings")
    set_parser.add_argument(
        "--interval",
        type=int,
        help=f"Minutes between polls ({MIN_POLL_INTERVAL}-{MAX_POLL_INTERVAL})",
    )
    set_parser.add_argument(
        "--badge", action=argparse.BooleanOptionalAction, help="Show the unread count"
    )
    set_parser.add_argument(
        "--notifications",
        action=argparse.BooleanOptionalAction,
        help="Show desktop alerts for new notifications",
    )
    set_parser.add_argument(
        "--launch-at-login",
        action=argparse.BooleanOptionalAction,
        help="Start 'gitnotify watch' at login (macOS)",
    )
    set_parser.add_argument(
        "--icon-style", choices=[s.value for s in IconStyle], help="Status icon"
    )
    set_parser.set_defaults(func=cmd_settings_set)

    settings_parser.set_defaults(func=cmd_settings_show)


def setup_config_parser(subparsers: argparse._SubParsersAction) -> None:
    """Set up the config subcommand."""
    config_parser = subparsers.add_parser("config", help="Manage gitnotify configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    init_parser = config_subparsers.add_parser("init", help="Create config file with defaults")
    init_parser.set_defaults(func=cmd_config_init)

    path_parser = config_subparsers.add_parser("path", help="Print config file path")
    path_parser.set_defaults(func=cmd_config_path)

    show_parser = config_subparsers.add_parser("show", help="Show current config")
    show_parser.set_defaults(func=cmd_config_show)

    config_parser.set_defaults(func=lambda a: config_parser.print_help())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitnotify",
        description="GitHub notifications in your terminal and on your desktop",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    setup_auth_parser(subparsers)
    setup_inbox_parsers(subparsers)
    setup_settings_parser(subparsers)
    setup_config_parser(subparsers)

    # Default for bare "gitnotify" is the TUI
    parser.set_defaults(func=cmd_tui)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
