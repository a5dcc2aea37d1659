"""Tests for the command line interface."""

from __future__ import annotations

import json

import httpx
import pytest

from gitnotify import cli
from gitnotify.config import GitHubConfig
from gitnotify.credentials import FileTokenStore
from gitnotify.engine import ReconciliationEngine
from gitnotify.github import GitHubClient
from gitnotify.notify import NullSink

TOKEN = "ghp_" + "c" * 36


def _thread(id: str, reason: str = "mention", unread: bool = True) -> dict:
    return {
        "id": id,
        "unread": unread,
        "reason": reason,
        "updated_at": "2025-03-01T12:00:00Z",
        "subject": {
            "title": f"Issue {id}",
            "url": f"https://api.github.com/repos/octo/repo/issues/{id}",
            "type": "Issue",
        },
        "repository": {"full_name": "octo/repo", "owner": {}},
    }


@pytest.fixture
def github():
    """Handler state for a fake GitHub; tests append to `threads`."""
    state = {"threads": [], "requests": []}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        if request.url.path == "/user":
            return httpx.Response(200, json={"login": "octocat"})
        if request.method == "GET":
            return httpx.Response(
                200,
                json=state["threads"],
                headers={"Last-Modified": "Wed, 01 Jan 2025 00:00:00 GMT"},
            )
        return httpx.Response(205)

    state["transport"] = httpx.MockTransport(handler)
    return state


@pytest.fixture
def engine(tmp_path, github, monkeypatch):
    tokens = FileTokenStore(tmp_path / "token")
    eng = ReconciliationEngine(
        GitHubClient(GitHubConfig(), transport=github["transport"]),
        tokens,
        NullSink(),
        db_path=tmp_path / "test.db",
    )
    monkeypatch.setattr(cli, "build_engine", lambda config=None: eng)
    monkeypatch.setattr(cli, "FileTokenStore", lambda: tokens)
    return eng


def test_auth_login_and_status(engine, capsys):
    cli.main(["auth", "login", "--token", TOKEN])
    assert "Signed in as octocat" in capsys.readouterr().out

    cli.main(["auth", "status"])
    out = capsys.readouterr().out
    assert out.startswith("Token: ghp_")
    assert TOKEN not in out


def test_auth_login_bad_format(engine, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["auth", "login", "--token", "hunter2"])
    assert exc_info.value.code == 1
    assert "Error: The token format is invalid." in capsys.readouterr().err


def test_auth_status_signed_out(engine, capsys):
    with pytest.raises(SystemExit):
        cli.main(["auth", "status"])
    assert "Not signed in." in capsys.readouterr().out


def test_poll_without_token_fails(engine, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["poll"])
    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "No GitHub token configured." in err
    assert "gitnotify auth login" in err


def test_poll_then_list(engine, github, capsys):
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("1"), _thread("2", reason="comment")]

    cli.main(["poll"])
    assert "2 new notifications" in capsys.readouterr().out

    cli.main(["list"])
    out = capsys.readouterr().out
    assert "[1]" in out and "[2]" in out

    cli.main(["list", "--category", "comments", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert [n["id"] for n in data] == ["2"]
    assert data[0]["category"] == "comments"
    assert data[0]["html_url"] == "https://github.com/octo/repo/issues/2"


def test_poll_force_skips_if_modified_since(engine, github, capsys):
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("1")]
    cli.main(["poll"])
    cli.main(["poll"])
    cli.main(["poll", "--force"])

    fetches = [r for r in github["requests"] if r.url.path == "/notifications"]
    assert fetches[1].headers["If-Modified-Since"] == "Wed, 01 Jan 2025 00:00:00 GMT"
    assert "If-Modified-Since" not in fetches[-1].headers


def test_read_and_list_all(engine, github, capsys):
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("1"), _thread("2")]
    cli.main(["poll"])
    capsys.readouterr()

    cli.main(["read", "1"])
    assert "Marked notification 1 as read" in capsys.readouterr().out

    cli.main(["list", "--json"])
    assert [n["id"] for n in json.loads(capsys.readouterr().out)] == ["2"]

    cli.main(["list", "--all", "--json"])
    assert {n["id"] for n in json.loads(capsys.readouterr().out)} == {"1", "2"}

    patches = [r for r in github["requests"] if r.method == "PATCH"]
    assert patches[0].url.path == "/notifications/threads/1"


def test_read_all(engine, github, capsys):
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("1"), _thread("2")]
    cli.main(["poll"])

    cli.main(["read", "--all"])

    assert engine.unread_count() == 0
    assert any(r.method == "PUT" for r in github["requests"])


def test_open_marks_read(engine, github, monkeypatch):
    opened = []
    monkeypatch.setattr(cli.webbrowser, "open", opened.append)
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("7")]
    cli.main(["poll"])

    cli.main(["open", "7"])

    assert opened == ["https://github.com/octo/repo/issues/7"]
    assert engine.unread_count() == 0


def test_open_unknown_id(engine, capsys):
    with pytest.raises(SystemExit):
        cli.main(["open", "404"])
    assert "not found" in capsys.readouterr().err


def test_settings_set_and_show(engine, capsys, monkeypatch):
    monkeypatch.setattr("gitnotify.macos.launchd.agent_status", lambda: "running")
    cli.main(["settings", "set", "--interval", "2", "--no-badge", "--icon-style", "bell"])
    assert "Polling every 5 minutes" in capsys.readouterr().out

    cli.main(["settings", "show"])
    out = capsys.readouterr().out
    assert "poll_interval_minutes = 5" in out
    assert "show_badge            = false" in out
    assert "icon_style            = bell" in out
    assert "launch_agent          = running" in out


def test_logout_clears_inbox(engine, github, capsys):
    engine.sign_in(TOKEN)
    github["threads"] = [_thread("1")]
    cli.main(["poll"])

    cli.main(["auth", "logout"])

    assert not engine.is_authenticated
    engine.reload()
    assert engine.notifications() == []


def test_config_path(capsys):
    cli.main(["config", "path"])
    assert capsys.readouterr().out.strip().endswith("gitnotify/config.toml")
