"""GitHub notifications API client: sends requests and classifies responses.

The client keeps no state between calls. The conditional-fetch token
(Last-Modified) is passed in by the caller and handed back in FetchResult,
so a retry never depends on anything hidden in the client.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from .. import __version__
from ..config import GitHubConfig
from ..errors import (
    Forbidden,
    HTTPError,
    InvalidResponse,
    InvalidToken,
    NetworkError,
    NotFound,
    RateLimited,
    Unauthorized,
)
from ..inbox.models import NotificationRecord
from ..log import get_logger
from .decode import decode_notifications, format_timestamp

_log = get_logger("github")

PAGE_SIZE = 50

# mark-thread-read: 205 Reset Content, or 304 when it was already read
MARK_THREAD_OK = frozenset({205, 304})
# mark-all-read: 202 Accepted (processed async) or 205 Reset Content
MARK_ALL_OK = frozenset({202, 205})


@dataclass(frozen=True)
class FetchResult:
    notifications: list[NotificationRecord] = field(default_factory=list)
    not_modified: bool = False
    poll_interval: int | None = None  # seconds, from X-Poll-Interval
    last_modified: str | None = None  # token for the next conditional fetch


def raise_for_status(response: httpx.Response) -> None:
    """Map a non-2xx response onto the API error taxonomy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 401:
        raise Unauthorized()
    if status == 403:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            raise RateLimited()
        raise Forbidden()
    if status == 404:
        raise NotFound()
    raise HTTPError(status)


def _poll_interval(response: httpx.Response) -> int | None:
    value = response.headers.get("X-Poll-Interval")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class GitHubClient:
    """GitHub REST client for the notifications endpoints."""

    def __init__(
        self,
        config: GitHubConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or GitHubConfig()
        self._transport = transport
        self._sleep = sleep

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": self._config.api_version,
            "User-Agent": f"gitnotify/{__version__}",
        }

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request, retrying transport failures with exponential backoff.

        HTTP error statuses are returned, not retried; the caller classifies them.
        """
        headers = self._headers(token)
        if extra_headers:
            headers.update(extra_headers)

        attempts = max(0, self._config.max_retries) + 1
        delay = self._config.retry_backoff
        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(
                    base_url=self._config.api_url,
                    timeout=self._config.timeout,
                    transport=self._transport,
                ) as c:
                    return c.request(method, path, params=params, json=json_body, headers=headers)
            except httpx.TransportError as e:
                if attempt == attempts:
                    raise NetworkError(e) from e
                _log.info(
                    "%s %s failed (%s), retry %d/%d in %.1fs",
                    method, path, e, attempt, attempts - 1, delay,
                )
                self._sleep(delay)
                delay *= 2

        raise AssertionError("unreachable")

    def fetch_notifications(
        self,
        token: str,
        include_read: bool = False,
        since: float | None = None,
        use_conditional_fetch: bool = True,
        last_modified: str | None = None,
    ) -> FetchResult:
        """Fetch the first page of notification threads.

        Args:
            token: GitHub token
            include_read: If True, includes read notifications (`all=true`)
            since: Only threads updated after this unix time
            use_conditional_fetch: Send If-Modified-Since when last_modified is known
            last_modified: Last-Modified value from the previous fetch
        """
        params = {"all": "true" if include_read else "false", "per_page": str(PAGE_SIZE)}
        if since is not None:
            params["since"] = format_timestamp(since)

        extra = {}
        if use_conditional_fetch and last_modified:
            extra["If-Modified-Since"] = last_modified

        response = self._request("GET", "/notifications", token, params=params, extra_headers=extra)
        new_last_modified = response.headers.get("Last-Modified") or last_modified
        interval = _poll_interval(response)

        if response.status_code == 304:
            return FetchResult(
                not_modified=True, poll_interval=interval, last_modified=new_last_modified
            )

        raise_for_status(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidResponse(f"GitHub returned a body that is not JSON: {e}") from e

        return FetchResult(
            notifications=decode_notifications(payload),
            poll_interval=interval,
            last_modified=new_last_modified,
        )

    def mark_thread_read(self, thread_id: str, token: str) -> None:
        """Mark a single notification thread as read on GitHub."""
        response = self._request("PATCH", f"/notifications/threads/{thread_id}", token)
        if response.status_code not in MARK_THREAD_OK:
            raise_for_status(response)
            raise HTTPError(response.status_code)

    def mark_all_read(self, token: str, last_read_at: float | None = None) -> None:
        """Mark all notifications as read, optionally only those updated before last_read_at."""
        body: dict[str, Any] = {"read": True}
        if last_read_at is not None:
            body["last_read_at"] = format_timestamp(last_read_at)

        response = self._request("PUT", "/notifications", token, json_body=body)
        if response.status_code not in MARK_ALL_OK:
            raise_for_status(response)
            raise HTTPError(response.status_code)

    def validate_token(self, token: str) -> str:
        """Check a token against GET /user and return the login it belongs to."""
        response = self._request("GET", "/user", token)
        raise_for_status(response)

        try:
            login = response.json().get("login")
        except (ValueError, AttributeError):
            login = None
        if not isinstance(login, str) or not login:
            raise InvalidToken()
        return login
