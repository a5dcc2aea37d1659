"""Error taxonomy for gitnotify.

Every failure the engine can report is a GitNotifyError subclass, so callers
can branch on type and still show `message` / `recovery` to a human.
"""

from __future__ import annotations


class GitNotifyError(Exception):
    """Base class for all gitnotify failures."""

    message = "Something went wrong."
    recovery: str | None = None

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NoCredential(GitNotifyError):
    message = "No GitHub token configured."
    recovery = "Run 'gitnotify auth login' to add a token."


class NotAuthenticated(GitNotifyError):
    message = "Not authenticated."
    recovery = "Run 'gitnotify auth login' to add a token."


class InvalidTokenFormat(GitNotifyError):
    message = "The token format is invalid."
    recovery = "Paste a classic (ghp_...) or fine-grained (github_pat_...) token."


# --- Remote API ---


class ApiError(GitNotifyError):
    """A request reached GitHub but the response was not acceptable."""

    message = "GitHub API error."


class Unauthorized(ApiError):
    message = "Authentication failed. Please check your token."
    recovery = "Please update your GitHub token with 'gitnotify auth login'."


class Forbidden(ApiError):
    message = "Access forbidden. Your token may lack the required permissions."
    recovery = "Ensure your token has the 'notifications' scope."


class RateLimited(ApiError):
    message = "GitHub API rate limit exceeded. Please try again later."
    recovery = "GitHub limits API requests. gitnotify will retry on the next poll."


class NotFound(ApiError):
    message = "The requested resource was not found."


class HTTPError(ApiError):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP error with status code: {status_code}")


class InvalidResponse(ApiError):
    message = "Invalid response from GitHub API."


class InvalidToken(ApiError):
    message = "The provided token is invalid."
    recovery = "Create a new token with the 'notifications' scope."


class NetworkError(GitNotifyError):
    """Transport-level failure (DNS, connection reset, timeout)."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class DecodeError(GitNotifyError):
    """A single notification payload could not be decoded."""


# --- Local ---


class StoreError(GitNotifyError):
    """The local database failed (I/O, locking, corrupt file)."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Database error: {cause}")


class DeliveryError(GitNotifyError):
    """The desktop notification sink failed to deliver an alert."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Could not deliver notification: {cause}")


class LaunchAgentError(GitNotifyError):
    """launchctl refused to load or unload the login item."""

    recovery = "Check 'gitnotify settings show' and the launchd logs."
