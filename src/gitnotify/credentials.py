"""GitHub token storage.

The engine only needs get/set/delete of an opaque secret. The default store
keeps it in a 0600 file under the gitnotify state directory.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Protocol

from .paths import get_token_path

_CLASSIC = re.compile(r"^ghp_[A-Za-z0-9]{36,}$")
_FINE_GRAINED = re.compile(r"^github_pat_[A-Za-z0-9_]{22,}$")
_LEGACY = re.compile(r"^[0-9a-fA-F]{40}$")


class TokenStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, secret: str) -> None: ...

    def delete(self) -> None: ...


class FileTokenStore:
    """Token kept in a file readable only by the current user."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_token_path()

    def get(self) -> str | None:
        try:
            token = self.path.read_text().strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, secret: str) -> None:
        secret = secret.strip()
        if not secret:
            raise ValueError("refusing to store an empty token")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(secret)
        os.chmod(self.path, 0o600)

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)


def is_valid_token_format(token: str) -> bool:
    """Accept classic (ghp_), fine-grained (github_pat_) and legacy 40-hex tokens."""
    return bool(_CLASSIC.match(token) or _FINE_GRAINED.match(token) or _LEGACY.match(token))


def mask_token(token: str) -> str:
    """Show only the first and last 4 characters of a token."""
    if len(token) <= 12:
        return "*" * len(token)
    middle = "*" * min(len(token) - 8, 20)
    return f"{token[:4]}{middle}{token[-4:]}"
