"""Types for the gitnotify inbox."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from enum import Enum


class SubjectType(str, Enum):
    ISSUE = "Issue"
    PULL_REQUEST = "PullRequest"
    COMMIT = "Commit"
    RELEASE = "Release"
    DISCUSSION = "Discussion"
    SECURITY_ALERT = "RepositoryVulnerabilityAlert"
    CHECK_SUITE = "CheckSuite"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> SubjectType:
        """Map a remote value onto a member; anything unrecognized is UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        return _SUBJECT_DISPLAY[self]

    @property
    def short_label(self) -> str:
        """Label used in alert titles."""
        return _SUBJECT_SHORT.get(self, "Notification")


_SUBJECT_DISPLAY = {
    SubjectType.ISSUE: "Issue",
    SubjectType.PULL_REQUEST: "Pull Request",
    SubjectType.COMMIT: "Commit",
    SubjectType.RELEASE: "Release",
    SubjectType.DISCUSSION: "Discussion",
    SubjectType.SECURITY_ALERT: "Security Alert",
    SubjectType.CHECK_SUITE: "Check Suite",
    SubjectType.UNKNOWN: "Notification",
}

_SUBJECT_SHORT = {
    SubjectType.ISSUE: "Issue",
    SubjectType.PULL_REQUEST: "PR",
    SubjectType.COMMIT: "Commit",
    SubjectType.RELEASE: "Release",
    SubjectType.DISCUSSION: "Discussion",
}


class Reason(str, Enum):
    ASSIGN = "assign"
    AUTHOR = "author"
    COMMENT = "comment"
    CI_ACTIVITY = "ci_activity"
    INVITATION = "invitation"
    MANUAL = "manual"
    MENTION = "mention"
    REVIEW_REQUESTED = "review_requested"
    SECURITY_ALERT = "security_alert"
    STATE_CHANGE = "state_change"
    SUBSCRIBED = "subscribed"
    TEAM_MENTION = "team_mention"
    APPROVAL_REQUESTED = "approval_requested"
    MEMBER_FEATURE_REQUESTED = "member_feature_requested"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> Reason:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        return _REASON_DISPLAY[self]


_REASON_DISPLAY = {
    Reason.ASSIGN: "Assigned",
    Reason.AUTHOR: "Author",
    Reason.COMMENT: "Commented",
    Reason.CI_ACTIVITY: "CI Activity",
    Reason.INVITATION: "Invitation",
    Reason.MANUAL: "Subscribed",
    Reason.MENTION: "Mentioned",
    Reason.REVIEW_REQUESTED: "Review Requested",
    Reason.SECURITY_ALERT: "Security Alert",
    Reason.STATE_CHANGE: "State Changed",
    Reason.SUBSCRIBED: "Watching",
    Reason.TEAM_MENTION: "Team Mentioned",
    Reason.APPROVAL_REQUESTED: "Approval Requested",
    Reason.MEMBER_FEATURE_REQUESTED: "Feature Requested",
    Reason.UNKNOWN: "Notification",
}


class Category(str, Enum):
    """Inbox tabs. Every record is in ALL; some are also in exactly one other."""

    ALL = "all"
    MENTIONED = "mentioned"
    ASSIGNED = "assigned"
    COMMENTS = "comments"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def reasons(self) -> frozenset[Reason]:
        """Reasons that place a record in this category (empty for ALL)."""
        return CATEGORY_REASONS.get(self, frozenset())


CATEGORY_REASONS: dict[Category, frozenset[Reason]] = {
    Category.MENTIONED: frozenset({Reason.MENTION, Reason.TEAM_MENTION}),
    Category.ASSIGNED: frozenset(
        {Reason.ASSIGN, Reason.REVIEW_REQUESTED, Reason.APPROVAL_REQUESTED}
    ),
    Category.COMMENTS: frozenset({Reason.COMMENT, Reason.AUTHOR}),
}


def categorize(reason: Reason) -> Category:
    """The specific category for a reason, or ALL when it has none."""
    for category, reasons in CATEGORY_REASONS.items():
        if reason in reasons:
            return category
    return Category.ALL


def in_category(record: NotificationRecord, category: Category) -> bool:
    return category is Category.ALL or record.reason in category.reasons


class IconStyle(str, Enum):
    BELL = "bell"
    GIT_BRANCH = "git_branch"
    NETWORK = "network"
    GITHUB = "github"

    @property
    def glyph(self) -> str:
        return _ICON_GLYPHS[self]


_ICON_GLYPHS = {
    IconStyle.BELL: "🔔",
    IconStyle.GIT_BRANCH: "⎇",
    IconStyle.NETWORK: "🌐",
    IconStyle.GITHUB: "⬢",
}


def to_html_url(api_url: str | None) -> str | None:
    """Convert a GitHub API resource URL into the matching web URL.

    https://api.github.com/repos/owner/repo/pulls/12 -> https://github.com/owner/repo/pull/12
    """
    if not api_url:
        return None
    if "api.github.com" not in api_url:
        return api_url
    return api_url.replace("api.github.com/repos", "github.com").replace("/pulls/", "/pull/")


@dataclass(frozen=True)
class NotificationRecord:
    """One GitHub notification thread.

    `id` is assigned by GitHub and is the primary key. `unread` is the only
    field changed locally ahead of the server (optimistic mark-read).
    Timestamps are unix seconds.
    """

    id: str
    container_name: str
    subject_title: str
    subject_type: SubjectType
    reason: Reason
    unread: bool
    updated_at: float
    container_avatar_url: str | None = None
    subject_url: str | None = None
    last_read_at: float | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> NotificationRecord:
        """Create a NotificationRecord from a database row."""
        return cls(
            id=row["id"],
            container_name=row["container_name"],
            container_avatar_url=row["container_avatar_url"],
            subject_title=row["subject_title"],
            subject_type=SubjectType.parse(row["subject_type"]),
            subject_url=row["subject_url"],
            reason=Reason.parse(row["reason"]),
            unread=bool(row["unread"]),
            updated_at=row["updated_at"],
            last_read_at=row["last_read_at"],
        )

    @property
    def category(self) -> Category:
        return categorize(self.reason)

    @property
    def html_url(self) -> str | None:
        return to_html_url(self.subject_url)

    def as_read(self) -> NotificationRecord:
        return replace(self, unread=False)
