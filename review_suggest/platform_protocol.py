"""Platform-agnostic protocol for posting review suggestions."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class PlatformError(RuntimeError):
    """Raised when a platform fails to create a comment.

    Covers transport, authentication, rate-limit and API-side rejections.
    The string form is the message reported back to the agent.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class CommentPayload:
    """A review comment addressed to a file and optional line range."""

    file_path: str
    """File path relative to repo root."""

    body: str
    """Markdown comment body."""

    start_line: int | None = None
    """First line of the range. None for a single-line or file comment."""

    end_line: int | None = None
    """Last line of the range. None for a file comment."""


@runtime_checkable
class ReviewPlatform(Protocol):
    """Protocol for platforms that can receive review suggestions.

    Implementations exist for GitHub and GitLab. Timeouts and retries,
    if any, are the implementation's concern.
    """

    def post_review_comment(self, payload: CommentPayload) -> str | None:
        """Post a line-scoped review comment.

        Args:
            payload: Comment addressed to a file and line range.

        Returns:
            URL of the created comment, or None if the platform exposes none.

        Raises:
            PlatformError: If the comment could not be created.
        """
        ...

    def post_thread_comment(self, body: str) -> str | None:
        """Post a general comment on the PR/MR conversation.

        Args:
            body: Markdown comment body.

        Returns:
            URL of the created comment, or None if the platform exposes none.

        Raises:
            PlatformError: If the comment could not be created.
        """
        ...
