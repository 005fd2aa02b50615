"""GitHub implementation of the ReviewPlatform protocol."""

from __future__ import annotations

import logging
from typing import Any

import requests
from github import Github, GithubException

from review_suggest.platform_protocol import CommentPayload, PlatformError

logger = logging.getLogger(__name__)

REVIEW_SIDE = "RIGHT"


def _platform_error(error: GithubException) -> PlatformError:
    """Convert a PyGithub exception into a PlatformError.

    Args:
        error: Exception raised by PyGithub.

    Returns:
        PlatformError with message "<status> <message>".
    """
    data = error.data
    detail = data.get("message") if isinstance(data, dict) else data
    message = f"{error.status} {detail}" if detail else str(error.status)
    return PlatformError(message, status=error.status)


class GitHubClient:
    """GitHub pull request client implementing ReviewPlatform protocol.

    Uses PyGithub to post review comments on the PR head commit.
    """

    def __init__(self, token: str, repo_name: str, event_data: dict[str, Any]) -> None:
        """Initialize GitHub client.

        Args:
            token: GitHub API token.
            repo_name: Repository full name (owner/repo).
            event_data: GitHub webhook event payload.
        """
        self._github = Github(token)
        self._repo = self._github.get_repo(repo_name)
        self._pr_number: int = event_data["pull_request"]["number"]
        self._head_sha: str = event_data["pull_request"]["head"]["sha"]
        self._pr = self._repo.get_pull(self._pr_number)

    def post_review_comment(self, payload: CommentPayload) -> str | None:
        """Post a review comment on the PR head commit.

        A range becomes a multi-line comment, a single bound a one-line
        comment, and no line at all a file-level comment.

        Args:
            payload: Comment addressed to a file and line range.

        Returns:
            HTML URL of the created comment, or None if GitHub returned none.

        Raises:
            PlatformError: If GitHub rejects the comment or cannot be reached.
        """
        kwargs: dict[str, Any] = {}
        last_line = payload.end_line or payload.start_line
        if last_line is None:
            kwargs["subject_type"] = "file"
        else:
            kwargs["line"] = last_line
            kwargs["side"] = REVIEW_SIDE
            if payload.start_line is not None and payload.start_line < last_line:
                kwargs["start_line"] = payload.start_line
                kwargs["start_side"] = REVIEW_SIDE

        try:
            commit = self._repo.get_commit(self._head_sha)
            comment = self._pr.create_review_comment(
                body=payload.body,
                commit=commit,
                path=payload.file_path,
                **kwargs,
            )
        except GithubException as error:
            logger.warning(
                "GitHub rejected review comment on %s: %s", payload.file_path, error
            )
            raise _platform_error(error) from error
        except requests.RequestException as error:
            logger.warning(
                "Could not reach GitHub for review comment on %s: %s",
                payload.file_path,
                error,
            )
            raise PlatformError(str(error)) from error

        return comment.html_url or None

    def post_thread_comment(self, body: str) -> str | None:
        """Post a comment on the PR conversation.

        Args:
            body: Comment text.

        Returns:
            HTML URL of the created comment, or None if GitHub returned none.

        Raises:
            PlatformError: If GitHub rejects the comment.
        """
        try:
            comment = self._pr.create_issue_comment(body=body)
        except GithubException as error:
            raise _platform_error(error) from error
        except requests.RequestException as error:
            raise PlatformError(str(error)) from error
        return comment.html_url or None
