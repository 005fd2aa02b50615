"""Shared test fixtures for review-suggest."""

from typing import Any

import pytest

from review_suggest.platform_protocol import CommentPayload


class RecordingPlatform:
    """In-memory ReviewPlatform that records every call.

    Returns `reference` from post_review_comment, or raises `error`
    when one is set.
    """

    def __init__(self, reference: str | None = None, error: Exception | None = None):
        self.reference = reference
        self.error = error
        self.review_comments: list[CommentPayload] = []
        self.thread_comments: list[str] = []

    def post_review_comment(self, payload: CommentPayload) -> str | None:
        self.review_comments.append(payload)
        if self.error is not None:
            raise self.error
        return self.reference

    def post_thread_comment(self, body: str) -> str | None:
        self.thread_comments.append(body)
        return self.reference


@pytest.fixture
def scenario_arguments() -> dict[str, Any]:
    """Agent arguments for a two-line suggestion on src/a.ts."""
    return {
        "filePath": "src/a.ts",
        "comment": "fix null check\n```suggestion\nif (x != null) {...}\n```",
        "startLine": 10,
        "endLine": 12,
    }


@pytest.fixture
def make_platform() -> type[RecordingPlatform]:
    """Factory for RecordingPlatform instances."""
    return RecordingPlatform


@pytest.fixture
def platform() -> RecordingPlatform:
    """Platform that returns a comment URL."""
    return RecordingPlatform(reference="https://review/123")


@pytest.fixture
def sample_event_payload() -> dict[str, Any]:
    """Mock GitHub webhook event payload."""
    return {
        "action": "opened",
        "number": 42,
        "pull_request": {
            "number": 42,
            "title": "Add feature X",
            "body": "This PR adds feature X to the project.",
            "head": {"sha": "abc123def456"},
        },
        "repository": {
            "full_name": "owner/repo",
        },
    }


@pytest.fixture
def sample_gitlab_diff_refs() -> dict[str, str]:
    """Mock mr.diff_refs with base/start/head SHA."""
    return {
        "base_sha": "base_sha_aaa111",
        "start_sha": "start_sha_bbb222",
        "head_sha": "head_sha_ccc333",
    }
