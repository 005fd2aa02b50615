"""GitLab client implementing ReviewPlatform protocol."""

import hashlib
import logging
import re
from typing import Any

import gitlab
import requests
from gitlab.exceptions import GitlabError

from review_suggest.platform_protocol import CommentPayload, PlatformError

logger = logging.getLogger(__name__)

HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def _platform_error(error: GitlabError) -> PlatformError:
    """Convert a python-gitlab exception into a PlatformError."""
    if error.response_code:
        message = f"{error.response_code} {error.error_message}"
    else:
        message = str(error.error_message)
    return PlatformError(message, status=error.response_code)


def line_code(file_path: str, old_line: int, new_line: int) -> str:
    """Build the GitLab line code of a diff line.

    Args:
        file_path: Path of the file in the diff.
        old_line: Line number in the old file.
        new_line: Line number in the new file.

    Returns:
        "<sha1 of path>_<old>_<new>", as GitLab computes it.
    """
    digest = hashlib.sha1(file_path.encode("utf-8")).hexdigest()
    return f"{digest}_{old_line}_{new_line}"


def map_new_lines(file_path: str, diff: str) -> dict[int, dict[str, Any]]:
    """Map each NEW-file line shown in a diff to its line_range endpoint.

    Added lines are typed "new" and carry the old-file counter they sit
    at; context lines are untyped and carry both line numbers. Deleted
    lines have no NEW-file line and are skipped.

    Args:
        file_path: Path of the file, used for the line code.
        diff: Unified diff of the file as returned by GitLab. May be empty.

    Returns:
        Endpoint dicts keyed by NEW-file line number.
    """
    endpoints: dict[int, dict[str, Any]] = {}
    old_line = 0
    new_line = 0

    for raw_line in diff.split("\n"):
        if raw_line.startswith("\\"):
            continue

        header_match = HUNK_HEADER_PATTERN.match(raw_line)
        if header_match:
            old_line = int(header_match.group(1))
            new_line = int(header_match.group(3))
            continue

        if not raw_line or new_line == 0:
            continue

        prefix = raw_line[0]
        if prefix == "+":
            endpoints[new_line] = {
                "line_code": line_code(file_path, old_line, new_line),
                "type": "new",
                "new_line": new_line,
            }
            new_line += 1
        elif prefix == "-":
            old_line += 1
        elif prefix == " ":
            endpoints[new_line] = {
                "line_code": line_code(file_path, old_line, new_line),
                "type": None,
                "old_line": old_line,
                "new_line": new_line,
            }
            old_line += 1
            new_line += 1

    return endpoints


class GitLabClient:
    """GitLab Merge Request client implementing ReviewPlatform protocol.

    Uses python-gitlab to open inline discussions on the merge request diff.
    """

    def __init__(
        self,
        token: str,
        project_id: int,
        mr_iid: int,
        gitlab_url: str = "https://gitlab.com",
    ) -> None:
        """Initialize GitLab client with project and MR references.

        Args:
            token: GitLab Project Access Token (private_token).
            project_id: GitLab project ID.
            mr_iid: Merge request internal ID.
            gitlab_url: GitLab instance URL. Defaults to https://gitlab.com.
        """
        self._gitlab = gitlab.Gitlab(gitlab_url, private_token=token)
        self._project = self._gitlab.projects.get(project_id)
        self._merge_request = self._project.mergerequests.get(mr_iid)

    def post_review_comment(self, payload: CommentPayload) -> str | None:
        """Open an inline discussion on the MR diff.

        The discussion is anchored on the last line. A range whose both
        ends appear in the MR diff also carries a line_range so GitLab
        highlights every line of it; otherwise only the last line is
        marked. Without any line the discussion is file-level.

        Args:
            payload: Comment addressed to a file and line range.

        Returns:
            URL of the discussion's first note, or None if GitLab returned none.

        Raises:
            PlatformError: If GitLab rejects the discussion or cannot be reached.
        """
        merge_request = self._merge_request
        anchor_line = payload.end_line or payload.start_line

        try:
            position = self._build_position(payload)
            discussion = merge_request.discussions.create(
                {"body": payload.body, "position": position}
            )
        except GitlabError as error:
            logger.warning(
                "Failed to create inline comment on %s:%s - %s",
                payload.file_path,
                anchor_line,
                error,
            )
            raise _platform_error(error) from error
        except requests.RequestException as error:
            logger.warning(
                "Could not reach GitLab for inline comment on %s:%s - %s",
                payload.file_path,
                anchor_line,
                error,
            )
            raise PlatformError(str(error)) from error

        notes = discussion.attributes.get("notes") or []
        if not notes or "id" not in notes[0]:
            return None
        return self._note_url(notes[0]["id"])

    def post_thread_comment(self, body: str) -> str | None:
        """Post a note on the MR.

        Args:
            body: Comment text.

        Returns:
            URL of the created note.

        Raises:
            PlatformError: If GitLab rejects the note or cannot be reached.
        """
        try:
            note = self._merge_request.notes.create({"body": body})
        except GitlabError as error:
            raise _platform_error(error) from error
        except requests.RequestException as error:
            raise PlatformError(str(error)) from error
        return self._note_url(note.id)

    def _build_position(self, payload: CommentPayload) -> dict[str, Any]:
        """Build the discussion position for a payload."""
        diff_refs = self._merge_request.diff_refs
        position: dict[str, Any] = {
            "base_sha": diff_refs["base_sha"],
            "start_sha": diff_refs["start_sha"],
            "head_sha": diff_refs["head_sha"],
            "new_path": payload.file_path,
        }
        anchor_line = payload.end_line or payload.start_line
        if anchor_line is None:
            position["position_type"] = "file"
            return position

        position["position_type"] = "text"
        position["new_line"] = anchor_line

        start_line = payload.start_line
        if start_line is not None and start_line < anchor_line:
            endpoints = map_new_lines(
                payload.file_path, self._file_diff(payload.file_path)
            )
            if start_line in endpoints and anchor_line in endpoints:
                position["line_range"] = {
                    "start": endpoints[start_line],
                    "end": endpoints[anchor_line],
                }
            else:
                logger.debug(
                    "Range %s-%s of %s is not in the MR diff, anchoring on line %s",
                    start_line,
                    anchor_line,
                    payload.file_path,
                    anchor_line,
                )
        return position

    def _file_diff(self, file_path: str) -> str:
        """Return the MR diff of one file, or "" if the file is unchanged."""
        for change in self._merge_request.changes()["changes"]:
            if change.get("new_path") == file_path:
                return change.get("diff") or ""
        return ""

    def _note_url(self, note_id: int) -> str | None:
        """Build the web URL of an MR note."""
        web_url = self._merge_request.attributes.get("web_url")
        if not web_url:
            return None
        return f"{web_url}#note_{note_id}"
