"""Entry point: replays agent tool calls against the detected CI platform."""

import json
import logging
import os
import sys
from typing import Any

from review_suggest.formatting import format_summary
from review_suggest.github_client import GitHubClient
from review_suggest.gitlab_client import GitLabClient
from review_suggest.platform_protocol import PlatformError, ReviewPlatform
from review_suggest.suggest_changes import SuggestChangesTool
from review_suggest.tool_runner import ToolRunner

logger = logging.getLogger(__name__)


def load_event_data(event_path: str) -> dict:
    """Load GitHub webhook event JSON data from file.

    Args:
        event_path: Path to the GitHub event JSON file.

    Returns:
        Parsed event data dictionary.
    """
    with open(event_path, "r") as file:
        return json.load(file)


def load_tool_calls(path: str) -> list[dict[str, Any]]:
    """Load agent tool calls from a JSON file.

    The file holds a list of objects with `id`, `name` and `arguments`
    keys. `arguments` may be a JSON string or an object.

    Args:
        path: Path to the tool calls file.

    Returns:
        List of tool call dicts.

    Raises:
        ValueError: If the file does not hold a list of named tool calls.
    """
    with open(path, "r") as file:
        tool_calls = json.load(file)

    if not isinstance(tool_calls, list):
        raise ValueError(f"{path} must contain a JSON list of tool calls")
    for index, tool_call in enumerate(tool_calls):
        if not isinstance(tool_call, dict) or "name" not in tool_call:
            raise ValueError(f"Tool call #{index} in {path} has no name")
        if not isinstance(tool_call["name"], str):
            raise ValueError(f"Tool call #{index} in {path} has a non-string name")
    return tool_calls


def _build_event_data_from_pr(
    token: str, repo_name: str, pr_number: int
) -> dict[str, object]:
    """Build synthetic event data by fetching PR info from GitHub API.

    Used for manual triggers (workflow_dispatch, issue_comment) where
    GITHUB_EVENT_PATH doesn't contain pull_request data.

    Args:
        token: GitHub API token.
        repo_name: Repository full name (owner/repo).
        pr_number: Pull request number.

    Returns:
        Synthetic event data dict compatible with GitHubClient.
    """
    from github import Github

    pr = Github(token).get_repo(repo_name).get_pull(pr_number)
    return {
        "repository": {"full_name": repo_name},
        "pull_request": {
            "number": pr.number,
            "head": {"sha": pr.head.sha},
        },
    }


def create_platform() -> ReviewPlatform:
    """Auto-detect CI platform and create the appropriate client.

    Priority order:
    1. PR_NUMBER env var (manual trigger via workflow_dispatch or /review comment)
    2. GITHUB_EVENT_PATH (automatic GitHub Actions trigger)
    3. CI_MERGE_REQUEST_IID (automatic GitLab CI trigger)

    Returns:
        Platform client implementing ReviewPlatform protocol.

    Raises:
        SystemExit: If no supported platform is detected.
    """
    # Manual trigger: PR_NUMBER takes priority over event data
    pr_number_str = os.environ.get("PR_NUMBER", "").strip()
    if pr_number_str and pr_number_str != "0":
        token = os.environ["GITHUB_TOKEN"]
        repo_name = os.environ.get("REPO_NAME") or os.environ.get(
            "GITHUB_REPOSITORY", ""
        )
        if not repo_name:
            print("ERROR: REPO_NAME or GITHUB_REPOSITORY must be set with PR_NUMBER.")
            sys.exit(1)
        try:
            event_data = _build_event_data_from_pr(token, repo_name, int(pr_number_str))
        except Exception as e:
            print(f"ERROR: Failed to fetch PR #{pr_number_str} from {repo_name}: {e}")
            sys.exit(1)
        return GitHubClient(token=token, repo_name=repo_name, event_data=event_data)

    if os.environ.get("GITHUB_EVENT_PATH"):
        event_data = load_event_data(os.environ["GITHUB_EVENT_PATH"])
        return GitHubClient(
            token=os.environ["GITHUB_TOKEN"],
            repo_name=event_data["repository"]["full_name"],
            event_data=event_data,
        )
    elif os.environ.get("CI_MERGE_REQUEST_IID"):
        return GitLabClient(
            token=os.environ["GITLAB_TOKEN"],
            project_id=int(os.environ["CI_PROJECT_ID"]),
            mr_iid=int(os.environ["CI_MERGE_REQUEST_IID"]),
            gitlab_url=os.environ.get("CI_SERVER_URL", "https://gitlab.com"),
        )
    else:
        print(
            "ERROR: Could not detect platform. Set GITHUB_EVENT_PATH or CI_MERGE_REQUEST_IID."
        )
        sys.exit(1)


def setup_logging() -> None:
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main() -> None:
    """Replay the agent's suggest_changes calls on the PR/MR.

    Steps:
    1. Load tool calls from TOOL_CALLS_PATH
    2. Auto-detect platform and create client
    3. Run every call through the tool runner, printing the tool messages
    4. Post the summary from REVIEW_SUMMARY_PATH, if set
    """
    setup_logging()

    tool_calls_path = os.environ.get("TOOL_CALLS_PATH", "")
    if not tool_calls_path:
        print("ERROR: TOOL_CALLS_PATH must point to a JSON file of tool calls.")
        sys.exit(1)
    try:
        tool_calls = load_tool_calls(tool_calls_path)
    except (OSError, ValueError) as error:
        print(f"ERROR: Could not load tool calls: {error}")
        sys.exit(1)

    platform = create_platform()
    runner = ToolRunner([SuggestChangesTool(platform)])

    messages = [
        runner.run(
            call_id=str(tool_call.get("id", index)),
            name=tool_call["name"],
            arguments=tool_call.get("arguments", {}),
        )
        for index, tool_call in enumerate(tool_calls)
    ]
    print(json.dumps(messages, indent=2))

    summary_path = os.environ.get("REVIEW_SUMMARY_PATH", "")
    if summary_path:
        try:
            with open(summary_path, "r") as file:
                summary = file.read().strip()
        except OSError as error:
            print(f"ERROR: Could not read review summary: {error}")
            sys.exit(1)
        try:
            url = platform.post_thread_comment(format_summary(summary))
        except PlatformError as error:
            logger.error("Failed to post review summary: %s", error)
            sys.exit(1)
        logger.info("Review summary posted: %s", url or "No URL")


if __name__ == "__main__":
    main()
