"""Formatting helpers for summary comments."""

SUMMARY_TITLE = "## Review summary"
SEPARATOR = "\n\n---\n\n"
SIGN_OFF = "### Review powered by review-suggest."


def format_summary(comment: str) -> str:
    """Wrap a summary comment with the title and sign-off.

    Args:
        comment: Summary text written by the agent.

    Returns:
        Markdown body: title, summary, separator, sign-off.
    """
    return f"{SUMMARY_TITLE}\n\n{comment}{SEPARATOR}{SIGN_OFF}"
