"""Tool that lets the review agent post a line-scoped code suggestion."""

import logging
from dataclasses import dataclass
from typing import Any

from openai.types.shared_params import FunctionDefinition
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from review_suggest.platform_protocol import CommentPayload, ReviewPlatform

logger = logging.getLogger(__name__)

TOOL_NAME = "suggest_changes"

TOOL_DESCRIPTION = (
    "Posts a specific suggestion or comment on a particular file line or range. "
    "You should ONLY do this on files with actionable problems. If a file is fine "
    "you CANNOT use this tool otherwise the user will not trust you again. If there "
    "are multiple changes to make in line numbers which are close to each other, "
    "you should make all the changes in ONE comment. In that case the line numbers "
    "will encompass all the lines that need to be changed."
)

COMMENT_DESCRIPTION = (
    "The review comment for the actionable change or changes. It should be in the "
    "format of: {{ a short description of why the user MUST make the change }} "
    "```suggestion\n{{ directly include the lines and the code snippet that needs "
    "to be adjusted or replaced in the file }}\n```"
)


class SuggestionRequest(BaseModel):
    """Arguments of a suggest_changes call, as sent by the agent."""

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    file_path: str = Field(
        alias="filePath",
        min_length=1,
        description="The absolute path to the file you are suggesting changes to.",
    )
    comment: str = Field(min_length=1, description=COMMENT_DESCRIPTION)
    start_line: int | None = Field(
        default=None,
        alias="startLine",
        ge=1,
        description="The line number to start the comment at.",
    )
    end_line: int | None = Field(
        default=None,
        alias="endLine",
        ge=1,
        description="The line number to end the comment at.",
    )

    @field_validator("file_path")
    @classmethod
    def validate_file_path(cls, value: str) -> str:
        """Reject whitespace-only paths."""
        if not value.strip():
            raise ValueError("filePath must not be blank")
        return value

    @model_validator(mode="after")
    def validate_line_range(self) -> "SuggestionRequest":
        """Reject ranges whose start is after their end."""
        if (
            self.start_line is not None
            and self.end_line is not None
            and self.start_line > self.end_line
        ):
            raise ValueError("startLine must be less than or equal to endLine")
        return self


@dataclass(frozen=True)
class Posted:
    """The comment was created and the platform returned its URL."""

    reference: str


@dataclass(frozen=True)
class PostedWithoutReference:
    """The comment was created but the platform returned no URL."""


@dataclass(frozen=True)
class Failed:
    """The platform call failed."""

    message: str


Outcome = Posted | PostedWithoutReference | Failed


def build_comment_body(file_path: str, comment: str) -> str:
    """Compose the comment body: heading, caller text verbatim, newline.

    Args:
        file_path: Target file path, named in the heading.
        comment: Agent-supplied comment text. Not parsed.

    Returns:
        Markdown comment body.
    """
    return f"### Suggestion for `{file_path}`\n\n{comment}\n"


def build_payload(request: SuggestionRequest) -> CommentPayload:
    """Build the platform-neutral payload for a validated request."""
    return CommentPayload(
        file_path=request.file_path,
        body=build_comment_body(request.file_path, request.comment),
        start_line=request.start_line,
        end_line=request.end_line,
    )


def dispatch(platform: ReviewPlatform, payload: CommentPayload) -> Outcome:
    """Post the payload once and capture the result as an Outcome.

    No retry is attempted. Every exception raised by the platform is
    converted into a Failed outcome.

    Args:
        platform: Platform to post the comment on.
        payload: Comment to post.

    Returns:
        Posted, PostedWithoutReference or Failed.
    """
    try:
        reference = platform.post_review_comment(payload)
    except Exception as error:
        logger.error(
            "Failed to post suggestion for %s via tool: %s", payload.file_path, error
        )
        return Failed(message=str(error) or type(error).__name__)

    logger.info(
        "Suggestion for %s posted via tool. Result: %s",
        payload.file_path,
        reference or "No URL",
    )
    if reference:
        return Posted(reference=reference)
    return PostedWithoutReference()


def report_outcome(outcome: Outcome, file_path: str) -> str:
    """Render an outcome as the string returned to the agent."""
    match outcome:
        case Posted(reference=reference):
            return f"Suggestion posted successfully: {reference}"
        case PostedWithoutReference():
            return "Suggestion posted, but no URL returned."
        case Failed(message=message):
            return f"Error posting suggestion for {file_path}: {message}"
    raise TypeError(f"Unexpected outcome: {outcome!r}")


class SuggestChangesTool:
    """Agent tool that posts one code suggestion per call.

    Holds no state besides the platform, so concurrent calls are safe as
    long as the platform client is.
    """

    name = TOOL_NAME
    description = TOOL_DESCRIPTION

    def __init__(self, platform: ReviewPlatform) -> None:
        """Initialize the tool.

        Args:
            platform: Platform client implementing ReviewPlatform.
        """
        self._platform = platform

    def definition(self) -> dict[str, Any]:
        """Return the OpenAI function-tool definition for this tool."""
        return {
            "type": "function",
            "function": FunctionDefinition(
                name=self.name,
                description=self.description,
                parameters=SuggestionRequest.model_json_schema(by_alias=True),
            ),
        }

    def validate(self, arguments: dict[str, Any]) -> SuggestionRequest:
        """Validate raw call arguments.

        Args:
            arguments: Decoded JSON arguments from the agent.

        Returns:
            Validated SuggestionRequest.

        Raises:
            pydantic.ValidationError: If the arguments do not match the schema.
        """
        return SuggestionRequest.model_validate(arguments)

    def execute(self, request: SuggestionRequest) -> str:
        """Post the suggestion and describe the result for the agent.

        Never raises for platform failures; they are reported in the
        returned string.
        """
        payload = build_payload(request)
        outcome = dispatch(self._platform, payload)
        return report_outcome(outcome, request.file_path)
