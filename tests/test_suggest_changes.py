"""Tests for suggest_changes module — the agent-facing suggestion tool."""

import pytest
from pydantic import ValidationError

from review_suggest.platform_protocol import CommentPayload, PlatformError
from review_suggest.suggest_changes import (
    TOOL_NAME,
    Failed,
    Posted,
    PostedWithoutReference,
    SuggestChangesTool,
    SuggestionRequest,
    build_comment_body,
    build_payload,
    dispatch,
    report_outcome,
)


class TestSuggestionRequestValidation:
    """Schema validation of agent arguments."""

    def test_accepts_full_request(self, scenario_arguments):
        """All four fields populate the model by alias."""
        request = SuggestionRequest.model_validate(scenario_arguments)
        assert request.file_path == "src/a.ts"
        assert request.comment.startswith("fix null check")
        assert request.start_line == 10
        assert request.end_line == 12

    def test_line_range_is_optional(self):
        """File-level suggestion without lines is valid."""
        request = SuggestionRequest.model_validate(
            {"filePath": "README.md", "comment": "Typo"}
        )
        assert request.start_line is None
        assert request.end_line is None

    @pytest.mark.parametrize("missing", ["filePath", "comment"])
    def test_rejects_missing_required_field(self, scenario_arguments, missing):
        del scenario_arguments[missing]
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    @pytest.mark.parametrize("field", ["filePath", "comment"])
    def test_rejects_empty_string(self, scenario_arguments, field):
        scenario_arguments[field] = ""
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    def test_rejects_blank_file_path(self, scenario_arguments):
        scenario_arguments["filePath"] = "   "
        with pytest.raises(ValidationError) as exc_info:
            SuggestionRequest.model_validate(scenario_arguments)
        assert "blank" in str(exc_info.value)

    def test_rejects_non_string_comment(self, scenario_arguments):
        scenario_arguments["comment"] = 42
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    def test_rejects_string_line_number(self, scenario_arguments):
        """Line numbers are not coerced from strings."""
        scenario_arguments["startLine"] = "10"
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    def test_rejects_boolean_line_number(self, scenario_arguments):
        scenario_arguments["endLine"] = True
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    @pytest.mark.parametrize("field", ["startLine", "endLine"])
    def test_rejects_non_positive_line(self, scenario_arguments, field):
        scenario_arguments[field] = 0
        with pytest.raises(ValidationError):
            SuggestionRequest.model_validate(scenario_arguments)

    def test_rejects_reversed_range(self, scenario_arguments):
        """startLine > endLine is rejected, not reordered."""
        scenario_arguments["startLine"] = 12
        scenario_arguments["endLine"] = 10
        with pytest.raises(ValidationError) as exc_info:
            SuggestionRequest.model_validate(scenario_arguments)
        assert "startLine must be less than or equal to endLine" in str(exc_info.value)

    def test_accepts_single_line_range(self, scenario_arguments):
        scenario_arguments["startLine"] = 12
        request = SuggestionRequest.model_validate(scenario_arguments)
        assert request.start_line == request.end_line == 12

    def test_ignores_unknown_fields(self, scenario_arguments):
        scenario_arguments["severity"] = "high"
        request = SuggestionRequest.model_validate(scenario_arguments)
        assert not hasattr(request, "severity")

    def test_request_is_immutable(self, scenario_arguments):
        request = SuggestionRequest.model_validate(scenario_arguments)
        with pytest.raises(ValidationError):
            request.comment = "changed"  # type: ignore[misc]


class TestBuildPayload:
    """Payload construction from a validated request."""

    def test_body_has_heading_comment_and_newline(self):
        body = build_comment_body("src/a.ts", "Use const")
        assert body == "### Suggestion for `src/a.ts`\n\nUse const\n"

    def test_comment_is_copied_verbatim(self, scenario_arguments):
        """The suggestion fence is not parsed or rewritten."""
        request = SuggestionRequest.model_validate(scenario_arguments)
        payload = build_payload(request)
        assert scenario_arguments["comment"] in payload.body
        assert payload.body.count("```suggestion") == 1

    def test_copies_path_and_lines(self, scenario_arguments):
        request = SuggestionRequest.model_validate(scenario_arguments)
        payload = build_payload(request)
        assert payload == CommentPayload(
            file_path="src/a.ts",
            body=build_comment_body("src/a.ts", scenario_arguments["comment"]),
            start_line=10,
            end_line=12,
        )

    def test_construction_is_deterministic(self, scenario_arguments):
        """Repeated construction yields byte-identical bodies."""
        request = SuggestionRequest.model_validate(scenario_arguments)
        bodies = {build_payload(request).body.encode("utf-8") for _ in range(5)}
        assert len(bodies) == 1


class TestDispatch:
    """Single fire-once call to the platform."""

    def test_reference_becomes_posted(self, platform):
        payload = CommentPayload(file_path="a.py", body="x", start_line=1, end_line=1)
        assert dispatch(platform, payload) == Posted(reference="https://review/123")
        assert platform.review_comments == [payload]

    @pytest.mark.parametrize("reference", [None, ""])
    def test_missing_reference_is_not_an_error(self, make_platform, reference):
        platform = make_platform(reference=reference)
        payload = CommentPayload(file_path="a.py", body="x")
        assert dispatch(platform, payload) == PostedWithoutReference()

    def test_platform_error_becomes_failed(self, make_platform):
        platform = make_platform(error=PlatformError("403 Forbidden", status=403))
        payload = CommentPayload(file_path="a.py", body="x")
        assert dispatch(platform, payload) == Failed(message="403 Forbidden")

    def test_unexpected_exception_becomes_failed(self, make_platform):
        platform = make_platform(error=ConnectionError("connection reset"))
        outcome = dispatch(platform, CommentPayload(file_path="a.py", body="x"))
        assert outcome == Failed(message="connection reset")

    def test_empty_exception_message_uses_type_name(self, make_platform):
        platform = make_platform(error=TimeoutError())
        outcome = dispatch(platform, CommentPayload(file_path="a.py", body="x"))
        assert outcome == Failed(message="TimeoutError")

    def test_failure_is_not_retried(self, make_platform):
        platform = make_platform(error=PlatformError("502 Bad Gateway"))
        dispatch(platform, CommentPayload(file_path="a.py", body="x"))
        assert len(platform.review_comments) == 1


class TestReportOutcome:
    """Rendering of outcomes for the agent."""

    def test_posted(self):
        result = report_outcome(Posted(reference="https://r/1"), "a.py")
        assert result == "Suggestion posted successfully: https://r/1"

    def test_posted_without_reference(self):
        result = report_outcome(PostedWithoutReference(), "a.py")
        assert result == "Suggestion posted, but no URL returned."

    def test_failed(self):
        result = report_outcome(Failed(message="boom"), "a.py")
        assert result == "Error posting suggestion for a.py: boom"


class TestSuggestChangesTool:
    """End-to-end tool behaviour against a recording platform."""

    def test_reference_returned(self, platform, scenario_arguments):
        tool = SuggestChangesTool(platform)
        result = tool.execute(tool.validate(scenario_arguments))

        assert "https://review/123" in result
        assert "successfully" in result
        posted = platform.review_comments[0]
        assert posted.file_path == "src/a.ts"
        assert (posted.start_line, posted.end_line) == (10, 12)

    def test_no_reference_still_succeeds(self, make_platform, scenario_arguments):
        tool = SuggestChangesTool(make_platform(reference=None))
        result = tool.execute(tool.validate(scenario_arguments))

        assert result.startswith("Suggestion posted")
        assert "http" not in result
        assert "Error" not in result

    def test_platform_failure_names_file_and_message(self, make_platform, scenario_arguments):
        tool = SuggestChangesTool(make_platform(error=PlatformError("403 Forbidden")))
        result = tool.execute(tool.validate(scenario_arguments))

        assert "src/a.ts" in result
        assert "403 Forbidden" in result
        assert result.startswith("Error")

    def test_empty_path_rejected_before_dispatch(
        self, platform, scenario_arguments
    ):
        scenario_arguments["filePath"] = ""
        tool = SuggestChangesTool(platform)

        with pytest.raises(ValidationError):
            tool.execute(tool.validate(scenario_arguments))

        assert platform.review_comments == []

    def test_failure_never_raises(self, make_platform, scenario_arguments):
        tool = SuggestChangesTool(make_platform(error=RuntimeError("socket closed")))
        result = tool.execute(tool.validate(scenario_arguments))
        assert "socket closed" in result


class TestToolDefinition:
    """OpenAI function-tool definition."""

    def test_definition_shape(self, platform):
        definition = SuggestChangesTool(platform).definition()

        assert definition["type"] == "function"
        function = definition["function"]
        assert function["name"] == TOOL_NAME
        assert "actionable" in function["description"]

    def test_parameters_use_camel_case_names(self, platform):
        parameters = SuggestChangesTool(platform).definition()["function"]["parameters"]

        assert set(parameters["properties"]) == {
            "filePath",
            "comment",
            "startLine",
            "endLine",
        }
        assert sorted(parameters["required"]) == ["comment", "filePath"]
        assert "```suggestion" in parameters["properties"]["comment"]["description"]
