"""Runs agent tool calls against registered tools."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from openai.types.chat import ChatCompletionToolMessageParam
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class AgentTool(Protocol):
    """A tool the agent can call by name."""

    name: str

    def definition(self) -> dict[str, Any]: ...

    def validate(self, arguments: dict[str, Any]) -> BaseModel: ...

    def execute(self, request: Any) -> str: ...


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    """Summarize a pydantic ValidationError for the agent.

    Args:
        tool_name: Name of the tool that rejected the arguments.
        error: The validation error.

    Returns:
        One-line message listing each failing field.
    """
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        problems.append(f"{location}: {detail['msg']}")
    return f"Invalid arguments for {tool_name}: " + "; ".join(problems)


class ToolRunner:
    """Validates tool calls from the agent and dispatches them to tools.

    Malformed calls are answered with a message and never reach the
    tool body.
    """

    def __init__(
        self, tools: list[AgentTool], max_workers: int = DEFAULT_MAX_WORKERS
    ) -> None:
        """Initialize the runner.

        Args:
            tools: Tools to expose, keyed by their name.
            max_workers: Thread pool size for run_tool_calls.
        """
        self._tools = {tool.name: tool for tool in tools}
        self._max_workers = max_workers

    def definitions(self) -> list[dict[str, Any]]:
        """Return tool definitions for the OpenAI `tools` parameter."""
        return [tool.definition() for tool in self._tools.values()]

    def run(
        self, call_id: str, name: str, arguments: str | dict[str, Any]
    ) -> ChatCompletionToolMessageParam:
        """Run a single tool call.

        Args:
            call_id: Tool call ID assigned by the model.
            name: Tool name.
            arguments: JSON-encoded or already decoded arguments.

        Returns:
            Tool message to append to the conversation.
        """
        return {
            "role": "tool",
            "tool_call_id": call_id,
            "content": self._run_content(name, arguments),
        }

    def run_tool_calls(
        self, tool_calls: list[Any]
    ) -> list[ChatCompletionToolMessageParam]:
        """Run tool calls from an assistant message concurrently.

        Args:
            tool_calls: Objects with `id`, `function.name` and
                `function.arguments`, as returned by the OpenAI SDK.

        Returns:
            Tool messages in the same order as the calls.
        """
        if not tool_calls:
            return []

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            return list(
                executor.map(
                    lambda call: self.run(
                        call.id, call.function.name, call.function.arguments
                    ),
                    tool_calls,
                )
            )

    def _run_content(self, name: str, arguments: str | dict[str, Any]) -> str:
        if not isinstance(name, str):
            logger.warning("Agent called a tool with a non-string name %r", name)
            return f"Unknown tool: {name!r}"

        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Agent called unknown tool %s", name)
            return f"Unknown tool: {name}"

        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as error:
                logger.warning("Undecodable arguments for %s: %s", name, error)
                return (
                    f"Invalid arguments for {name}: "
                    f"arguments are not valid JSON ({error})"
                )

        if not isinstance(arguments, dict):
            return f"Invalid arguments for {name}: arguments must be a JSON object"

        try:
            request = tool.validate(arguments)
        except ValidationError as error:
            message = format_validation_error(name, error)
            logger.warning(message)
            return message

        return tool.execute(request)
