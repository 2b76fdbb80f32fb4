"""Built-in prompts."""

from __future__ import annotations

from mcp_stdio_server.registry.base import (
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    PromptResult,
)

CODE_REVIEW_PROMPT = PromptDefinition(
    name="review-code",
    description="Generates a prompt to ask the LLM to review code",
    arguments=(
        PromptArgument(
            name="code",
            description="The code snippet to review",
            required=True,
        ),
        PromptArgument(
            name="focus",
            description=(
                "Optional area of focus for the review (performance, security, style, general)"
            ),
            required=False,
        ),
    ),
)


def review_code(arguments: dict[str, str]) -> PromptResult:
    """Render the code review request."""
    code = arguments["code"]
    focus = arguments.get("focus") or "general"

    text = "Please review the following code for potential issues and suggest improvements"
    if focus != "general":
        text += f", focusing specifically on {focus}"
    text += f":\n\n```\n{code}\n```"

    return PromptResult(
        description=f"Requesting {focus} review for code snippet",
        messages=[PromptMessage(role="user", text=text)],
    )
