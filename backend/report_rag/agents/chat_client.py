"""Single-turn Claude client for report analysis."""

from __future__ import annotations

import logging

from claude_agent_sdk import (
    AssistantMessage,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    ClaudeAgentOptions,
    ProcessError,
    ResultMessage,
    query,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a clinical decision support assistant analyzing medical reports for \
physicians. Answer only from the report context supplied in the prompt. \
Do not fabricate findings.
"""


class GenerationError(Exception):
    """Raised when the language model call fails."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class ChatClient:
    """Sends one prompt to Claude and returns the generated text."""

    def __init__(self, model: str, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._options = ClaudeAgentOptions(
            system_prompt=system_prompt,
            model=model,
            max_turns=1,
            permission_mode="bypassPermissions",
        )

    async def generate(self, prompt: str) -> str:
        logger.info(
            "Chat request: model=%s prompt=%d chars",
            self._options.model,
            len(prompt),
        )
        content = None
        try:
            async for message in query(prompt=prompt, options=self._options):
                if isinstance(message, AssistantMessage):
                    logger.debug("AssistantMessage received (model=%s)", message.model)
                elif isinstance(message, ResultMessage):
                    logger.info(
                        "ResultMessage: num_turns=%d duration=%dms is_error=%s",
                        message.num_turns,
                        message.duration_ms,
                        message.is_error,
                    )
                    if message.is_error:
                        raise GenerationError(
                            code="AGENT_ERROR",
                            message=message.result or "Agent returned an error",
                        )
                    content = message.result
        except GenerationError:
            raise
        except CLINotFoundError:
            raise GenerationError(
                code="CLI_NOT_FOUND",
                message="Claude Code CLI not found. Ensure it is installed.",
            )
        except CLIConnectionError as e:
            raise GenerationError(
                code="CLI_CONNECTION_ERROR",
                message=f"Failed to connect to Claude CLI: {e}",
            )
        except ProcessError as e:
            raise GenerationError(
                code="PROCESS_ERROR",
                message=f"Agent process failed: {e}",
            )
        except CLIJSONDecodeError as e:
            raise GenerationError(
                code="JSON_DECODE_ERROR",
                message=f"Failed to parse agent response: {e}",
            )

        if content is None:
            raise GenerationError(
                code="NO_RESULT",
                message="Agent did not return a result message",
            )
        return content
