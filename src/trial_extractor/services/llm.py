"""Generic LLM call helpers."""

import json
import logging
import re
from typing import Any

from anthropic import NOT_GIVEN, APIError, AsyncAnthropic

from trial_extractor.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMError(Exception):
    """The language-model provider failed to answer."""


class LLMParseError(ValueError):
    """The language model answered, but not with a JSON object."""


def build_llm_client(settings: Settings) -> AsyncAnthropic:
    """Create the Anthropic client from explicit settings.

    Raises ConfigurationError when no API key is configured, so a
    misconfigured deployment fails at startup instead of on first use.
    """
    if not settings.anthropic_api_key:
        raise ConfigurationError(
            "ANTHROPIC_API_KEY is not set; the extraction service cannot start"
        )
    return AsyncAnthropic(api_key=settings.anthropic_api_key)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a model's text answer as a JSON object (code fences tolerated)."""
    if not text or not text.strip():
        raise LLMParseError("Empty response from language model")
    cleaned = _JSON_FENCE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LLMParseError(f"Language model returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMParseError("Language model returned JSON that is not an object")
    return data


async def query_llm_json(
    client: AsyncAnthropic,
    model: str,
    prompt: str,
    tool: dict[str, Any],
    system: str = "",
    max_tokens: int = 1024,
    temperature: float = 0.0,
) -> dict[str, Any]:
    """Ask for a JSON object shaped by `tool["input_schema"]`.

    The tool call is forced, so the answer arrives as the tool input. A
    plain-text answer is accepted only if it parses as a JSON object.
    """
    try:
        response = await client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system or NOT_GIVEN,
            tools=[tool],
            tool_choice={"type": "tool", "name": tool["name"]},
            messages=[{"role": "user", "content": prompt}],
        )
    except APIError as e:
        raise LLMError(f"Language model request failed: {e}") from e

    if not response.content:
        raise LLMParseError("Empty response from language model")

    for block in response.content:
        if block.type == "tool_use" and block.name == tool["name"]:
            if not isinstance(block.input, dict) or not block.input:
                raise LLMParseError("Language model returned an empty tool call")
            return block.input

    if response.stop_reason == "max_tokens":
        logger.warning("LLM response truncated at max_tokens=%d", max_tokens)
    text = "".join(b.text for b in response.content if b.type == "text")
    return parse_json_object(text)
