"""OpenAI chat completion helpers and LLM output parsing."""

import json
import re
from functools import lru_cache
from typing import Any, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    """Get the shared async OpenAI client (cached singleton)."""
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


async def complete_chat(
    messages: list[dict[str, str]],
    *,
    model: str,
    temperature: float = 0.7,
    max_tokens: int | None = None,
    json_mode: bool = False,
) -> str:
    """
    Run one chat completion and return the assistant text.

    Args:
        messages: OpenAI-style message dicts (system first)
        model: Model name
        temperature: Sampling temperature
        max_tokens: Optional completion token cap
        json_mode: Constrain output to a syntactically valid JSON object

    Returns:
        Raw assistant content ("" when the provider returned no content)

    Raises:
        openai.OpenAIError: On provider errors and timeouts (never retried here)
    """
    client = get_openai_client()

    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    response = await client.chat.completions.create(**kwargs)
    content = response.choices[0].message.content or ""

    logger.debug(
        f"Completion from {model}: {len(content)} chars",
        extra={"extra_data": {"model": model, "json_mode": json_mode}},
    )
    return content


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Args:
        raw_output: Raw string from LLM response
        model: Pydantic model class to validate against

    Returns:
        Validated Pydantic model instance

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    cleaned = _strip_llm_fences(raw_output)
    parsed = json.loads(cleaned)
    return model.model_validate(parsed)


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object, returning a raw dict.

    Raises:
        json.JSONDecodeError: If JSON parsing fails or the payload is not an object
    """
    cleaned = _strip_llm_fences(raw_output)
    parsed = json.loads(cleaned)
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("Expected a JSON object", cleaned, 0)
    return parsed
