import json
import logging
from typing import Any

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from ethos_spider.config import (
    ANALYSIS_CONFIG,
    AnalysisConfig,
    openrouter_base_url,
    openrouter_timeout,
    public_url,
)
from ethos_spider.errors import (
    ConfigurationError,
    ResponseParseError,
    UpstreamError,
    UpstreamTimeoutError,
)

_log = logging.getLogger(__name__)


def extract_json_object(text: str | None) -> dict[str, Any]:
    """Parse the span from the first ``{`` to the last ``}`` of an LLM reply.

    The model is asked for bare JSON but sometimes wraps it in prose. The
    parsed object is returned as-is; keys and value ranges are not checked.
    """
    if not text:
        raise ResponseParseError("Failed to parse LLM analysis result", details="empty response")

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError("Failed to parse LLM analysis result", details=text)

    try:
        parsed = json.loads(text[start:end + 1])
    except ValueError as exc:
        raise ResponseParseError("Failed to parse LLM analysis result", details=text) from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError("Failed to parse LLM analysis result", details=text)
    return parsed


def make_client(api_key: str) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=api_key,
        base_url=openrouter_base_url(),
        timeout=openrouter_timeout(),
        max_retries=0,
        default_headers={
            "HTTP-Referer": public_url(),
            "X-Title": "Ethos Spider Graph",
        },
    )


async def score_activities(
    system_prompt: str,
    user_prompt: str,
    *,
    api_key: str | None,
    config: AnalysisConfig = ANALYSIS_CONFIG,
) -> dict[str, Any]:
    """Send one chat completion to OpenRouter and return the category -> confidence mapping."""
    if not api_key:
        raise ConfigurationError("OpenRouter API key not configured")

    client = make_client(api_key)
    _log.info("Sending scoring request with model %s", config.llm.model)
    try:
        response = await client.chat.completions.create(
            model=config.llm.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        )
    except APITimeoutError as exc:
        raise UpstreamTimeoutError("openrouter", "OpenRouter API timed out") from exc
    except APIStatusError as exc:
        body = exc.response.text if exc.response is not None else None
        _log.error("OpenRouter API error: %s - %s", exc.status_code, body)
        raise UpstreamError(
            "openrouter",
            f"OpenRouter API responded with status: {exc.status_code}",
            status=exc.status_code,
            body=body,
        ) from exc
    except APIConnectionError as exc:
        raise UpstreamError("openrouter", f"OpenRouter API request failed: {exc}") from exc

    if not response.choices:
        raise ResponseParseError("Failed to parse LLM analysis result", details="no choices in response")
    content = response.choices[0].message.content
    _log.debug("Analysis result: %s", content)
    return extract_json_object(content)
