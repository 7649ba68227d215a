"""Thin async client for an OpenAI-compatible chat completions API."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

import httpx

from .config import AppConfig, get_config

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

MessageContent = Union[str, List[Dict[str, Any]]]


class LLMError(Exception):
    """Raised when the language model call fails (network, non-2xx, empty reply)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def extract_json(content: str) -> Any:
    """Parse model output as JSON, tolerating a surrounding markdown code fence.

    Raises:
        ValueError: If the content is not valid JSON.
    """
    text = (content or "").strip()
    match = CODE_FENCE_PATTERN.match(text)
    if match:
        text = match.group(1)
    return json.loads(text)


class LLMClient:
    """Send system/user message pairs and return the assistant text.

    Example:
        >>> client = LLMClient(api_key="sk-...", model="gpt-4o-mini")
        >>> title = await client.complete("Give a title", "Buy milk and eggs")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        cfg = config or get_config()
        self.api_key = api_key if api_key is not None else cfg.llm_api_key
        self.model = model or cfg.llm_model
        self.api_base = (api_base or cfg.llm_api_base).rstrip("/")
        self.timeout = timeout or cfg.llm_timeout_seconds
        self._transport = transport

    async def complete(
        self,
        system_prompt: str,
        user_content: MessageContent,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run one chat completion and return the assistant message content.

        Raises:
            LLMError: If the key is missing, the call fails or no content comes back.
        """
        if not self.api_key:
            raise LLMError("Language model API key not configured")

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_base}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "LLM API error",
                extra={"status_code": e.response.status_code, "model": self.model},
            )
            raise LLMError(
                f"API error: {e.response.status_code}",
                {"status_code": e.response.status_code},
            ) from e
        except httpx.TimeoutException as e:
            logger.error("LLM request timed out", extra={"model": self.model})
            raise LLMError("Request timeout") from e
        except httpx.HTTPError as e:
            logger.error("LLM request failed", extra={"model": self.model, "error": str(e)})
            raise LLMError(f"LLM call failed: {e}") from e
        except ValueError as e:
            raise LLMError("LLM returned a non-JSON response") from e

        choices = data.get("choices") or []
        if not choices:
            raise LLMError("No response from model", {"response": data})

        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise LLMError("Empty response from model", {"response": data})
        return content.strip()


__all__ = ["LLMClient", "LLMError", "MessageContent", "extract_json"]
