"""Unit tests for the chat completions client."""

import json
from pathlib import Path

import httpx
import pytest

from backend.src.services.config import AppConfig
from backend.src.services.llm_client import LLMClient, LLMError, extract_json


def _client(tmp_path: Path, handler, api_key: str = "sk-test") -> LLMClient:
    return LLMClient(
        api_key=api_key,
        model="test-model",
        api_base="https://llm.test/v1/",
        transport=httpx.MockTransport(handler),
        config=AppConfig(data_dir=tmp_path),
    )


def test_extract_json_handles_code_fence() -> None:
    assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json(' [1, 2] ') == [1, 2]
    with pytest.raises(ValueError):
        extract_json("not json")


@pytest.mark.asyncio
async def test_complete_posts_messages(tmp_path: Path) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": " Hello "}}]})

    result = await _client(tmp_path, handler).complete("system", "user", temperature=0.7)

    assert result == "Hello"
    assert seen["url"] == "https://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["temperature"] == 0.7
    assert "max_tokens" not in seen["body"]
    assert seen["body"]["messages"][0] == {"role": "system", "content": "system"}


@pytest.mark.asyncio
async def test_complete_raises_on_http_error(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(LLMError) as excinfo:
        await client.complete("system", "user")

    assert excinfo.value.details == {"status_code": 500}


@pytest.mark.asyncio
async def test_complete_raises_on_empty_choices(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(LLMError, match="No response"):
        await client.complete("system", "user")


@pytest.mark.asyncio
async def test_complete_requires_api_key(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(200), api_key="")

    with pytest.raises(LLMError, match="not configured"):
        await client.complete("system", "user")
