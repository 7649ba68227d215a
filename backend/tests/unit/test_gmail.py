"""Unit tests for Gmail OAuth, message decoding and ingestion."""

import asyncio
import base64
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from backend.src.models.email import GmailTokens
from backend.src.services import gmail as gmail_module
from backend.src.services.config import AppConfig
from backend.src.services.email_queue import EmailQueueService
from backend.src.services.gmail import GmailError, GmailService, decode_message


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _message(message_id: str, body: str = "Hello") -> dict:
    return {
        "id": message_id,
        "internalDate": "1736951400000",
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": "Bob <bob@example.com>"},
                {"name": "subject", "value": f"Subject {message_id}"},
            ],
            "body": {"data": _b64(body)},
        },
    }


@pytest.fixture(autouse=True)
def clear_states():
    gmail_module.oauth_states.clear()
    yield
    gmail_module.oauth_states.clear()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path,
        google_client_id="client-id",
        google_client_secret="client-secret",
        gmail_fetch_concurrency=2,
        gmail_max_results=10,
    )


def _service(db, config, handler) -> GmailService:
    return GmailService(
        db,
        EmailQueueService(db),
        config=config,
        transport=httpx.MockTransport(handler),
    )


def _connect(service: GmailService, expires_in: timedelta = timedelta(hours=1)) -> None:
    service.save_tokens(
        GmailTokens(
            user_id="alice",
            access_token="access-1",
            refresh_token="refresh-1",
            expires_at=datetime.now(timezone.utc) + expires_in,
        )
    )


class TestDecodeMessage:
    def test_single_part(self) -> None:
        email = decode_message(_message("m1", "Hi there"))

        assert email.email_id == "m1"
        assert email.sender == "Bob <bob@example.com>"
        assert email.subject == "Subject m1"
        assert email.email_body == "Hi there"
        assert email.received_at == datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)

    def test_multipart_prefers_text_plain(self) -> None:
        message = {
            "id": "m2",
            "payload": {
                "mimeType": "multipart/alternative",
                "headers": [],
                "parts": [
                    {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
                    {
                        "mimeType": "multipart/related",
                        "parts": [{"mimeType": "text/plain", "body": {"data": _b64("plain")}}],
                    },
                ],
            },
        }

        email = decode_message(message)

        assert email.email_body == "plain"
        assert email.subject == ""

    def test_invalid_body(self) -> None:
        message = _message("m3")
        message["payload"]["body"]["data"] = "a"

        with pytest.raises(ValueError):
            decode_message(message)

    def test_missing_id(self) -> None:
        with pytest.raises(ValueError):
            decode_message({"payload": {}})


class TestOAuth:
    def test_auth_url_requires_configuration(self, db, tmp_path: Path) -> None:
        service = _service(db, AppConfig(data_dir=tmp_path), lambda request: httpx.Response(500))

        with pytest.raises(GmailError) as excinfo:
            service.build_auth_url("alice")
        assert excinfo.value.status_code == 501

    def test_auth_url_contains_state(self, db, config) -> None:
        result = _service(db, config, lambda request: httpx.Response(500)).build_auth_url("alice")

        query = parse_qs(urlparse(result.auth_url).query)
        assert query["state"] == [result.state]
        assert query["scope"] == ["https://www.googleapis.com/auth/gmail.readonly"]
        assert query["access_type"] == ["offline"]
        assert gmail_module.oauth_states[result.state][0] == "alice"

    @pytest.mark.asyncio
    async def test_exchange_code_stores_tokens(self, db, config) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["code"] == ["auth-code"]
            assert form["grant_type"] == ["authorization_code"]
            return httpx.Response(
                200, json={"access_token": "at", "refresh_token": "rt", "expires_in": 3600}
            )

        service = _service(db, config, handler)
        state = service.build_auth_url("alice").state

        await service.exchange_code("alice", "auth-code", state)

        assert service.status("alice").connected is True
        assert service.get_tokens("alice").refresh_token == "rt"

    @pytest.mark.asyncio
    async def test_state_is_single_use_and_bound_to_user(self, db, config) -> None:
        service = _service(
            db, config, lambda request: httpx.Response(200, json={"access_token": "at"})
        )
        state = service.build_auth_url("alice").state

        with pytest.raises(GmailError) as excinfo:
            await service.exchange_code("mallory", "code", state)
        assert excinfo.value.error == "invalid_state"

        with pytest.raises(GmailError):
            await service.exchange_code("alice", "code", state)

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self, db, config) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                calls.append(parse_qs(request.content.decode())["grant_type"][0])
                return httpx.Response(200, json={"access_token": "access-2", "expires_in": 60})
            return httpx.Response(200, json={"messages": []})

        service = _service(db, config, handler)
        _connect(service, expires_in=timedelta(minutes=-1))

        await service.fetch_and_queue("alice")

        assert calls == ["refresh_token"]
        stored = service.get_tokens("alice")
        assert stored.access_token == "access-2"
        assert stored.refresh_token == "refresh-1"


class TestFetch:
    @pytest.mark.asyncio
    async def test_not_connected(self, db, config) -> None:
        service = _service(db, config, lambda request: httpx.Response(500))

        with pytest.raises(GmailError) as excinfo:
            await service.fetch_and_queue("alice")
        assert excinfo.value.error == "not_connected"

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_good_messages(self, db, config) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer access-1"
            path = request.url.path
            if path.endswith("/messages"):
                assert request.url.params["maxResults"] == "10"
                return httpx.Response(
                    200, json={"messages": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}]}
                )
            if path.endswith("/m2"):
                return httpx.Response(500)
            return httpx.Response(200, json=_message(path.rsplit("/", 1)[-1]))

        service = _service(db, config, handler)
        _connect(service)

        result = await service.fetch_and_queue("alice")

        assert result.fetched == 2
        assert result.queued == 2
        assert [error.email_id for error in result.errors] == ["m2"]
        assert sorted(item.email_id for item in service.queue.list_items("alice")) == ["m1", "m3"]

        again = await service.fetch_and_queue("alice")
        assert again.queued == 0
        assert again.skipped == 2

    @pytest.mark.asyncio
    async def test_list_failure(self, db, config) -> None:
        service = _service(db, config, lambda request: httpx.Response(403))
        _connect(service)

        with pytest.raises(GmailError) as excinfo:
            await service.fetch_and_queue("alice")
        assert excinfo.value.status_code == 502

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, db, config) -> None:
        in_flight = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, json=_message(request.url.path.rsplit("/", 1)[-1]))

        service = _service(db, config, handler)
        ids = [f"m{i}" for i in range(8)]

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            emails, errors = await service.fetch_messages(client, "token", ids)

        assert len(emails) == 8
        assert errors == []
        assert peak == 2
