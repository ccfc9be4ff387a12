"""Unit tests for base_client module."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from trial_extractor.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    DataSourceError,
    RetryConfig,
)


class ConcreteTestClient(BaseClient):
    """Concrete implementation of BaseClient for testing."""

    @property
    def _source_name(self) -> str:
        return "test_client"


class FakeResponse:
    def __init__(self, status: int, body: str = "", json_data=None):
        self.status = status
        self._body = body
        self._json = json_data

    async def text(self):
        return self._body

    async def json(self, content_type=None):
        if self._json is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def fake_session(*outcomes) -> MagicMock:
    """Session whose request() yields each outcome in turn (or raises it)."""
    session = MagicMock()
    session.closed = False

    def request(method, url, params=None):
        outcome = outcomes[request.calls]
        request.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    request.calls = 0
    session.request = MagicMock(side_effect=request)
    return session


@pytest.fixture
def no_sleep():
    with patch(
        "trial_extractor.data_sources.base_client.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        yield sleep


class TestSessionLifecycle:
    """BaseClient session lifecycle (no network calls)."""

    async def test_client_context_manager(self):
        async with ConcreteTestClient() as client:
            assert client._session is None  # Session created lazily
            session = await client._get_session()

            assert session is not None
            assert not session.closed

        assert client._session.closed

    async def test_session_reuse(self):
        client = ConcreteTestClient()

        session1 = await client._get_session()
        session2 = await client._get_session()

        assert session1 is session2
        await client.close()

    async def test_close_without_session(self):
        client = ConcreteTestClient()
        await client.close()
        assert client._session is None


class TestRequest:
    """_request retry and error handling."""

    async def test_json_success(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(FakeResponse(200, json_data={"ok": True}))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            result = await client._rest_get("https://example.com", {})

        assert result == {"ok": True}
        no_sleep.assert_not_awaited()

    async def test_text_success(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(FakeResponse(200, body="<xml/>"))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            result = await client._rest_get_text("https://example.com", {})

        assert result == "<xml/>"

    async def test_retries_retryable_status_then_succeeds(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(
            FakeResponse(503, body="unavailable"),
            FakeResponse(429, body="slow down"),
            FakeResponse(200, json_data={"ok": True}),
        )

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            result = await client._rest_get("https://example.com", {})

        assert result == {"ok": True}
        assert session.request.call_count == 3
        assert no_sleep.await_count == 2

    async def test_gives_up_after_max_retries(self, no_sleep):
        client = ConcreteTestClient(ClientConfig(retry=RetryConfig(max_retries=2)))
        session = fake_session(*[FakeResponse(500, body="boom") for _ in range(3)])

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(DataSourceError, match="HTTP 500") as exc_info:
                await client._rest_get("https://example.com", {})

        assert exc_info.value.status_code == 500
        assert exc_info.value.source == "test_client"
        assert session.request.call_count == 3

    async def test_non_retryable_status_fails_immediately(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(FakeResponse(400, body="bad term"))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(DataSourceError, match="HTTP 400") as exc_info:
                await client._rest_get("https://example.com", {})

        assert exc_info.value.status_code == 400
        assert session.request.call_count == 1
        no_sleep.assert_not_awaited()

    async def test_timeout_then_connection_error_then_success(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("reset"),
            FakeResponse(200, json_data={"ok": True}),
        )

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            result = await client._rest_get("https://example.com", {})

        assert result == {"ok": True}
        assert session.request.call_count == 3

    async def test_persistent_timeout_raises(self, no_sleep):
        client = ConcreteTestClient(ClientConfig(retry=RetryConfig(max_retries=1)))
        session = fake_session(asyncio.TimeoutError(), asyncio.TimeoutError())

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(DataSourceError, match="Timeout"):
                await client._rest_get("https://example.com", {})

        assert session.request.call_count == 2

    async def test_invalid_json_raises(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(FakeResponse(200, body="not json"))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(DataSourceError, match="Invalid JSON"):
                await client._rest_get("https://example.com", {})

        assert session.request.call_count == 1

    async def test_non_object_json_raises(self, no_sleep):
        client = ConcreteTestClient()
        session = fake_session(FakeResponse(200, json_data=[1, 2, 3]))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(DataSourceError, match="Expected a JSON object"):
                await client._rest_get("https://example.com", {})


def test_retry_delay_is_capped():
    retry = RetryConfig(base_delay=1.0, backoff_factor=2.0, max_delay=5.0)
    assert [retry.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
