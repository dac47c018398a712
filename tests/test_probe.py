"""Tests for HttpProbe.fetch and HttpProbe.validate.

fetch is exercised with a mocked httpx.AsyncClient covering a normal body,
a non-2xx body, timeouts, refused connections and unexpected errors.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from clustersmoke.probe import HttpProbe


def _mock_response(text: str, status_code: int = 200):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.text = text
    return resp


@pytest.fixture
def probe():
    return HttpProbe(timeout=5.0)


class TestFetch:
    @pytest.mark.asyncio
    async def test_returns_body(self, probe):
        with patch("clustersmoke.probe.http.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _mock_response("Hostname: svc-a\n")
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            body = await probe.fetch("http://localhost:8081/healthz")

        assert body == "Hostname: svc-a\n"
        mock_client.get.assert_awaited_once_with("http://localhost:8081/healthz")
        mock_client_cls.assert_called_once_with(timeout=5.0)

    @pytest.mark.asyncio
    async def test_timeout_override(self, probe):
        with patch("clustersmoke.probe.http.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _mock_response("ok")
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            await probe.fetch("http://localhost:8081/healthz", timeout_seconds=1.5)

        mock_client_cls.assert_called_once_with(timeout=1.5)

    @pytest.mark.asyncio
    async def test_non_2xx_body_is_returned(self, probe):
        with patch("clustersmoke.probe.http.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _mock_response("upstream not ready", status_code=503)
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            body = await probe.fetch("http://localhost:8081/healthz")

        assert body == "upstream not ready"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("Connection refused"),
            httpx.ReadTimeout("timed out"),
            httpx.RemoteProtocolError("Server disconnected"),
            RuntimeError("Something wild happened"),
        ],
    )
    async def test_failures_yield_empty_body(self, probe, error):
        with patch("clustersmoke.probe.http.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.side_effect = error
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            body = await probe.fetch("http://localhost:8081/healthz")

        assert body == ""


class TestValidate:
    def test_contiguous_substring(self):
        assert HttpProbe.validate("Hostname: svc-a\nIP: 10.0.0.1", "Hostname: svc-a") is True

    def test_wrong_host(self):
        assert HttpProbe.validate("Hostname: svc-b", "Hostname: svc-a") is False

    def test_non_contiguous_is_rejected(self):
        assert HttpProbe.validate("Hostname: x svc-a", "Hostname: svc-a") is False

    def test_empty_body_is_always_false(self):
        assert HttpProbe.validate("", "") is False
        assert HttpProbe.validate("", "anything") is False

    def test_case_sensitive(self):
        assert HttpProbe.validate("hostname: svc-a", "Hostname: svc-a") is False
