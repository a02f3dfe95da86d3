from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from upstream_client import (
    DEFAULT_UPSTREAM_TOKEN,
    DEFAULT_UPSTREAM_URL,
    UpstreamClient,
    UpstreamError,
)


def _response(status: int = 200, payload=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = text
    response.json.return_value = payload
    return response


def _client(response=None, error=None) -> UpstreamClient:
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return UpstreamClient(base_url="https://example.test/exec", token="secret", timeout=5, session=session)


class TestFetchSnapshot:
    def test_returns_payload_verbatim(self, sample_payload):
        client = _client(_response(payload=sample_payload))

        assert client.fetch_snapshot() == sample_payload

        args, kwargs = client.session.get.call_args
        assert args == ("https://example.test/exec",)
        assert kwargs["params"] == {"token": "secret", "includeBlockchainCategories": "true"}
        assert kwargs["timeout"] == 5

    def test_non_2xx_raises(self):
        client = _client(_response(status=502))
        with pytest.raises(UpstreamError, match="Upstream error 502"):
            client.fetch_snapshot()

    def test_network_failure_raises(self):
        client = _client(error=requests.ConnectionError("boom"))
        with pytest.raises(UpstreamError, match="boom") as excinfo:
            client.fetch_snapshot()
        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    def test_invalid_json_raises(self):
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        with pytest.raises(UpstreamError, match="invalid JSON"):
            _client(response).fetch_snapshot()

    def test_single_attempt_only(self):
        client = _client(_response(status=500))
        with pytest.raises(UpstreamError):
            client.fetch_snapshot()
        assert client.session.get.call_count == 1


class TestTriggerRefresh:
    def test_sends_refresh_flag(self):
        client = _client(_response(payload={"success": True}))

        assert client.trigger_refresh() == {"success": True}
        assert client.session.get.call_args.kwargs["params"] == {"token": "secret", "refresh": "true"}

    def test_failure_includes_status_and_body(self):
        client = _client(_response(status=403, text="Unauthorized"))
        with pytest.raises(UpstreamError, match="Refresh failed with status 403: Unauthorized"):
            client.trigger_refresh()


def test_from_env(monkeypatch):
    monkeypatch.setenv("PORTFOLIO_UPSTREAM_URL", "https://other.test/exec")
    monkeypatch.setenv("PORTFOLIO_UPSTREAM_TOKEN", "t0ken")
    monkeypatch.setenv("PORTFOLIO_UPSTREAM_TIMEOUT", "7.5")

    client = UpstreamClient.from_env()

    assert client.base_url == "https://other.test/exec"
    assert client.token == "t0ken"
    assert client.timeout == 7.5


def test_from_env_defaults(monkeypatch):
    for name in ("PORTFOLIO_UPSTREAM_URL", "PORTFOLIO_UPSTREAM_TOKEN", "PORTFOLIO_UPSTREAM_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    client = UpstreamClient.from_env()

    assert client.base_url == DEFAULT_UPSTREAM_URL
    assert client.token == DEFAULT_UPSTREAM_TOKEN
    assert client.timeout == 30.0


def test_repr_leaves_out_session():
    assert "session" not in repr(UpstreamClient(session=MagicMock()))


def test_without_session_uses_requests_get(sample_payload):
    client = UpstreamClient(base_url="https://example.test/exec", token="secret")
    assert client.session is None

    with patch("upstream_client.requests.get", return_value=_response(payload=sample_payload)) as get:
        assert client.fetch_snapshot() == sample_payload

    get.assert_called_once()
    assert get.call_args.kwargs["params"]["includeBlockchainCategories"] == "true"


def test_from_env_opens_no_session():
    assert UpstreamClient.from_env().session is None
