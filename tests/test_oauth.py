"""Tests for core.oauth.GoogleOAuthClient.

All tests mock requests.post so no real HTTP calls are made.
Covers token acquisition, caching, expiry-driven refresh, the
refresh_token payload structure and rejected grants.
"""

import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.errors import TransportError
from core.oauth import GoogleOAuthClient


def _mock_token_response(access_token="test-token", expires_in=3599):
    mock_resp = MagicMock()
    mock_resp.json.return_value = {
        "access_token": access_token,
        "expires_in": expires_in,
        "scope": "https://www.googleapis.com/auth/adwords",
        "token_type": "Bearer",
    }
    mock_resp.raise_for_status = MagicMock()
    return mock_resp


def _client():
    return GoogleOAuthClient("client-id", "client-secret", "refresh-token")


# ---------------------------------------------------------------------------
# Token acquisition
# ---------------------------------------------------------------------------

def test_get_token_calls_token_endpoint():
    client = _client()
    with patch("core.oauth.requests.post", return_value=_mock_token_response()) as mock_post:
        token = client.get_token()
        assert token == "test-token"
        mock_post.assert_called_once()
        assert mock_post.call_args[0][0] == "https://oauth2.googleapis.com/token"


def test_payload_is_refresh_token_grant():
    client = _client()
    with patch("core.oauth.requests.post", return_value=_mock_token_response()) as mock_post:
        client.get_token()
        assert mock_post.call_args[1]["data"] == {
            "grant_type": "refresh_token",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "refresh_token": "refresh-token",
        }


# ---------------------------------------------------------------------------
# Caching behaviour
# ---------------------------------------------------------------------------

def test_get_token_caches():
    client = _client()
    with patch("core.oauth.requests.post", return_value=_mock_token_response()) as mock_post:
        assert client.get_token() == client.get_token()
        assert mock_post.call_count == 1


def test_get_token_refreshes_on_expiry():
    client = _client()
    with patch("core.oauth.requests.post", return_value=_mock_token_response()):
        client.get_token()
    client._expires_at = time.time() - 1
    with patch("core.oauth.requests.post", return_value=_mock_token_response("new-token")) as mock_post:
        assert client.get_token() == "new-token"
        mock_post.assert_called_once()


def test_rejected_grant_raises_transport_error():
    client = _client()
    failing = _mock_token_response()
    failing.status_code = 400
    failing.json.return_value = {
        "error": "invalid_grant",
        "error_description": "Token has been expired or revoked.",
    }
    failing.raise_for_status.side_effect = requests.exceptions.HTTPError("400 invalid_grant")
    with patch("core.oauth.requests.post", return_value=failing):
        with pytest.raises(TransportError) as exc_info:
            client.get_token()
    assert exc_info.value.code == 400
    assert exc_info.value.message == "Token has been expired or revoked."


def test_rejected_grant_without_json_body():
    client = _client()
    failing = _mock_token_response()
    failing.status_code = 401
    failing.json.side_effect = ValueError("no json")
    failing.raise_for_status.side_effect = requests.exceptions.HTTPError("401 Unauthorized")
    with patch("core.oauth.requests.post", return_value=failing):
        with pytest.raises(TransportError) as exc_info:
            client.get_token()
    assert exc_info.value.code == 401
    assert exc_info.value.message == "401 Unauthorized"
