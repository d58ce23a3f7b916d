"""
Google OAuth Client - Access token acquisition for the ads query API.
Uses the OAuth 2.0 refresh_token grant; the refresh token itself is obtained
out of band and supplied through configuration.

A rejected grant (revoked or expired refresh token, wrong client secret) is
raised as TransportError with the HTTP status and the provider's
error_description, the same way AdsQueryClient reports 4xx responses.
"""

import time
import requests

from .errors import TransportError


def _grant_error_message(response, exc: Exception) -> str:
    try:
        body = response.json()
    except ValueError:
        return str(exc)
    if not isinstance(body, dict):
        return str(exc)
    return body.get("error_description") or body.get("error") or str(exc)


class GoogleOAuthClient:
    """Exchanges a refresh token for short-lived access tokens."""

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        debug: bool = False,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.debug = debug
        self._access_token = None
        self._expires_at = 0

    def get_token(self) -> str:
        """Return a valid access token, refreshing it 60 s before expiry.

        Raises:
            TransportError: If the token endpoint rejects the grant.
        """
        if self._access_token and time.time() < self._expires_at - 60:
            return self._access_token

        if self.debug:
            print("  Refreshing OAuth access token")

        response = requests.post(
            self.TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
            },
            timeout=30,
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise TransportError(response.status_code, _grant_error_message(response, e)) from e

        data = response.json()
        expires_in = int(data.get("expires_in", 3600))
        self._access_token = data["access_token"]
        self._expires_at = time.time() + expires_in

        if self.debug:
            print(f"  Access token acquired, expires in {expires_in}s")

        return self._access_token
