"""Bearer-token providers for the store APIs.

The transport asks its provider for a token on every request.  App Store
JWTs are minted on every call; Google access tokens are reused until
shortly before they expire.

- ``AppStoreTokenProvider``: ES256 JWT signed with an App Store Connect
  API key.
- ``GooglePlayTokenProvider``: OAuth access token obtained by exchanging a
  service-account JWT assertion.
- ``StaticTokenProvider``: fixed token, for tests and pre-minted tokens.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol

import jwt
import requests

from ..errors import AuthenticationError, ConfigurationMissing

if TYPE_CHECKING:
    from ..config import AppStoreCredentials, GooglePlayCredentials

logger = logging.getLogger(__name__)

APP_STORE_AUDIENCE = "appstoreconnect-v1"
GOOGLE_PLAY_SCOPE = "https://www.googleapis.com/auth/androidpublisher"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
TOKEN_REFRESH_MARGIN = 60


class AuthProvider(Protocol):
    def get_token(self, identity: str) -> str: ...


class StaticTokenProvider:
    def __init__(self, token: str) -> None:
        self.token = token

    def get_token(self, identity: str) -> str:
        return self.token


class AppStoreTokenProvider:
    """Mint App Store Connect JWTs.

    Args:
        credentials: Issuer id, key id and PEM private key.
        lifetime: Token lifetime in seconds (Apple allows at most 20 minutes).
    """

    def __init__(
        self, credentials: AppStoreCredentials, lifetime: int = 1200
    ) -> None:
        self.credentials = credentials
        self.lifetime = lifetime

    def get_token(self, identity: str) -> str:
        private_key = self.credentials.private_key.replace("\\n", "\n").strip()
        if "BEGIN PRIVATE KEY" not in private_key:
            raise ConfigurationMissing(
                "Invalid App Store private key: a PEM encoded key is required"
            )
        now = int(time.time())
        payload = {
            "iss": self.credentials.issuer_id,
            "iat": now,
            "exp": now + self.lifetime,
            "aud": APP_STORE_AUDIENCE,
        }
        return jwt.encode(
            payload,
            private_key,
            algorithm="ES256",
            headers={"kid": self.credentials.key_id, "typ": "JWT"},
        )


class GooglePlayTokenProvider:
    """Exchange a service-account assertion for an Android Publisher token.

    Args:
        credentials: Service account JSON.
        timeout: Token endpoint timeout in seconds.
    """

    def __init__(
        self, credentials: GooglePlayCredentials, timeout: float = 30
    ) -> None:
        self.credentials = credentials
        self.timeout = timeout
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    def get_token(self, identity: str) -> str:
        with self._lock:
            if self._token is None or time.time() >= self._expires_at:
                self._token, lifetime = self._exchange(identity)
                self._expires_at = time.time() + lifetime - TOKEN_REFRESH_MARGIN
            return self._token

    def _exchange(self, identity: str) -> tuple[str, int]:
        account = self.credentials.service_account
        token_uri = account.get("token_uri") or GOOGLE_TOKEN_URI
        now = int(time.time())
        assertion = jwt.encode(
            {
                "iss": account["client_email"],
                "scope": GOOGLE_PLAY_SCOPE,
                "aud": token_uri,
                "iat": now,
                "exp": now + 3600,
            },
            account["private_key"],
            algorithm="RS256",
            headers={"kid": account.get("private_key_id")},
        )
        try:
            response = requests.post(
                token_uri,
                data={
                    "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                    "assertion": assertion,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthenticationError(
                f"Google token exchange failed: {exc}", code="token_exchange"
            ) from exc

        if not response.ok:
            raise AuthenticationError(
                f"Google token exchange failed: {response.status_code} {response.text}",
                status=response.status_code,
                code="token_exchange",
            )
        payload = response.json()
        logger.debug("Obtained Google Play access token for %s", identity)
        return payload["access_token"], int(payload.get("expires_in", 3600))
