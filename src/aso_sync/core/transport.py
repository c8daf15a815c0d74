"""JSON-over-HTTPS transport shared by both store clients.

Maps every failure to the structured error taxonomy in ``aso_sync.errors``.
Version-state conflicts are recognised from the HTTP status plus the
platform's machine-readable error code (see ``is_state_conflict`` in each
subclass), never from message text.

There is no retry here: rate limits and 5xx responses surface as errors.
"""

import logging
import threading
from typing import Any

import requests

from ..errors import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    TransportError,
    VersionStateConflict,
)
from .auth import AuthProvider

logger = logging.getLogger(__name__)


class ApiTransport:
    """Authenticated JSON request helper.

    Args:
        base_url: API root, without trailing slash.
        auth: Token provider; asked for a token on every request.
        identity: Identity passed to ``auth.get_token``.
        timeout: ``requests`` timeout (connect, read) in seconds.
    """

    name = "Store"

    def __init__(
        self,
        base_url: str,
        auth: AuthProvider,
        identity: str,
        timeout: float | tuple[float, float] = (10, 60),
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.identity = identity
        self.timeout = timeout
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.headers["Accept"] = "application/json"
            self._thread_local.session = session
        return self._thread_local.session

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        """Issue one request and return the decoded JSON body.

        Returns ``{}`` for empty responses (e.g. 204 on delete).

        Raises:
            TransportError: Or one of its subclasses, for any failure.
        """
        url = self.url_for(path)
        token = self.auth.get_token(self.identity)
        logger.debug("%s API request %s %s", self.name, method, url)
        try:
            response = self._get_session().request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TransportError(
                f"{self.name} API request {method} {url} timed out",
                code="timeout",
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(
                f"{self.name} API request {method} {url} failed: {exc}",
                code="connection_error",
            ) from exc

        if not response.ok:
            self._raise_for_error(method, url, response)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"{self.name} API request {method} {url} returned a non-JSON body",
                status=response.status_code,
                code="invalid_response",
            ) from exc

    def _raise_for_error(
        self, method: str, url: str, response: requests.Response
    ) -> None:
        try:
            payload = response.json()
        except ValueError:
            payload = {"raw": response.text}

        status = response.status_code
        code, message = self.parse_error(payload)
        error_cls = self.error_class(status, code)
        logger.debug(
            "%s API %s %s -> %s (%s)", self.name, method, url, status, code
        )
        raise error_cls(
            f"{self.name} API error: {status} {message}".rstrip(),
            status=status,
            code=code,
            details=payload,
        )

    def error_class(self, status: int, code: str | None) -> type[TransportError]:
        if self.is_state_conflict(status, code):
            return VersionStateConflict
        match status:
            case 401 | 403:
                return AuthenticationError
            case 404:
                return NotFoundError
            case 429:
                return RateLimitError
            case _:
                return TransportError

    def parse_error(self, payload: Any) -> tuple[str | None, str]:
        """Extract ``(code, message)`` from an error payload."""
        return None, ""

    def is_state_conflict(self, status: int, code: str | None) -> bool:
        return False
