"""Store API clients shared by the sync layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..sync.models import Platform
from .app_store import AppStoreClient, AppStoreTransport
from .app_store import API_ROOT as APP_STORE_API_ROOT
from .auth import AppStoreTokenProvider, GooglePlayTokenProvider
from .base import StoreClient
from .google_play import API_ROOT as GOOGLE_PLAY_API_ROOT
from .google_play import GooglePlayClient, GooglePlayTransport

if TYPE_CHECKING:
    from ..config import Config


def create_client(platform: Platform, config: Config) -> StoreClient:
    """Build a fresh client for *platform* from *config*.

    Raises:
        ConfigurationMissing: If the platform's credentials are absent.
    """
    credentials = config.require(platform)
    timeout = (10, config.request_timeout)

    if platform is Platform.APP_STORE:
        transport = AppStoreTransport(
            APP_STORE_API_ROOT,
            AppStoreTokenProvider(credentials),
            identity=credentials.key_id,
            timeout=timeout,
        )
        return AppStoreClient(transport)

    transport = GooglePlayTransport(
        GOOGLE_PLAY_API_ROOT,
        GooglePlayTokenProvider(credentials),
        identity=credentials.service_account["client_email"],
        timeout=timeout,
    )
    return GooglePlayClient(transport, track=config.google_play_track)


__all__ = [
    "AppStoreClient",
    "GooglePlayClient",
    "StoreClient",
    "create_client",
]
