"""Service-account bearer tokens for Drive requests."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from ...config import Settings
from ..folder_search.errors import ConfigurationError, RemoteTransportError

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ("https://www.googleapis.com/auth/drive",)
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ServiceAccountTokenSource:
    """Lazily builds service-account credentials and hands out access tokens."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._credentials: Optional[service_account.Credentials] = None

    def _build_credentials(self) -> service_account.Credentials:
        settings = self._settings
        if settings.service_account_file is not None:
            return service_account.Credentials.from_service_account_file(
                str(settings.service_account_file), scopes=DRIVE_SCOPES
            )

        if not settings.has_service_account:
            raise ConfigurationError(
                "No service account configured. Set GOOGLE_SERVICE_ACCOUNT_FILE or "
                "GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY."
            )

        info: Dict[str, Any] = {
            "type": "service_account",
            "client_email": settings.service_account_email,
            "private_key": settings.service_account_private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        }
        return service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)

    def _get_credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            try:
                self._credentials = self._build_credentials()
            except (ValueError, OSError) as exc:
                raise ConfigurationError(f"Invalid service account credentials: {exc}") from exc
        return self._credentials

    async def refresh(self) -> str:
        credentials = self._get_credentials()
        try:
            await asyncio.to_thread(credentials.refresh, Request())
        except google_auth_exceptions.GoogleAuthError as exc:
            logger.error("Service account token refresh failed: %s", exc)
            raise RemoteTransportError(f"Google token refresh failed: {exc}") from exc
        return str(credentials.token)

    async def access_token(self) -> str:
        credentials = self._get_credentials()
        if credentials.valid and credentials.token:
            return str(credentials.token)
        return await self.refresh()
