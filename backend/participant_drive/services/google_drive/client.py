"""Low level Google Drive HTTP client for listing folders."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from ...config import Settings
from ..folder_search.errors import RemoteTransportError
from ..folder_search.models import FolderPage, FolderRecord

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_FILES_ENDPOINT = "/files"
DRIVE_FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DRIVE_PAGE_SIZE = 100

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class AccessTokenSource(Protocol):
    async def access_token(self) -> str:
        ...

    async def refresh(self) -> str:
        ...


class GoogleDriveClient:
    def __init__(
        self,
        settings: Settings,
        token_source: AccessTokenSource,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._token_source = token_source
        self._transport = transport
        self._sleep = sleep

    # HTTP plumbing -----------------------------------------------------
    async def _backoff(self, attempt: int) -> None:
        delay = self._settings.drive_retry_backoff * (2 ** attempt)
        if delay > 0:
            await self._sleep(delay)

    async def drive_request(
        self,
        *,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        max_retries = self._settings.drive_max_retries
        refreshed = False
        attempt = 0
        access_token = await self._token_source.access_token()

        while True:
            headers = {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            }
            try:
                async with httpx.AsyncClient(
                    timeout=self._settings.drive_request_timeout,
                    base_url=DRIVE_API_BASE,
                    transport=self._transport,
                ) as client:
                    response = await client.request(method, path, params=params, headers=headers)
            except httpx.TransportError as exc:
                if attempt < max_retries:
                    logger.warning(
                        "Google Drive request transport failure, retrying: %s %s (%s)",
                        method,
                        path,
                        exc,
                        extra={"attempt": attempt + 1},
                    )
                    await self._backoff(attempt)
                    attempt += 1
                    continue
                logger.error("Google Drive request failed after retries: %s %s (%s)", method, path, exc)
                raise RemoteTransportError(f"Google Drive request failed: {exc}") from exc
            except httpx.RequestError as exc:
                logger.error("Google Drive response could not be read: %s %s (%s)", method, path, exc)
                raise RemoteTransportError(f"Google Drive request failed: {exc}") from exc

            if response.status_code == 401 and not refreshed:
                refreshed = True
                access_token = await self._token_source.refresh()
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
                logger.warning(
                    "Google Drive request returned %s, retrying: %s %s",
                    response.status_code,
                    method,
                    path,
                    extra={"attempt": attempt + 1},
                )
                await self._backoff(attempt)
                attempt += 1
                continue

            if response.is_error:
                logger.error(
                    "Google Drive request failed: %s %s -> %s", method, path, response.text
                )
                raise RemoteTransportError(
                    f"Google Drive request failed with status {response.status_code}.",
                    status_code=response.status_code,
                )

            try:
                payload = response.json() if response.text else {}
            except ValueError as exc:
                raise RemoteTransportError("Google Drive response was not valid JSON.") from exc
            if not isinstance(payload, dict):
                logger.error("Unexpected Google Drive response type for %s %s: %s", method, path, payload)
                raise RemoteTransportError("Google Drive response could not be interpreted.")
            return payload

    # Folder listing ----------------------------------------------------
    async def list_child_folders(
        self,
        parent_id: str,
        page_token: Optional[str] = None,
    ) -> FolderPage:
        query = (
            f"'{_escape_query_value(parent_id)}' in parents and "
            f"mimeType = '{DRIVE_FOLDER_MIME_TYPE}' and trashed = false"
        )
        params: Dict[str, Any] = {
            "q": query,
            "fields": "nextPageToken,files(id,name,parents)",
            "pageSize": DRIVE_PAGE_SIZE,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self.drive_request(method="GET", path=DRIVE_FILES_ENDPOINT, params=params)

        records: List[FolderRecord] = []
        files = data.get("files")
        if isinstance(files, Sequence):
            for entry in files:
                record = _folder_record_from_entry(entry, parent_id)
                if record is not None:
                    records.append(record)

        next_token = data.get("nextPageToken")
        return FolderPage(
            records=tuple(records),
            next_page_token=next_token if isinstance(next_token, str) and next_token else None,
        )


def _folder_record_from_entry(entry: Any, parent_id: str) -> Optional[FolderRecord]:
    if not isinstance(entry, dict):
        return None
    folder_id = entry.get("id")
    name = entry.get("name")
    if not isinstance(folder_id, str) or not folder_id or not isinstance(name, str):
        return None

    parents = entry.get("parents")
    parent_ids: Tuple[str, ...]
    if isinstance(parents, Sequence) and not isinstance(parents, str) and parents:
        parent_ids = tuple(str(parent) for parent in parents)
    else:
        parent_ids = (parent_id,)
    return FolderRecord(id=folder_id, name=name, parent_ids=parent_ids)


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")
