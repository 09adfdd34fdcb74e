"""Google Drive origin over the Drive v3 REST API."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from contextpack.errors import ConfigurationError, TransientFetchError
from contextpack.models import PUBLIC_FOLDER
from contextpack.parsers import parse_drive_page
from contextpack.protocols import OriginEntry
from contextpack.utils.mime import FOLDER_MIME_TYPE

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
WORKSPACE_PREFIX = "application/vnd.google-apps."


class GoogleDriveOrigin:
    """Read-only view of a Drive folder tree.

    Authenticates with a bearer access token (service-account or OAuth,
    minted outside this process) and supports shared drives.
    """

    source_type = "drive"
    PAGE_SIZE = 100

    def __init__(
        self,
        folder_id: Optional[str],
        access_token: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._folder_id = folder_id
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    @property
    def root_id(self) -> str:
        if not self._folder_id:
            raise ConfigurationError("Drive folder id is not configured")
        return self._folder_id

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if not self._access_token:
            raise ConfigurationError("Drive access token is not configured")
        async with httpx.AsyncClient(
            base_url=DRIVE_API_URL,
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                yield client
            except httpx.HTTPError as exc:
                raise TransientFetchError(f"Drive request failed: {exc}") from exc
            except ValueError as exc:
                raise TransientFetchError(f"Drive returned an unreadable response: {exc}") from exc

    async def list_recursive(self, root_id: str) -> list[OriginEntry]:
        async with self._client() as client:
            return await self._list_folder(client, root_id, "")

    async def _list_folder(
        self, client: httpx.AsyncClient, folder_id: str, folder_tag: str
    ) -> list[OriginEntry]:
        files: list[tuple[str, str, str]] = []
        page_token: Optional[str] = None
        while True:
            params = {
                "q": f"'{folder_id}' in parents and trashed = false",
                "fields": "nextPageToken, files(id, name, mimeType)",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
                "pageSize": str(self.PAGE_SIZE),
            }
            if page_token:
                params["pageToken"] = page_token
            response = await client.get("/files", params=params)
            response.raise_for_status()
            page, page_token = parse_drive_page(response.json())
            files.extend(page)
            if not page_token:
                break

        entries = [
            OriginEntry(id=file_id, name=name, mime_type=mime, folder_tag=folder_tag or PUBLIC_FOLDER)
            for file_id, name, mime in files
            if mime != FOLDER_MIME_TYPE
        ]

        # At the root, each subfolder name becomes the tag; deeper levels inherit it
        for file_id, name, mime in files:
            if mime != FOLDER_MIME_TYPE:
                continue
            subfolder_tag = name.lower() if folder_tag == "" else folder_tag
            entries.extend(await self._list_folder(client, file_id, subfolder_tag))

        return entries

    async def read_text(self, entry: OriginEntry, export_mime_type: str) -> str:
        async with self._client() as client:
            if entry.mime_type.startswith(WORKSPACE_PREFIX):
                response = await client.get(
                    f"/files/{entry.id}/export", params={"mimeType": export_mime_type}
                )
            else:
                response = await client.get(
                    f"/files/{entry.id}", params={"alt": "media", "supportsAllDrives": "true"}
                )
            response.raise_for_status()
            return response.text

    async def read_bytes(self, entry: OriginEntry) -> bytes:
        async with self._client() as client:
            response = await client.get(
                f"/files/{entry.id}", params={"alt": "media", "supportsAllDrives": "true"}
            )
            response.raise_for_status()
            return response.content
