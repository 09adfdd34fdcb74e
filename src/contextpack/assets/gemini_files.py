"""Gemini Files API asset host."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import httpx

from contextpack.errors import ConfigurationError, TransientFetchError
from contextpack.parsers import parse_hosted_file
from contextpack.protocols import HostedFile

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com"


class GeminiFileHost:
    """Uploads files with the Files API resumable protocol.

    Uploaded files expire provider-side after 48 hours.
    """

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self._api_key:
            raise ConfigurationError("Gemini API key is not configured")
        return httpx.AsyncClient(
            base_url=GEMINI_API_URL,
            params={"key": self._api_key},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def upload(self, path: Path, display_name: str, mime_type: str) -> HostedFile:
        data = await asyncio.to_thread(path.read_bytes)
        async with self._client() as client:
            try:
                start = await client.post(
                    "/upload/v1beta/files",
                    headers={
                        "X-Goog-Upload-Protocol": "resumable",
                        "X-Goog-Upload-Command": "start",
                        "X-Goog-Upload-Header-Content-Length": str(len(data)),
                        "X-Goog-Upload-Header-Content-Type": mime_type,
                    },
                    json={"file": {"display_name": display_name}},
                )
                start.raise_for_status()
                upload_url = start.headers.get("x-goog-upload-url")
                if not upload_url:
                    raise TransientFetchError(f"No upload URL returned for {display_name!r}")

                finish = await client.post(
                    upload_url,
                    headers={
                        "X-Goog-Upload-Offset": "0",
                        "X-Goog-Upload-Command": "upload, finalize",
                        "Content-Type": mime_type,
                    },
                    content=data,
                )
                finish.raise_for_status()
                payload = finish.json()
            except httpx.HTTPError as exc:
                raise TransientFetchError(f"Upload of {display_name!r} failed: {exc}") from exc
            except ValueError as exc:
                raise TransientFetchError(f"Upload of {display_name!r} returned a non-JSON body") from exc

        hosted = parse_hosted_file(payload, mime_type)
        if hosted is None:
            raise TransientFetchError(f"Unexpected upload response for {display_name!r}")
        return hosted

    async def poll_state(self, ref: str) -> HostedFile:
        async with self._client() as client:
            try:
                response = await client.get(f"/v1beta/{ref}")
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPError as exc:
                raise TransientFetchError(f"Polling {ref} failed: {exc}") from exc
            except ValueError as exc:
                raise TransientFetchError(f"Polling {ref} returned a non-JSON body") from exc
        hosted = parse_hosted_file(payload)
        if hosted is None:
            raise TransientFetchError(f"Unexpected file state response for {ref}")
        return hosted
