"""Parsers for raw collaborator payloads.

Everything that comes back from an HTTP API or out of the key-value store
passes through one of these functions before the rest of the pipeline sees
it. Each parser documents what it returns for missing or malformed fields;
none of them raise on bad input.
"""

import json
import logging
from typing import Any, Optional

from contextpack.models import PUBLIC_FOLDER, KnowledgeBaseStatus, SourceDocument, UploadedAsset
from contextpack.protocols import HostedFile, RoleFolderMapping
from contextpack.protocols.asset_host import STATE_ACTIVE, STATE_PROCESSING

logger = logging.getLogger(__name__)


def _str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def load_json(blob: Optional[str]) -> Any:
    """Decode a JSON blob. Returns ``None`` for missing or invalid JSON."""
    if not blob:
        return None
    try:
        return json.loads(blob)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed cached JSON payload")
        return None


# --- Drive ---


def parse_drive_file(payload: Any) -> Optional[tuple[str, str, str]]:
    """Parse one entry of a Drive ``files.list`` response.

    Returns:
        ``(id, name, mimeType)``, or ``None`` when any of them is missing.
    """
    if not isinstance(payload, dict):
        return None
    file_id = _str(payload.get("id"))
    name = _str(payload.get("name"))
    mime_type = _str(payload.get("mimeType"))
    if not (file_id and name and mime_type):
        return None
    return file_id, name, mime_type


def parse_drive_page(payload: Any) -> tuple[list[tuple[str, str, str]], Optional[str]]:
    """Parse a Drive ``files.list`` page.

    Returns:
        The parsable files (malformed entries dropped) and the next page
        token, or ``None`` when this is the last page.
    """
    if not isinstance(payload, dict):
        return [], None
    raw_files = payload.get("files")
    files = []
    if isinstance(raw_files, list):
        for raw in raw_files:
            parsed = parse_drive_file(raw)
            if parsed:
                files.append(parsed)
    return files, _str(payload.get("nextPageToken"))


# --- Gemini ---


def parse_hosted_file(payload: Any, fallback_mime_type: str = "") -> Optional[HostedFile]:
    """Parse a Gemini Files resource (optionally wrapped in ``{"file": ...}``).

    A missing ``state`` means ``ACTIVE`` when a URI is present, otherwise
    ``PROCESSING``. Returns ``None`` without a resource name.
    """
    if isinstance(payload, dict) and isinstance(payload.get("file"), dict):
        payload = payload["file"]
    if not isinstance(payload, dict):
        return None
    ref = _str(payload.get("name"))
    if not ref:
        return None
    uri = _str(payload.get("uri")) or ""
    state = _str(payload.get("state")) or (STATE_ACTIVE if uri else STATE_PROCESSING)
    return HostedFile(
        ref=ref,
        uri=uri,
        mime_type=_str(payload.get("mimeType")) or fallback_mime_type,
        state=state.upper(),
    )


def parse_embedding(payload: Any) -> list[float]:
    """Parse ``{"embedding": {"values": [...]}}``. Returns ``[]`` when absent."""
    if not isinstance(payload, dict):
        return []
    embedding = payload.get("embedding")
    if isinstance(embedding, dict) and isinstance(embedding.get("values"), list):
        return [_float(v) for v in embedding["values"]]
    return []


def parse_embeddings(payload: Any) -> list[list[float]]:
    """Parse ``{"embeddings": [{"values": [...]}, ...]}``. Returns ``[]`` when absent."""
    if not isinstance(payload, dict) or not isinstance(payload.get("embeddings"), list):
        return []
    vectors = []
    for item in payload["embeddings"]:
        values = item.get("values") if isinstance(item, dict) else None
        vectors.append([_float(v) for v in values] if isinstance(values, list) else [])
    return vectors


# --- Role mappings ---


def parse_role_mappings(payload: Any) -> list[RoleFolderMapping]:
    """Parse a list of ``{"role": str, "folders": [str]}`` objects.

    Entries without a role are dropped; folders are lowercased and a
    missing folder list means no folders.
    """
    if isinstance(payload, dict):
        payload = payload.get("mappings")
    if not isinstance(payload, list):
        return []
    mappings = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        role = _str(item.get("role"))
        if not role or not role.strip():
            continue
        raw_folders = item.get("folders")
        folders = tuple(
            f.strip().lower() for f in raw_folders if isinstance(f, str) and f.strip()
        ) if isinstance(raw_folders, list) else ()
        mappings.append(RoleFolderMapping(role=role.strip(), folders=folders))
    return mappings


# --- Distributed cache entries ---


def parse_document_manifest(payload: Any) -> Optional[list[SourceDocument]]:
    """Parse the per-document manifest stored with a cached context.

    Returns ``None`` when no manifest is present (older or cleared entries),
    so callers can tell "no per-document data" from "zero documents".
    Entries missing an id or name are dropped; a missing folder tag becomes
    ``public``.
    """
    if not isinstance(payload, list):
        return None
    documents = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        doc_id = _str(item.get("id"))
        name = _str(item.get("name"))
        if not (doc_id and name):
            continue
        is_text = bool(item.get("isText", True))
        documents.append(
            SourceDocument(
                id=doc_id,
                name=name,
                mime_type=_str(item.get("mimeType")) or "application/octet-stream",
                folder_tag=(_str(item.get("folderTag")) or PUBLIC_FOLDER).lower(),
                is_text=is_text,
                text_content=(_str(item.get("textContent")) or "") if is_text else "",
            )
        )
    return documents


def parse_asset_map(payload: Any) -> dict[str, UploadedAsset]:
    """Parse ``{sourceId: {uri, mimeType, displayName, uploadedAt}}``.

    Entries without a URI are dropped; a missing ``uploadedAt`` is treated
    as epoch so the asset is never reused.
    """
    if not isinstance(payload, dict):
        return {}
    assets = {}
    for source_id, item in payload.items():
        if not isinstance(item, dict):
            continue
        uri = _str(item.get("uri"))
        if not uri:
            continue
        assets[source_id] = UploadedAsset(
            source_id=source_id,
            provider_uri=uri,
            mime_type=_str(item.get("mimeType")) or "application/octet-stream",
            display_name=_str(item.get("displayName")) or source_id,
            uploaded_at=_float(item.get("uploadedAt")),
        )
    return assets


def parse_status(payload: Any) -> Optional[KnowledgeBaseStatus]:
    """Parse a cached status entry. Unknown states read as ``not_synced``."""
    if not isinstance(payload, dict):
        return None
    state = payload.get("status")
    if state not in ("synced", "not_synced", "loading"):
        state = "not_synced"
    names = payload.get("fileNames")
    file_names = [n for n in names if isinstance(n, str)] if isinstance(names, list) else []
    warm_started = payload.get("warmStartedAt")
    return KnowledgeBaseStatus(
        state=state,
        file_count=int(_float(payload.get("fileCount"), len(file_names))),
        file_names=file_names,
        last_synced=_str(payload.get("lastSynced")),
        warm_started_at=_float(warm_started) if warm_started is not None else None,
    )
