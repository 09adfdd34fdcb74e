"""Core data models for documents, chunks, assets and bundles."""

from dataclasses import dataclass, field
from typing import Any, Optional

PUBLIC_FOLDER = "public"


@dataclass(frozen=True)
class SourceDocument:
    """A document fetched from the origin.

    Text documents carry ``text_content``; binary documents carry the raw
    bytes in ``binary`` for asset upload.
    """

    id: str
    name: str
    mime_type: str
    folder_tag: str = PUBLIC_FOLDER
    is_text: bool = True
    text_content: str = ""
    binary: Optional[bytes] = field(default=None, repr=False)

    def manifest(self) -> dict[str, Any]:
        """Serializable form without the binary payload."""
        return {
            "id": self.id,
            "name": self.name,
            "mimeType": self.mime_type,
            "folderTag": self.folder_tag,
            "isText": self.is_text,
            "textContent": self.text_content if self.is_text else "",
        }


@dataclass(frozen=True)
class ChunkMetadata:
    folder_tag: str
    file_name: str
    source_id: str
    chunk_index: int


@dataclass(frozen=True)
class Chunk:
    """A bounded, overlapping excerpt of a document's text."""

    id: str
    text: str
    metadata: ChunkMetadata


@dataclass(frozen=True)
class UploadedAsset:
    """A binary asset hosted by the inference-time asset store."""

    source_id: str
    provider_uri: str
    mime_type: str
    display_name: str
    uploaded_at: float

    def is_reusable(self, now: float, reuse_window_seconds: float) -> bool:
        return now - self.uploaded_at < reuse_window_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.provider_uri,
            "mimeType": self.mime_type,
            "displayName": self.display_name,
            "uploadedAt": self.uploaded_at,
        }


@dataclass(frozen=True)
class AssetRef:
    """Reference to an uploaded asset as handed to the generative call."""

    uri: str
    mime_type: str


def render_document(name: str, text: str) -> str:
    return f"=== {name} ===\n{text}"


def render_text_block(documents: list[SourceDocument]) -> str:
    """Concatenate the full text of every text document."""
    return "\n\n".join(
        render_document(doc.name, doc.text_content) for doc in documents if doc.is_text
    )


@dataclass
class ContextBundle:
    """The unit returned to callers."""

    text_block: str = ""
    binary_asset_refs: list[AssetRef] = field(default_factory=list)
    source_file_names: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ContextBundle":
        return cls()

    @classmethod
    def build(
        cls,
        documents: list[SourceDocument],
        assets: dict[str, UploadedAsset],
    ) -> "ContextBundle":
        """Assemble a bundle from documents and the assets uploaded for them.

        Binary documents without an uploaded asset are listed by name but
        contribute no reference.
        """
        refs = [
            AssetRef(uri=assets[doc.id].provider_uri, mime_type=assets[doc.id].mime_type)
            for doc in documents
            if not doc.is_text and doc.id in assets
        ]
        return cls(
            text_block=render_text_block(documents),
            binary_asset_refs=refs,
            source_file_names=[doc.name for doc in documents],
        )
