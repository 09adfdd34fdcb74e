"""Paragraph-based chunking strategy."""

import re

from contextpack.models import Chunk, ChunkMetadata, SourceDocument

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


class ParagraphChunker:
    """Default chunking: accumulate paragraphs up to a target, overlap on close.

    This strategy keeps paragraphs intact while bounding chunk size:
    - Splits on blank-line paragraph boundaries
    - Closes a chunk when the next paragraph would push it past the target
    - Seeds each new chunk with the tail of the previous one so context
      survives the boundary
    """

    TARGET_CHUNK_CHARS = 3200  # ~800 tokens
    OVERLAP_CHARS = 400  # ~100 tokens

    def __init__(self, target_chars: int | None = None, overlap_chars: int | None = None):
        self.target_chars = target_chars or self.TARGET_CHUNK_CHARS
        self.overlap_chars = self.OVERLAP_CHARS if overlap_chars is None else overlap_chars

    def chunk(self, doc: SourceDocument) -> list[Chunk]:
        """Split a document's text into chunks with metadata.

        Args:
            doc: The source document; only text content is considered

        Returns:
            Chunks with ids ``{doc.id}:{index}``, indices starting at 0
        """
        text = doc.text_content
        if not text or not text.strip():
            return []

        trimmed = text.strip()
        if len(trimmed) <= self.target_chars:
            return self._build(doc, [trimmed])

        paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(trimmed) if p.strip()]

        texts: list[str] = []
        buffer = ""
        for paragraph in paragraphs:
            if buffer and len(buffer) + len(paragraph) + 2 > self.target_chars:
                texts.append(buffer.strip())
                overlap = buffer[-self.overlap_chars :] if self.overlap_chars else ""
                buffer = f"{overlap}\n\n{paragraph}" if overlap else paragraph
            else:
                buffer = f"{buffer}\n\n{paragraph}" if buffer else paragraph

        # Don't forget trailing buffer
        if buffer.strip():
            texts.append(buffer.strip())

        return self._build(doc, texts)

    @staticmethod
    def _build(doc: SourceDocument, texts: list[str]) -> list[Chunk]:
        folder_tag = doc.folder_tag.lower()
        return [
            Chunk(
                id=f"{doc.id}:{idx}",
                text=chunk_text,
                metadata=ChunkMetadata(
                    folder_tag=folder_tag,
                    file_name=doc.name,
                    source_id=doc.id,
                    chunk_index=idx,
                ),
            )
            for idx, chunk_text in enumerate(texts)
        ]
