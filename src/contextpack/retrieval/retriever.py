"""Vector index sync and diversified retrieval."""

import logging
import time
from collections import Counter

from contextpack.access.roles import filter_documents
from contextpack.chunkers import ParagraphChunker
from contextpack.errors import ErrorKind, Result
from contextpack.models import (
    Chunk,
    FolderScope,
    IndexSyncResult,
    Match,
    RetrievalResult,
    SourceDocument,
    render_document,
    render_text_block,
)
from contextpack.protocols import ChunkingStrategy, EmbeddingProvider, VectorIndex, VectorRecord
from contextpack.protocols.vector_index import RANGE_START

logger = logging.getLogger(__name__)


class VectorRetriever:
    """Keeps a vector index in sync with the origin and answers queries.

    Retrieval drops matches under ``min_score``, caps matches per source file
    at ``max_chunks_per_file`` and stops at ``max_total_chunks``. When nothing
    clears the threshold, or the index/embedder fails, the full text of the
    accessible documents is used instead. Accessible text documents shorter
    than ``small_document_chars`` are always appended in full when retrieval
    did not surface them.
    """

    UPSERT_BATCH_SIZE = 100
    RANGE_PAGE_SIZE = 100

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        chunker: ChunkingStrategy | None = None,
        top_k: int = 20,
        min_score: float = 0.5,
        max_chunks_per_file: int = 3,
        max_total_chunks: int = 8,
        small_document_chars: int = 3000,
    ):
        self.index = index
        self.embedder = embedder
        self.chunker = chunker or ParagraphChunker()
        self.top_k = top_k
        self.min_score = min_score
        self.max_chunks_per_file = max_chunks_per_file
        self.max_total_chunks = max_total_chunks
        self.small_document_chars = small_document_chars

    # --- Indexing ---

    async def sync(self, documents: list[SourceDocument]) -> IndexSyncResult:
        """Index every text document and drop chunks that no longer exist.

        Args:
            documents: The complete current document set

        Returns:
            Counts of indexed files, chunks and deleted orphan chunks
        """
        start_time = time.monotonic()
        text_docs = [doc for doc in documents if doc.is_text]

        chunks: list[Chunk] = []
        for doc in text_docs:
            chunks.extend(self.chunker.chunk(doc))

        if chunks:
            vectors = await self.embedder.embed_documents([c.text for c in chunks])
            for i in range(0, len(chunks), self.UPSERT_BATCH_SIZE):
                batch = chunks[i : i + self.UPSERT_BATCH_SIZE]
                await self.index.upsert(
                    [
                        VectorRecord(id=chunk.id, vector=vectors[i + j], metadata=_chunk_metadata(chunk))
                        for j, chunk in enumerate(batch)
                    ]
                )
        else:
            logger.info("Vector sync: no text documents to index")

        chunk_counts = Counter(chunk.metadata.source_id for chunk in chunks)
        for doc in text_docs:
            chunk_counts.setdefault(doc.id, 0)
        deleted = await self._delete_orphans(chunk_counts)

        per_file = Counter(chunk.metadata.file_name for chunk in chunks)
        for name, count in per_file.items():
            logger.info(f"  {name}: {count} chunks")
        duration = time.monotonic() - start_time
        logger.info(
            f"Vector sync: indexed {len(chunks)} chunks from {len(text_docs)} files in {duration:.1f}s"
        )
        return IndexSyncResult(
            file_count=len(text_docs), chunk_count=len(chunks), deleted_count=deleted
        )

    async def _delete_orphans(self, chunk_counts: dict[str, int]) -> int:
        """Delete chunks whose source is gone or that lie past its current chunk count."""
        orphan_ids: list[str] = []
        try:
            cursor = RANGE_START
            while True:
                page = await self.index.range(cursor, self.RANGE_PAGE_SIZE)
                for hit in page.hits:
                    source_id = hit.metadata.get("sourceId")
                    if not source_id:
                        continue
                    if source_id not in chunk_counts:
                        orphan_ids.append(hit.id)
                    elif hit.metadata.get("chunkIndex", 0) >= chunk_counts[source_id]:
                        orphan_ids.append(hit.id)
                cursor = page.next_cursor
                if not cursor or cursor == RANGE_START:
                    break

            if orphan_ids:
                await self.index.delete(orphan_ids)
                logger.info(f"Vector sync: deleted {len(orphan_ids)} orphaned chunks")
        except Exception as e:
            logger.warning(f"Vector sync: orphan cleanup failed: {e}")
            return 0
        return len(orphan_ids)

    # --- Querying ---

    async def query(self, text: str, scope: FolderScope, top_k: int | None = None) -> list[Match]:
        """Return scored, thresholded and diversified matches for ``text``.

        Raises whatever the embedder or index raises.
        """
        vector = await self.embedder.embed_query(text)
        folders = None if scope.wildcard else scope.folders
        hits = await self.index.query(vector, top_k or self.top_k, folders)

        matches = []
        for hit in hits:
            meta = hit.metadata
            if not meta.get("text"):
                continue
            folder_tag = str(meta.get("folder", "")).lower()
            # Scope is enforced here too, whatever filter the index applied
            if not scope.allows(folder_tag):
                continue
            matches.append(
                Match(
                    chunk_id=hit.id,
                    text=meta["text"],
                    file_name=str(meta.get("fileName", "")),
                    folder_tag=folder_tag,
                    source_id=str(meta.get("sourceId", "")),
                    score=hit.score,
                )
            )
        return self.diversify(matches)

    def diversify(self, matches: list[Match]) -> list[Match]:
        """Apply the score threshold, the per-file cap and the total cap."""
        accepted: list[Match] = []
        per_file: Counter[str] = Counter()
        for match in sorted(matches, key=lambda m: m.score, reverse=True):
            if match.score < self.min_score:
                continue
            if per_file[match.source_id] >= self.max_chunks_per_file:
                continue
            accepted.append(match)
            per_file[match.source_id] += 1
            if len(accepted) >= self.max_total_chunks:
                break
        return accepted

    async def _safe_query(self, text: str, scope: FolderScope) -> Result[list[Match]]:
        try:
            return Result.success(await self.query(text, scope))
        except Exception as e:
            logger.warning(f"Vector query failed, using full-text fallback: {e}")
            return Result.from_exception(e)

    async def retrieve(
        self, text: str, scope: FolderScope, documents: list[SourceDocument]
    ) -> RetrievalResult:
        """Build the question-specific context for the documents in ``scope``."""
        accessible = [doc for doc in filter_documents(documents, scope) if doc.is_text]

        result = await self._safe_query(text, scope)
        if not result.ok or not result.value:
            if result.ok:
                logger.info("No chunks cleared the relevance threshold, using full text")
            return self.full_text(accessible)

        matches = result.value
        sections = [render_document(m.file_name, m.text) for m in matches]
        surfaced = {m.source_id for m in matches}

        appended = []
        for doc in accessible:
            if doc.id in surfaced or len(doc.text_content) >= self.small_document_chars:
                continue
            if not doc.text_content.strip():
                continue
            sections.append(render_document(doc.name, doc.text_content))
            appended.append(doc.name)

        return RetrievalResult(
            text_block="\n\n".join(sections),
            matches=matches,
            used_fallback=False,
            appended_files=appended,
        )

    @staticmethod
    def full_text(documents: list[SourceDocument]) -> RetrievalResult:
        return RetrievalResult(text_block=render_text_block(documents), used_fallback=True)


def _chunk_metadata(chunk: Chunk) -> dict:
    return {
        "folder": chunk.metadata.folder_tag,
        "fileName": chunk.metadata.file_name,
        "sourceId": chunk.metadata.source_id,
        "chunkIndex": chunk.metadata.chunk_index,
        "text": chunk.text,
    }
