"""Tests for the knowledge base facade and its wiring."""

import asyncio

import pytest

from contextpack.access import RoleFilter, StaticRoleMappings
from contextpack.assets import BinaryAssetUploadManager
from contextpack.cache import DistributedTier, TieredCacheCoordinator
from contextpack.chunkers import ParagraphChunker
from contextpack.config import Settings
from contextpack.errors import ConfigurationError
from contextpack.models import FolderScope
from contextpack.origin import FolderOrigin, OriginFetchAdapter
from contextpack.protocols import RoleFolderMapping
from contextpack.retrieval import VectorRetriever
from contextpack.server import create_mcp_server
from contextpack.service import KnowledgeBase, build_knowledge_base
from contextpack.storage import NullKVStore, SQLiteVectorIndex
from tests.fakes import FakeAssetHost, FakeOrigin, KeywordEmbedder, MemoryKV, MemoryVectorIndex

GOOGLE_DOC = "application/vnd.google-apps.document"


def _knowledge_base(retriever=None, role_source=None, timeout: float = 8.0) -> KnowledgeBase:
    origin = FakeOrigin()
    origin.add("w", "Welcome", GOOGLE_DOC, "Welcome. Parking is behind the gym.")
    origin.add("g", "Grading", GOOGLE_DOC, "\n\n".join(["Grading weights and late work."] * 3), folder="instructor")
    origin.add("s", "Secrets", GOOGLE_DOC, "Student grading appeals", folder="student")
    coordinator = TieredCacheCoordinator(
        OriginFetchAdapter(origin),
        BinaryAssetUploadManager(FakeAssetHost(), poll_interval=0),
        DistributedTier(MemoryKV()),
        retriever=retriever,
    )
    roles = role_source or StaticRoleMappings([RoleFolderMapping("Instructor", ("instructor",))])
    return KnowledgeBase(coordinator, RoleFilter(roles), retriever=retriever, composite_timeout_seconds=timeout)


@pytest.mark.asyncio
async def test_get_context_without_folders_is_everything():
    kb = _knowledge_base()

    everything = await kb.get_context()
    public = await kb.get_context(["public"])

    assert everything.source_file_names == ["Welcome", "Grading", "Secrets"]
    assert public.source_file_names == ["Welcome"]


@pytest.mark.asyncio
async def test_context_for_question_uses_role_scope():
    retriever = VectorRetriever(MemoryVectorIndex(), KeywordEmbedder())
    kb = _knowledge_base(retriever=retriever)

    result = await kb.context_for_question("How is grading weighted?", ["Instructor"])

    assert not result.used_fallback
    assert {m.file_name for m in result.matches} == {"Grading"}
    assert "Student grading appeals" not in result.text_block
    assert result.appended_files == ["Welcome"]


@pytest.mark.asyncio
async def test_context_for_question_without_retriever_is_full_text():
    kb = _knowledge_base()

    result = await kb.context_for_question("anything", ["visitor"])

    assert result.used_fallback
    assert result.text_block == "=== Welcome ===\nWelcome. Parking is behind the gym."


@pytest.mark.asyncio
async def test_slow_role_lookup_falls_back_to_public():
    class SlowRoles:
        async def all_mappings(self):
            await asyncio.sleep(5)
            return [RoleFolderMapping("Instructor", ("*",))]

    kb = _knowledge_base(role_source=SlowRoles(), timeout=0.05)

    result = await kb.context_for_question("grading", ["Instructor"])

    assert "Welcome" in result.text_block
    assert "Grading weights" not in result.text_block


@pytest.mark.asyncio
async def test_index_rebuild_and_search():
    index = MemoryVectorIndex()
    kb = _knowledge_base(retriever=VectorRetriever(index, KeywordEmbedder()))

    result = await kb.trigger_index_rebuild()
    public_hits = await kb.search("parking", roles=["visitor"])
    all_hits = await kb.search("grading")

    assert result.file_count == 3
    assert [m.file_name for m in public_hits] == ["Welcome"]
    assert {m.file_name for m in all_hits} == {"Grading", "Secrets"}


@pytest.mark.asyncio
async def test_index_operations_need_a_retriever():
    kb = _knowledge_base()

    with pytest.raises(ConfigurationError):
        await kb.trigger_index_rebuild()


@pytest.mark.asyncio
async def test_sync_and_clear_cache():
    kb = _knowledge_base()

    assert (await kb.trigger_sync())["status"] == "ready"
    assert (await kb.get_status()).state == "synced"

    await kb.clear_cache()
    assert (await kb.get_status()).state == "not_synced"


@pytest.mark.asyncio
async def test_folders_for_roles():
    scope = await _knowledge_base().folders_for_roles(["INSTRUCTOR"])

    assert scope == FolderScope.of(["public", "instructor"])


def test_build_from_settings(tmp_path):
    settings = Settings(
        local_folder=tmp_path,
        index_path=tmp_path / "index.sqlite",
        embedding_backend="gemini",
        redis_url=None,
        chunk_target_chars=2000,
        chunk_overlap_chars=200,
        role_mappings_json='[{"role": "Instructor", "folders": ["instructor"]}]',
    )

    kb = build_knowledge_base(settings)

    assert isinstance(kb.kv, NullKVStore)
    assert isinstance(kb.coordinator.fetcher.origin, FolderOrigin)
    assert isinstance(kb.retriever.index, SQLiteVectorIndex)
    assert isinstance(kb.retriever.chunker, ParagraphChunker)
    assert kb.retriever.chunker.target_chars == 2000


def test_overlap_must_be_below_target():
    with pytest.raises(ValueError):
        Settings(chunk_target_chars=400, chunk_overlap_chars=400)


@pytest.mark.asyncio
async def test_mcp_server_exposes_tools():
    mcp = create_mcp_server(_knowledge_base())

    names = {tool.name for tool in await mcp.list_tools()}

    assert names == {"context", "status", "clear_cache", "sync", "rebuild_index", "search"}
