"""FastMCP server implementation for contextpack."""

import json

from mcp.server.fastmcp import FastMCP

from contextpack.service import KnowledgeBase


def _parse_list(raw: str) -> list[str] | None:
    """Split a comma-separated argument; an empty string means "not given"."""
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


def create_mcp_server(kb: KnowledgeBase) -> FastMCP:
    """Create an MCP server for a knowledge base.

    Design: 1 process = 1 knowledge base. The process-local cache and the
    in-flight fetch registry are shared by every tool call.

    Args:
        kb: The knowledge base to serve

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="contextpack",
    )

    @mcp.tool()
    async def context(folders: str = "") -> str:
        """Return the assembled document context.

        Args:
            folders: Optional comma-separated folder tags to restrict to (e.g. "public,instructor").
                Empty means every folder.

        Returns:
            The text block followed by a list of uploaded binary asset URIs
        """
        bundle = await kb.get_context(_parse_list(folders))
        if not bundle.text_block and not bundle.binary_asset_refs:
            return "No documents available"

        lines = [bundle.text_block] if bundle.text_block else []
        if bundle.binary_asset_refs:
            lines.append("")
            lines.append("Binary assets:")
            for ref in bundle.binary_asset_refs:
                lines.append(f"  {ref.uri} ({ref.mime_type})")
        return "\n".join(lines)

    @mcp.tool()
    async def status() -> str:
        """Report whether the knowledge base is synced, loading or not synced."""
        return json.dumps((await kb.get_status()).to_dict(), indent=2)

    @mcp.tool()
    async def clear_cache() -> str:
        """Drop the cached context so the next request reloads from the origin."""
        await kb.clear_cache()
        return "Cache cleared"

    @mcp.tool()
    async def sync(force: bool = False) -> str:
        """Load the document context now.

        Args:
            force: Clear the cache first and reload from the origin

        Returns:
            JSON status: ready, already_warming or error
        """
        return json.dumps(await kb.trigger_sync(force=force))

    @mcp.tool()
    async def rebuild_index() -> str:
        """Re-chunk and re-embed every text document into the vector index."""
        result = await kb.trigger_index_rebuild()
        return (
            f"Indexed {result.chunk_count} chunks from {result.file_count} files, "
            f"removed {result.deleted_count} orphaned chunks"
        )

    @mcp.tool()
    async def search(query: str, roles: str = "") -> str:
        """Semantic search across the documents a set of roles may read.

        Use this to find relevant passages by concept, not just keyword.

        Args:
            query: Natural language description of what you're looking for
            roles: Optional comma-separated user roles. Empty searches every folder.

        Returns:
            Ranked list of matching chunks with similarity scores
        """
        matches = await kb.search(query, _parse_list(roles))

        if not matches:
            return f"No results found for: {query}"

        lines = []
        for i, m in enumerate(matches, 1):
            # Truncate long text snippets
            text = m.text[:200].replace("\n", " ")
            if len(m.text) > 200:
                text += "..."

            lines.append(f"{i}. [{m.score:.3f}] {m.file_name} ({m.folder_tag})")
            lines.append(f"   {text}")
            lines.append("")

        return "\n".join(lines)

    return mcp
