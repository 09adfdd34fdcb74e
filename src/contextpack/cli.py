"""CLI entry point for contextpack."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable, Literal, TypeVar, cast

from contextpack.config import get_settings
from contextpack.errors import ContextPackError
from contextpack.service import KnowledgeBase, build_knowledge_base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _split(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def _run(operation: Callable[[KnowledgeBase], Awaitable[T]]) -> T:
    """Build the knowledge base, run one operation and release its connections."""

    async def _main() -> T:
        kb = build_knowledge_base()
        try:
            return await operation(kb)
        finally:
            await kb.close()

    try:
        return asyncio.run(_main())
    except ContextPackError as e:
        logger.error(str(e))
        sys.exit(1)


def sync(force: bool = False) -> None:
    """Load the document context into the cache tiers.

    Args:
        force: Clear cached context first
    """
    result = _run(lambda kb: kb.trigger_sync(force=force))
    if result["status"] == "ready":
        logger.info(f"Ready: {result['fileCount']} files")
    elif result["status"] == "already_warming":
        logger.info("Another instance is already loading the context")
    else:
        logger.error(f"Sync failed: {result.get('error')}")
        sys.exit(1)


def index() -> None:
    """Rebuild the vector index from the current documents."""
    result = _run(lambda kb: kb.trigger_index_rebuild())
    logger.info(
        f"Indexed {result.chunk_count} chunks from {result.file_count} files, "
        f"removed {result.deleted_count} orphaned chunks"
    )


def status() -> None:
    """Show knowledge base status."""
    result = _run(lambda kb: kb.get_status())

    print(f"Status: {result.state}")
    print(f"  Files: {result.file_count}")
    if result.last_synced:
        print(f"  Last synced: {result.last_synced}")
    for name in result.file_names:
        print(f"    {name}")


def clear() -> None:
    """Clear cached context in this process and the shared tier."""
    _run(lambda kb: kb.clear_cache())
    logger.info("Cache cleared")


def context(folders: str | None = None, question: str | None = None, roles: str | None = None) -> None:
    """Print the assembled context.

    Args:
        folders: Comma-separated folder tags (default: all)
        question: Retrieve context for this question instead of the full bundle
        roles: Comma-separated roles used with ``question``
    """
    if question:
        result = _run(lambda kb: kb.context_for_question(question, _split(roles) or []))
        print(result.text_block)
        source = "full text" if result.used_fallback else f"{len(result.matches)} matched chunks"
        logger.info(f"Context from {source}; appended: {result.appended_files or 'none'}")
        return

    bundle = _run(lambda kb: kb.get_context(_split(folders)))
    print(bundle.text_block)
    if bundle.binary_asset_refs:
        print(json.dumps([{"uri": r.uri, "mimeType": r.mime_type} for r in bundle.binary_asset_refs], indent=2))
    logger.info(f"{len(bundle.source_file_names)} files in context")


def serve(transport: str = "stdio") -> None:
    """Start the MCP server.

    Args:
        transport: Transport protocol (stdio or sse)
    """
    # Import here to avoid loading MCP unless needed
    from contextpack.server import create_mcp_server

    logger.info(f"Serving contextpack via {transport}")
    mcp = create_mcp_server(build_knowledge_base())
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], transport))


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="contextpack",
        description="contextpack - cached, role-scoped document context for AI calls",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Load documents into the cache")
    sync_parser.add_argument(
        "--force",
        action="store_true",
        help="Clear cached context and reload from the origin",
    )

    subparsers.add_parser("index", help="Rebuild the vector index")
    subparsers.add_parser("status", help="Show knowledge base status")
    subparsers.add_parser("clear", help="Clear cached context")

    # context command
    context_parser = subparsers.add_parser("context", help="Print the assembled context")
    context_parser.add_argument("--folders", help="Comma-separated folder tags (default: all)")
    context_parser.add_argument("--question", "-q", help="Retrieve context for a question")
    context_parser.add_argument("--roles", help="Comma-separated roles used with --question")

    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(message)s",
    )

    if args.command == "serve":
        serve(args.transport)
    elif args.command == "sync":
        sync(force=args.force)
    elif args.command == "index":
        index()
    elif args.command == "status":
        status()
    elif args.command == "clear":
        clear()
    elif args.command == "context":
        context(args.folders, args.question, args.roles)


if __name__ == "__main__":
    main()
