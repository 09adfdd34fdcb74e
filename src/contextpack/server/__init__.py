"""MCP server exposing the knowledge base."""

from contextpack.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
