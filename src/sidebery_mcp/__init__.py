"""Sidebery snapshot MCP server: store, browse and prune Sidebery tab snapshots."""

__version__ = "0.1.0"
