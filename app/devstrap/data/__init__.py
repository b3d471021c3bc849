"""Bundled data files (MCP server descriptors)."""
