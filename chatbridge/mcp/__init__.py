"""Tool registry, widgets and the MCP server."""
