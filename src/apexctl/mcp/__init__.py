"""MCP adapter: exposes the router to MCP clients (requires apexctl[mcp])."""
