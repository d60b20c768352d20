"""FastMCP server setup.

Optional extra, guarded behind try/except ImportError.
Transport: stdio default, SSE or streamable HTTP optional.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

__all__ = ["create_server", "mcp_available"]


def create_server(
    *,
    project_root: Path | None = None,
    config_path: str | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create and configure the MCP server.

    Locates the project from *project_root* / *config_path* (or CWD), builds
    the router the CLI would build, and registers the apex tools on it.

    *host* and *port* configure the bind address for HTTP transports
    (sse, streamable-http). They are ignored when using stdio.

    Raises RuntimeError if the mcp extra is not installed.
    """
    if not mcp_available or _FastMCP is None:
        msg = "MCP extra not installed. Install with: pip install apexctl[mcp]"
        raise RuntimeError(msg)

    from apexctl.commands._context import AppContext
    from apexctl.config.settings import ApexSettings
    from apexctl.mcp.tools import register_tools

    settings = ApexSettings.from_cli(project_root=project_root, config_path=config_path)
    app = AppContext(settings)

    server = _FastMCP("apexctl", host=host, port=port)
    register_tools(server, app.router)
    return server
