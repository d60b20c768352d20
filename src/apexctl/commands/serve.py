"""apex-mcp: serve the router over MCP (requires the apexctl[mcp] extra)."""

from __future__ import annotations

from pathlib import Path

import click

from apexctl.commands._base import ApexCommand


@click.command(
    cls=ApexCommand,
    examples="""\
  # Serve the project in the current directory over stdio (default)
  apex-mcp

  # Streamable HTTP on a custom host/port
  apex-mcp --transport streamable-http --host 0.0.0.0 --port 9000

  # Another project, explicit config
  apex-mcp --project ~/src/shop -c ~/src/shop/apex.toml""",
)
@click.option(
    "--transport",
    default="stdio",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol.",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.option(
    "--project",
    "project_root",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Project directory (default: located from CWD).",
)
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
def serve(
    transport: str,
    host: str,
    port: int,
    project_root: Path | None,
    config_path: str | None,
) -> None:
    """Start the apex MCP server."""
    from apexctl.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install apexctl[mcp]", err=True)
        raise SystemExit(1)

    server = create_server(
        project_root=project_root.expanduser().resolve() if project_root else None,
        config_path=config_path,
        host=host,
        port=port,
    )
    server.run(transport=transport)
