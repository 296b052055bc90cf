"""MCP server exposing the inliner as a tool."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from .config import InlineConfig, base_url_for, source_url
from .dispatcher import inline_html
from .errors import FetchError
from .loader import ResourceLoader

logger = logging.getLogger("html_inliner.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="html-inliner")


@mcp.tool()
def inline(
    source: str,
) -> str:
    """Return a self-contained copy of the HTML page at a file path or URL."""

    url = source_url(source)
    config = InlineConfig(base_url=base_url_for(url))
    loader = ResourceLoader(
        config.base_url,
        timeout=config.timeout,
        retries=config.retries,
        user_agent=config.user_agent,
    )
    try:
        html = loader.load_string(url)
    except FetchError as exc:
        raise RuntimeError(f"Failed to read {source}: {exc}") from exc
    return inline_html(html, config, loader)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
