"""Server entrypoint.

Two transports share one configuration and one replay pipeline:
- ``stdio``: MCP server exposing the ``replay_rules`` tool, resources and prompts
- ``http``: the Starlette app behind uvicorn (web UI backend)

Run locally:
    python -m vmalert_replay_server --transport http
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

import uvicorn
from mcp.server.fastmcp import FastMCP

from vmalert_replay_server.core.config import ReplayConfig, ensure_upload_dir, resolve_replay_config
from vmalert_replay_server.prompts.registry import register_prompts
from vmalert_replay_server.resources.registry import register_resources
from vmalert_replay_server.server.http_app import create_app
from vmalert_replay_server.tools.replay import replay_rules_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("VMALERT_REPLAY_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_mcp_server(config: ReplayConfig) -> FastMCP:
    mcp = FastMCP("vmalert-replay", json_response=True)

    register_resources(mcp, config)
    register_prompts(mcp)

    @mcp.tool()
    async def replay_rules(
        rule_file: str,
        start_time: str,
        end_time: str,
        datasource_url: str | None = None,
    ) -> dict[str, Any]:
        """Replay vmalert rules against a historical time range (dry run).

        Parameters
        ----------
        rule_file:
            Rules file path. Relative names resolve inside the rules directory
            (see app://vmalert-replay/rules); absolute paths are used as-is.
        start_time/end_time:
            ISO-8601 datetimes (e.g., 2025-12-31T20:00:00Z). If timezone is omitted, UTC is assumed.
        datasource_url:
            VictoriaMetrics/Prometheus-compatible query URL. Defaults to the server setting.

        Returns
        -------
        dict:
            {"status_code": int, "output": str} on success,
            {"status_code": int, "error": str} otherwise.
        """
        return await replay_rules_impl(
            rule_file=rule_file,
            start_time=start_time,
            end_time=end_time,
            datasource_url=datasource_url,
            config=config,
        )

    return mcp


def main(argv: Sequence[str] | None = None) -> None:
    """Start the server on the chosen transport."""
    p = argparse.ArgumentParser(description="vmalert replay backend (HTTP or MCP over stdio).")
    p.add_argument("--transport", choices=["http", "stdio"], default="http")
    p.add_argument("--host", default=None, help="HTTP bind address (default: $HOST or 0.0.0.0)")
    p.add_argument("--port", type=int, default=None, help="HTTP port (default: $PORT or 8080)")
    args = p.parse_args(argv)

    _configure_logging()
    config = resolve_replay_config()
    if args.host is not None:
        config = replace(config, host=args.host)
    if args.port is not None:
        config = replace(config, port=args.port)
    ensure_upload_dir(config)

    LOGGER.info("vmalert path: %s", config.vmalert_path)
    LOGGER.info("rules dir: %s, upload dir: %s", config.rules_dir, config.upload_dir)

    if args.transport == "stdio":
        LOGGER.debug("Starting MCP server (transport=stdio)")
        build_mcp_server(config).run(transport="stdio")
        return

    LOGGER.info("vmalert replay server running on %s:%s", config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
