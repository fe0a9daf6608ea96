"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from vmalert_replay_server.core.config import ReplayConfig
from vmalert_replay_server.core.intake import YAML_SUFFIXES

TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"


def _safe_resolve(path: str, base: Path) -> Path:
    """Resolve a path under the rules directory."""
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError("Path escapes rules dir")
    return p


def list_rule_files(rules_dir: str) -> list[str]:
    """Return YAML files under ``rules_dir``, relative and sorted."""
    base = Path(rules_dir).resolve()
    if not base.is_dir():
        return []
    return sorted(
        str(p.relative_to(base))
        for p in base.rglob("*")
        if p.is_file() and p.suffix.lower() in YAML_SUFFIXES
    )


def read_rule_file(name: str, rules_dir: str) -> str:
    """Read a YAML rules file from within ``rules_dir``."""
    base = Path(rules_dir).resolve()
    p = _safe_resolve(name, base)
    if p.suffix.lower() not in YAML_SUFFIXES:
        raise ValueError("Only YAML files (.yaml, .yml) are allowed")
    if not p.is_file():
        raise FileNotFoundError(f"Rule file not found: {p}")
    return p.read_text(encoding=TEXT_ENCODING, errors=TEXT_ERRORS)


def register_resources(mcp: FastMCP, config: ReplayConfig) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://vmalert-replay/help")
    def help_resource() -> str:
        """Describe the replay tool and available resources."""
        return (
            "Tools:\n"
            "- replay_rules(rule_file, start_time, end_time, datasource_url=None)\n"
            "\nResources:\n"
            "- app://vmalert-replay/help\n"
            "- app://vmalert-replay/rules\n"
            "- rules://{name} (YAML files inside the rules directory)\n"
            f"\nRules directory: {config.rules_dir}\n"
            f"vmalert binary: {config.vmalert_path}\n"
            f"Default datasource: {config.datasource_url}\n"
        )

    @mcp.resource("app://vmalert-replay/rules")
    async def rules_index() -> list[str]:
        """List rule files that can be passed to replay_rules by name."""
        return await asyncio.to_thread(list_rule_files, config.rules_dir)

    @mcp.resource("rules://{name}")
    async def rule_file(name: str) -> str:
        """Return the contents of a rules file."""
        return await asyncio.to_thread(read_rule_file, name, config.rules_dir)
