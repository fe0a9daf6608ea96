"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

import os
from typing import Any

from mcp.server.fastmcp import FastMCP

_SYSTEM_REVIEWER = (
    "You are an observability engineer reviewing VictoriaMetrics alerting rules. "
    "Explain replay results precisely. Do not invent alerts or series that are "
    "not in the tool output."
)


def rule_resource_uri(rule_file: str) -> str | None:
    """URI of the `rules://` resource for ``rule_file``; None when it is an absolute path."""
    if os.path.isabs(rule_file):
        return None
    return f"rules://{rule_file}"


def replay_and_explain_messages(
    rule_file: str,
    start_time: str,
    end_time: str,
    datasource_url: str | None = None,
) -> list[dict[str, Any]]:
    call_lines = [
        f"- rule_file: {rule_file}",
        f"- start_time: {start_time}",
        f"- end_time: {end_time}",
    ]
    if datasource_url:
        call_lines.append(f"- datasource_url: {datasource_url}")
    call_block = "\n".join(call_lines)
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": _SYSTEM_REVIEWER},
        {
            "role": "user",
            "content": (
                "Run replay_rules with:\n"
                f"{call_block}\n\n"
                "Then report:\n"
                "1) Which groups and rules were evaluated\n"
                "2) Which alerts would have fired, and when (quote output lines)\n"
                "3) Rules that produced errors or no data, with the likely cause\n"
                "4) Suggested rule changes, if any\n"
                "If the tool returns an error, explain it and stop.\n"
            ),
        },
    ]
    # Absolute paths are outside the rules dir, so there is no resource to attach.
    uri = rule_resource_uri(rule_file)
    if uri is not None:
        messages.append(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "The rules file being replayed:"},
                    {"type": "resource", "uri": uri},
                ],
            }
        )
    return messages


def explain_replay_result_messages(output: str) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": _SYSTEM_REVIEWER},
        {
            "role": "user",
            "content": (
                "Here is the output of a vmalert replay:\n\n"
                f"{output}\n\n"
                "Summarize which rules were evaluated, which alerts would have fired "
                "and when, and anything that looks like a misconfigured rule."
            ),
        },
    ]


def explain_replay_error_messages(error: str) -> list[dict[str, Any]]:
    return [
        {
            "role": "system",
            "content": (
                "You diagnose vmalert failures. Be concise; distinguish rule syntax problems "
                "from datasource connectivity and invalid time ranges."
            ),
        },
        {
            "role": "user",
            "content": (
                "A vmalert replay failed with:\n\n"
                f"{error}\n\n"
                "Explain the most likely cause and the fix in 2-4 bullets."
            ),
        },
    ]


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def replay_and_explain(
        rule_file: str,
        start_time: str,
        end_time: str,
        datasource_url: str | None = None,
    ) -> list[dict[str, Any]]:
        """Build a prompt that runs a replay and explains what fired."""
        return replay_and_explain_messages(rule_file, start_time, end_time, datasource_url)

    @mcp.prompt()
    def explain_replay_result(output: str) -> list[dict[str, Any]]:
        """Build a prompt that explains the output of a successful replay."""
        return explain_replay_result_messages(output)

    @mcp.prompt()
    def explain_replay_error(error: str) -> list[dict[str, Any]]:
        """Build a prompt that diagnoses a failed replay."""
        return explain_replay_error_messages(error)
