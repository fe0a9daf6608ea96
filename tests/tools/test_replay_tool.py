from __future__ import annotations

from pathlib import Path

import pytest

from vmalert_replay_server.prompts.registry import (
    explain_replay_result_messages,
    replay_and_explain_messages,
    rule_resource_uri,
)
from vmalert_replay_server.resources.registry import list_rule_files, read_rule_file
from vmalert_replay_server.server.replay_server import build_mcp_server
from vmalert_replay_server.tools.replay import replay_rules_impl

ECHO_ARGS = """
for arg in sys.argv[1:]:
    print(arg)
"""


@pytest.mark.asyncio
async def test_replay_rules_impl_normalizes_times(make_fake_vmalert, make_config) -> None:
    cfg = make_config(make_fake_vmalert(ECHO_ARGS))

    out = await replay_rules_impl(
        rule_file="alerts.yml",
        start_time="2025-12-30T08:00",
        end_time="2025-12-30T12:00:00+02:00",
        config=cfg,
    )

    assert out["status_code"] == 200
    args = out["output"].splitlines()
    assert "-replay.timeFrom=2025-12-30T08:00:00.000Z" in args
    assert "-replay.timeTo=2025-12-30T10:00:00.000Z" in args


@pytest.mark.asyncio
async def test_replay_rules_impl_rejects_inverted_window(make_config) -> None:
    out = await replay_rules_impl(
        rule_file="alerts.yml",
        start_time="2025-12-30T10:00:00Z",
        end_time="2025-12-30T08:00:00Z",
        config=make_config(),
    )

    assert out["status_code"] == 400
    assert out["error"].startswith("Invalid time window")


@pytest.mark.asyncio
async def test_replay_rules_impl_missing_fields(make_config) -> None:
    out = await replay_rules_impl(rule_file="", start_time="", end_time="x", config=make_config())

    assert out == {"status_code": 400, "error": "Missing required fields: ruleFile, startTime"}


@pytest.mark.asyncio
async def test_replay_rules_impl_failure(make_fake_vmalert, make_config) -> None:
    cfg = make_config(make_fake_vmalert("sys.stderr.write('cannot reach datasource')\nsys.exit(1)\n"))

    out = await replay_rules_impl(
        rule_file="alerts.yml",
        start_time="2025-12-30T08:00:00Z",
        end_time="2025-12-30T10:00:00Z",
        config=cfg,
    )

    assert out == {"status_code": 500, "error": "Failed to execute vmalert replay: cannot reach datasource"}


def test_list_rule_files(rules_dir: Path) -> None:
    (rules_dir / "team").mkdir()
    (rules_dir / "team" / "records.yaml").write_text("groups: []\n", encoding="utf-8")
    (rules_dir / "README.md").write_text("notes\n", encoding="utf-8")

    assert list_rule_files(str(rules_dir)) == ["alerts.yml", "team/records.yaml"]


def test_list_rule_files_missing_dir(tmp_path: Path) -> None:
    assert list_rule_files(str(tmp_path / "absent")) == []


def test_read_rule_file(rules_dir: Path) -> None:
    assert "HighErrorRate" in read_rule_file("alerts.yml", str(rules_dir))


def test_read_rule_file_rejects_escape(rules_dir: Path) -> None:
    with pytest.raises(ValueError, match="escapes"):
        read_rule_file("../secrets.yml", str(rules_dir))


def test_read_rule_file_rejects_non_yaml(rules_dir: Path) -> None:
    (rules_dir / "notes.txt").write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="YAML"):
        read_rule_file("notes.txt", str(rules_dir))


def test_build_mcp_server(make_config) -> None:
    mcp = build_mcp_server(make_config())
    assert mcp.name == "vmalert-replay"


@pytest.mark.asyncio
async def test_mcp_server_registers_prompts(make_config) -> None:
    prompts = await build_mcp_server(make_config()).list_prompts()

    assert {p.name for p in prompts} >= {"replay_and_explain", "explain_replay_result", "explain_replay_error"}


def test_replay_and_explain_embeds_relative_rule_file() -> None:
    messages = replay_and_explain_messages("team/alerts.yml", "2025-12-30T08:00:00Z", "2025-12-30T10:00:00Z")

    assert messages[-1]["content"][1] == {"type": "resource", "uri": "rules://team/alerts.yml"}


def test_replay_and_explain_skips_resource_for_absolute_path() -> None:
    messages = replay_and_explain_messages("/etc/vmalert/alerts.yml", "2025-12-30T08:00:00Z", "2025-12-30T10:00:00Z")

    assert rule_resource_uri("/etc/vmalert/alerts.yml") is None
    assert len(messages) == 2
    assert all(isinstance(m["content"], str) for m in messages)
    assert "- rule_file: /etc/vmalert/alerts.yml" in messages[1]["content"]


def test_explain_replay_result_includes_output() -> None:
    messages = explain_replay_result_messages("alert HighErrorRate fired at 08:05")

    assert "alert HighErrorRate fired at 08:05" in messages[-1]["content"]
