from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from vmalert_replay_server.core.config import ReplayConfig, ensure_upload_dir

SAMPLE_RULES = """\
groups:
  - name: example
    rules:
      - alert: HighErrorRate
        expr: sum(rate(http_errors_total[5m])) > 1
        for: 1m
"""


@pytest.fixture
def make_fake_vmalert(tmp_path: Path) -> Callable[[str], Path]:
    """Write an executable Python script standing in for vmalert."""

    def _make(body: str) -> Path:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        path = bin_dir / f"vmalert-{len(list(bin_dir.iterdir()))}"
        path.write_text(
            f"#!{sys.executable}\nimport os, signal, sys, time\n" + textwrap.dedent(body),
            encoding="utf-8",
        )
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    d = tmp_path / "rules"
    d.mkdir()
    (d / "alerts.yml").write_text(SAMPLE_RULES, encoding="utf-8")
    return d


@pytest.fixture
def make_config(tmp_path: Path, rules_dir: Path) -> Callable[..., ReplayConfig]:
    def _make(vmalert_path: Path | str = "/nonexistent/vmalert", **overrides) -> ReplayConfig:
        cfg = ReplayConfig(
            vmalert_path=str(vmalert_path),
            rules_dir=str(rules_dir),
            upload_dir=str(tmp_path / "uploads"),
            static_dir=str(tmp_path / "dist"),
            **overrides,
        )
        ensure_upload_dir(cfg)
        return cfg

    return _make

