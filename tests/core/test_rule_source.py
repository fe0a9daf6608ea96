from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path

import pytest

from vmalert_replay_server.core.errors import RuleFileNotFound
from vmalert_replay_server.core.models import UploadedFile
from vmalert_replay_server.core.rule_source import (
    discard_upload,
    discard_upload_after,
    ensure_rule_file,
    resolve_rule_path,
    store_upload,
)


class _BytesSource:
    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buf.read(size)


def test_resolve_relative_reference_uses_rules_dir() -> None:
    assert resolve_rule_path("alerts.yml", "/app/rules") == "/app/rules/alerts.yml"
    assert resolve_rule_path("team/alerts.yml", "/app/rules/") == "/app/rules/team/alerts.yml"


def test_resolve_absolute_reference_unchanged() -> None:
    assert resolve_rule_path("/etc/vmalert/alerts.yml", "/app/rules") == "/etc/vmalert/alerts.yml"


@pytest.mark.asyncio
async def test_ensure_rule_file_missing(tmp_path: Path) -> None:
    with pytest.raises(RuleFileNotFound, match="nope.yml"):
        await ensure_rule_file(str(tmp_path / "nope.yml"))


@pytest.mark.asyncio
async def test_ensure_rule_file_present(rules_dir: Path) -> None:
    await ensure_rule_file(str(rules_dir / "alerts.yml"))


@pytest.mark.asyncio
async def test_store_upload_uses_generated_name(tmp_path: Path) -> None:
    data = b"groups: []\n" * 10_000

    uploaded = await store_upload(
        _BytesSource(data),
        original_name="../../etc/passwd",
        upload_dir=tmp_path,
    )

    stored = Path(uploaded.stored_path)
    assert stored.parent == tmp_path
    assert stored.name.startswith("rules-")
    assert stored.suffix == ".yaml"
    assert "passwd" not in stored.name
    assert stored.read_bytes() == data
    assert uploaded.size_bytes == len(data)
    assert uploaded.original_name == "../../etc/passwd"


@pytest.mark.asyncio
async def test_store_upload_names_are_unique(tmp_path: Path) -> None:
    a = await store_upload(_BytesSource(b"a"), original_name="a.yml", upload_dir=tmp_path)
    b = await store_upload(_BytesSource(b"b"), original_name="a.yml", upload_dir=tmp_path)
    assert a.stored_path != b.stored_path


@pytest.mark.asyncio
async def test_discard_upload_after_removes_on_error(tmp_path: Path) -> None:
    uploaded = await store_upload(_BytesSource(b"x"), original_name="a.yml", upload_dir=tmp_path)

    with pytest.raises(RuntimeError):
        async with discard_upload_after(uploaded):
            raise RuntimeError("boom")

    assert not Path(uploaded.stored_path).exists()


@pytest.mark.asyncio
async def test_discard_upload_tolerates_missing_file(tmp_path: Path, caplog) -> None:
    gone = UploadedFile(stored_path=str(tmp_path / "gone.yaml"), original_name="a.yml", size_bytes=1)

    with caplog.at_level(logging.WARNING):
        await discard_upload(gone)

    assert "already removed" in caplog.text


@pytest.mark.asyncio
async def test_discard_upload_after_none_is_noop() -> None:
    async with discard_upload_after(None) as uploaded:
        assert uploaded is None


class _BrokenSource:
    """Yields one chunk, then fails the way a dropped connection would."""

    def __init__(self, error: BaseException) -> None:
        self._error = error
        self._sent = False

    async def read(self, size: int = -1) -> bytes:
        if not self._sent:
            self._sent = True
            return b"groups:\n"
        raise self._error


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [OSError("connection reset"), asyncio.CancelledError()])
async def test_store_upload_removes_partial_file(tmp_path: Path, error: BaseException) -> None:
    with pytest.raises(type(error)):
        await store_upload(_BrokenSource(error), original_name="a.yml", upload_dir=tmp_path)

    assert list(tmp_path.iterdir()) == []
