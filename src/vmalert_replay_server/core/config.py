"""Process-wide configuration.

Built once at startup from the environment and passed explicitly into the
pipeline; nothing below the entry points reads ``os.environ``.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_VMALERT_PATH = "./vmalert-prod"
DEFAULT_DATASOURCE_URL = "http://localhost:8428"
DEFAULT_REMOTE_WRITE_URL = "http://localhost:8428/api/v1/write"
DEFAULT_RULES_DIR = "/app/rules"
DEFAULT_TIMEOUT_S = 300.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024


def _default_upload_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "vmalert-replay-uploads")


@dataclass(frozen=True, slots=True)
class ReplayConfig:
    vmalert_path: str = DEFAULT_VMALERT_PATH
    datasource_url: str = DEFAULT_DATASOURCE_URL
    # Required by vmalert's replay mode even though nothing is written there.
    remote_write_url: str = DEFAULT_REMOTE_WRITE_URL
    rules_dir: str = DEFAULT_RULES_DIR
    upload_dir: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    static_dir: str = "dist"
    host: str = "0.0.0.0"
    port: int = 8080

    def __post_init__(self) -> None:
        if not self.upload_dir:
            object.__setattr__(self, "upload_dir", _default_upload_dir())


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_number(name: str, kind: type[int] | type[float]) -> int | float | None:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def resolve_replay_config(cfg: ReplayConfig | None = None) -> ReplayConfig:
    """Return config with environment overrides applied."""
    if cfg is None:
        cfg = ReplayConfig()

    overrides: dict[str, object] = {}
    for field_name, env_name in (
        ("vmalert_path", "VMALERT_PATH"),
        ("datasource_url", "DATASOURCE_URL"),
        ("remote_write_url", "REMOTE_WRITE_URL"),
        ("rules_dir", "VMALERT_RULES_DIR"),
        ("upload_dir", "VMALERT_UPLOAD_DIR"),
        ("static_dir", "VMALERT_STATIC_DIR"),
        ("host", "HOST"),
    ):
        value = _env_str(env_name)
        if value is not None:
            overrides[field_name] = value

    timeout_s = _env_number("VMALERT_REPLAY_TIMEOUT_S", float)
    if timeout_s is not None:
        overrides["timeout_s"] = timeout_s
    max_output = _env_number("VMALERT_REPLAY_MAX_OUTPUT_BYTES", int)
    if max_output is not None:
        overrides["max_output_bytes"] = max_output
    port = _env_number("PORT", int)
    if port is not None:
        overrides["port"] = port

    if not overrides:
        return cfg
    return replace(cfg, **overrides)


def ensure_upload_dir(cfg: ReplayConfig) -> Path:
    """Create the upload directory if needed. Safe to call repeatedly."""
    path = Path(cfg.upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path
