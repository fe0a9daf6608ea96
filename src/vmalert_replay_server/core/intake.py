"""Request intake validation.

Turns raw request data into a :class:`ReplayRequest` before anything touches
the filesystem or spawns a process.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import UnsupportedFileType, ValidationError
from .models import ReplayRequest

YAML_SUFFIXES = (".yaml", ".yml")
YAML_CONTENT_TYPES = frozenset(
    {
        "application/yaml",
        "application/x-yaml",
        "text/yaml",
        "text/x-yaml",
    }
)


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _require_fields(data: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, str]:
    """Return stripped values for ``keys``, raising once for all missing ones."""
    values: dict[str, str] = {}
    missing: list[str] = []
    for key in keys:
        value = _optional_str(data, key)
        if value is None:
            missing.append(key)
        else:
            values[key] = value
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return values


def parse_replay_request(body: Any) -> ReplayRequest:
    """Validate a JSON body for the path-reference variant."""
    if not isinstance(body, Mapping):
        raise ValidationError("Request body must be a JSON object")

    values = _require_fields(body, ("ruleFile", "startTime", "endTime"))
    return ReplayRequest(
        rule_reference=values["ruleFile"],
        start_time=values["startTime"],
        end_time=values["endTime"],
        datasource_url=_optional_str(body, "datasourceUrl"),
    )


def parse_upload_fields(fields: Mapping[str, Any], *, original_name: str | None) -> ReplayRequest:
    """Validate a multipart upload.

    ``original_name`` is the client's filename, or None when no file part was
    sent. It is informational only; the stored path replaces it later.
    """
    data = {**fields, "ruleFile": original_name}
    values = _require_fields(data, ("ruleFile", "startTime", "endTime"))
    return ReplayRequest(
        rule_reference=values["ruleFile"],
        start_time=values["startTime"],
        end_time=values["endTime"],
        datasource_url=_optional_str(fields, "datasourceUrl"),
    )


def is_yaml_upload(filename: str | None, content_type: str | None) -> bool:
    """Return True for a YAML filename or a YAML-family content type."""
    if filename and filename.lower().endswith(YAML_SUFFIXES):
        return True
    if content_type:
        media_type = content_type.split(";", 1)[0].strip().lower()
        return media_type in YAML_CONTENT_TYPES
    return False


def check_upload_type(filename: str | None, content_type: str | None) -> None:
    if not is_yaml_upload(filename, content_type):
        raise UnsupportedFileType("Only YAML files (.yaml, .yml) are allowed")
