"""Replay orchestration.

This module is the main integration point: it resolves the rules file, builds
the vmalert command, runs it and normalizes the outcome into a response.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from .command import build_replay_command
from .config import ReplayConfig
from .errors import InputError, ReplayExecutionError, ValidationError
from .executor import execute_command
from .intake import check_upload_type, parse_upload_fields
from .models import ExecutionOutcome, NormalizedResult, ReplayRequest
from .normalizer import failure_from_error, normalize_outcome, normalize_rejection
from .rule_source import discard_upload_after, ensure_rule_file, resolve_rule_path, store_upload

logger = logging.getLogger(__name__)


class UploadSource(Protocol):
    """The parts of an uploaded file part the pipeline relies on."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


async def run_replay(
    request: ReplayRequest,
    *,
    config: ReplayConfig,
    rule_path: str | None = None,
) -> ExecutionOutcome:
    """Execute one replay.

    Input problems (``RuleFileNotFound``) propagate; evaluator failures are
    returned as an :class:`ExecutionFailure`.
    """
    if rule_path is None:
        rule_path = resolve_rule_path(request.rule_reference, config.rules_dir)
    logger.info("Rule file: %s -> %s", request.rule_reference, rule_path)
    await ensure_rule_file(rule_path)

    command = build_replay_command(
        rule_path,
        request.start_time,
        request.end_time,
        datasource_url=request.datasource_url or config.datasource_url,
        remote_write_url=config.remote_write_url,
        vmalert_path=config.vmalert_path,
    )
    try:
        return await execute_command(
            command,
            timeout_s=config.timeout_s,
            max_output_bytes=config.max_output_bytes,
        )
    except ReplayExecutionError as e:
        logger.error(
            "Error executing vmalert replay: %s (exit_code=%s, signal=%s)",
            e.message,
            e.exit_code,
            e.exit_signal,
        )
        logger.debug("Failure stderr: %s", e.stderr)
        logger.debug("Failure stdout: %s", e.stdout)
        return failure_from_error(e)


async def replay(request: ReplayRequest, *, config: ReplayConfig) -> NormalizedResult:
    """Path-reference variant: rules file named by the caller."""
    try:
        outcome = await run_replay(request, config=config)
    except InputError as e:
        return normalize_rejection(e)
    return normalize_outcome(outcome)


async def replay_upload(
    fields: Mapping[str, Any],
    upload: UploadSource | None,
    *,
    config: ReplayConfig,
) -> NormalizedResult:
    """Upload variant: rules file sent with the request.

    The stored copy is deleted before this coroutine returns, whatever the
    outcome.
    """
    try:
        request = parse_upload_fields(fields, original_name=upload.filename if upload else None)
        if upload is None:
            raise ValidationError("Missing required fields: ruleFile")
        check_upload_type(upload.filename, upload.content_type)
        uploaded = await store_upload(
            upload,
            original_name=request.rule_reference,
            upload_dir=config.upload_dir,
        )
    except InputError as e:
        return normalize_rejection(e)

    async with discard_upload_after(uploaded):
        try:
            if uploaded.size_bytes == 0:
                raise ValidationError("Uploaded rule file is empty")
            outcome = await run_replay(request, config=config, rule_path=uploaded.stored_path)
        except InputError as e:
            return normalize_rejection(e)

    return normalize_outcome(outcome)
