"""Rule file resolution and upload lifecycle.

A replay reads its rules either from a path the caller names (relative paths
live in the mounted rules directory) or from a file uploaded with the request.
Uploaded files belong to the request and are removed when it finishes.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os

from .errors import RuleFileNotFound
from .models import UploadedFile

logger = logging.getLogger(__name__)

UPLOAD_SUFFIX = ".yaml"
CHUNK_SIZE = 64 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


def resolve_rule_path(reference: str, rules_dir: str) -> str:
    """Map a rule reference to the path the evaluator should read.

    Absolute references are used as-is; anything else is taken to be inside
    ``rules_dir``.
    """
    if os.path.isabs(reference):
        return reference
    return f"{rules_dir.rstrip('/')}/{reference}"


async def ensure_rule_file(path: str) -> None:
    if not await aiofiles.os.path.exists(path):
        raise RuleFileNotFound(f"Rule file not found: {path}")


def _upload_name() -> str:
    # The client's filename never becomes part of the path.
    return f"rules-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{UPLOAD_SUFFIX}"


async def store_upload(
    source: AsyncReadable,
    *,
    original_name: str,
    upload_dir: str | Path,
) -> UploadedFile:
    """Stream ``source`` into a uniquely named file under ``upload_dir``.

    A partly written file is removed before the error propagates, including
    on cancellation.
    """
    stored_path = Path(upload_dir) / _upload_name()
    size = 0
    try:
        async with aiofiles.open(stored_path, "wb") as out:
            while True:
                chunk = await source.read(CHUNK_SIZE)
                if not chunk:
                    break
                await out.write(chunk)
                size += len(chunk)
    except BaseException:
        await discard_upload(
            UploadedFile(stored_path=str(stored_path), original_name=original_name, size_bytes=size)
        )
        raise

    logger.debug("Stored upload %r at %s (%d bytes)", original_name, stored_path, size)
    return UploadedFile(stored_path=str(stored_path), original_name=original_name, size_bytes=size)


async def discard_upload(uploaded: UploadedFile) -> None:
    """Delete a stored upload; failures are logged, never raised."""
    try:
        await aiofiles.os.remove(uploaded.stored_path)
    except FileNotFoundError:
        logger.warning("Upload already removed: %s", uploaded.stored_path)
    except OSError as e:
        logger.warning("Failed to remove upload %s: %s", uploaded.stored_path, e)
    else:
        logger.debug("Removed upload %s", uploaded.stored_path)


@asynccontextmanager
async def discard_upload_after(uploaded: UploadedFile | None) -> AsyncIterator[UploadedFile | None]:
    """Scope an upload to a block; it is deleted once the block exits."""
    try:
        yield uploaded
    finally:
        if uploaded is not None:
            await discard_upload(uploaded)
