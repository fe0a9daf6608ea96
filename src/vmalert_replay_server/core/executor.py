"""Subprocess execution with a wall-clock limit and bounded capture.

The command is always launched from an argument vector; no shell is involved.
stdout and stderr are read concurrently so neither pipe can fill up and stall
the child.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import cast

from .config import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_S
from .errors import ExecutionTimeout, OutputTooLarge, SubprocessFailure
from .models import ExecutionSuccess, ResolvedCommand

logger = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024
KILL_GRACE_S = 5.0


class _CaptureLimitExceeded(Exception):
    pass


class _OutputBudget:
    """Combined byte budget shared by the stdout and stderr readers."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    def take(self, n: int) -> None:
        self.used += n
        if self.used > self.limit:
            raise _CaptureLimitExceeded


async def _drain(stream: asyncio.StreamReader, sink: bytearray, budget: _OutputBudget) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            return
        budget.take(len(chunk))
        sink.extend(chunk)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """SIGTERM, then SIGKILL if the child ignores it."""
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), KILL_GRACE_S)
    except TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


def _decode(data: bytearray) -> str:
    return data.decode("utf-8", errors="replace")


def _signal_name(returncode: int | None) -> str | None:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"signal {-returncode}"


async def execute_command(
    command: ResolvedCommand,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> ExecutionSuccess:
    """Run ``command`` and return its captured output.

    Raises
    ------
    ExecutionTimeout
        The child ran longer than ``timeout_s`` and was terminated.
    OutputTooLarge
        stdout + stderr exceeded ``max_output_bytes``; the child was killed.
    SubprocessFailure
        The binary could not be started, exited non-zero, or died on a signal.
    """
    logger.info("Executing: %s", command.display())

    try:
        proc = await asyncio.create_subprocess_exec(
            *command.argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise SubprocessFailure(f"Failed to start {command.binary_path}: {e}") from e

    out_pipe = cast(asyncio.StreamReader, proc.stdout)
    err_pipe = cast(asyncio.StreamReader, proc.stderr)
    stdout = bytearray()
    stderr = bytearray()
    budget = _OutputBudget(max_output_bytes)
    readers = [
        asyncio.ensure_future(_drain(out_pipe, stdout, budget)),
        asyncio.ensure_future(_drain(err_pipe, stderr, budget)),
    ]

    async def _communicate() -> int:
        await asyncio.gather(*readers)
        return await proc.wait()

    try:
        returncode = await asyncio.wait_for(_communicate(), timeout_s)
    except TimeoutError as e:
        await _terminate(proc)
        logger.warning("Command timed out after %ss (pid=%s)", timeout_s, proc.pid)
        raise ExecutionTimeout(
            f"Command timed out after {timeout_s:g}s: {command.display()}",
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            exit_code=proc.returncode,
            exit_signal=_signal_name(proc.returncode),
        ) from e
    except _CaptureLimitExceeded as e:
        await _terminate(proc)
        logger.warning("Command output exceeded %d bytes (pid=%s)", max_output_bytes, proc.pid)
        raise OutputTooLarge(
            f"Command output exceeded {max_output_bytes} bytes: {command.display()}",
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            exit_code=proc.returncode,
            exit_signal=_signal_name(proc.returncode),
        ) from e
    finally:
        for task in readers:
            if not task.done():
                task.cancel()

    out = _decode(stdout)
    err = _decode(stderr)
    logger.debug("Command output (stdout): %s", out)
    logger.debug("Command output (stderr): %s", err)

    sig = _signal_name(returncode)
    if sig is not None:
        raise SubprocessFailure(
            f"Command terminated by {sig}: {command.display()}",
            stdout=out,
            stderr=err,
            exit_code=returncode,
            exit_signal=sig,
        )
    if returncode != 0:
        raise SubprocessFailure(
            f"Command failed with exit code {returncode}: {command.display()}",
            stdout=out,
            stderr=err,
            exit_code=returncode,
        )

    return ExecutionSuccess(stdout=out, stderr=err)
