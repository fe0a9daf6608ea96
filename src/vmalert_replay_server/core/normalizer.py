"""Turn execution outcomes and errors into JSON responses."""

from __future__ import annotations

from .errors import ExecutionTimeout, InputError, OutputTooLarge, ReplayExecutionError
from .models import (
    ErrorBody,
    ExecutionFailure,
    ExecutionOutcome,
    ExecutionSuccess,
    FailureReason,
    NormalizedResult,
    ReplayOutput,
)

OPERATION = "vmalert replay"
SUCCESS_FALLBACK = "Replay completed successfully"


def _first_non_blank(*candidates: str | None) -> str | None:
    for text in candidates:
        if text and text.strip():
            return text.strip()
    return None


def failure_from_error(error: ReplayExecutionError) -> ExecutionFailure:
    """Convert a raised execution error into an outcome value."""
    if isinstance(error, ExecutionTimeout):
        reason = FailureReason.TIMEOUT
    elif isinstance(error, OutputTooLarge):
        reason = FailureReason.OUTPUT_TOO_LARGE
    elif error.exit_signal is not None:
        reason = FailureReason.SIGNAL
    elif error.exit_code is not None:
        reason = FailureReason.EXIT_CODE
    else:
        reason = FailureReason.SPAWN
    return ExecutionFailure(
        message=error.message,
        reason=reason,
        stdout=error.stdout,
        stderr=error.stderr,
        exit_code=error.exit_code,
        exit_signal=error.exit_signal,
    )


def normalize_outcome(outcome: ExecutionOutcome, *, operation: str = OPERATION) -> NormalizedResult:
    """Pick the most informative text for the response body.

    Success prefers stdout over stderr. Failure prefers stderr, since vmalert
    writes its diagnostics there, then stdout, then the failure message. An
    output cap failure reports only its message, never the truncated streams.
    """
    if isinstance(outcome, ExecutionSuccess):
        output = _first_non_blank(outcome.stdout, outcome.stderr) or SUCCESS_FALLBACK
        return NormalizedResult(200, ReplayOutput(output=output).model_dump())

    if outcome.reason is FailureReason.OUTPUT_TOO_LARGE:
        detail = outcome.message
    else:
        detail = _first_non_blank(outcome.stderr, outcome.stdout, outcome.message) or "Unknown error occurred"
    return NormalizedResult(500, ErrorBody(error=f"Failed to execute {operation}: {detail}").model_dump())


def normalize_rejection(error: InputError) -> NormalizedResult:
    return NormalizedResult(error.status_code, ErrorBody(error=str(error)).model_dump())


def normalize_unexpected(error: BaseException, *, operation: str = OPERATION) -> NormalizedResult:
    detail = str(error) or type(error).__name__
    return NormalizedResult(500, ErrorBody(error=f"Failed to execute {operation}: {detail}").model_dump())
