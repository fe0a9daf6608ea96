"""Core data models for the replay pipeline."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class ReplayRequest:
    """Validated replay parameters."""

    rule_reference: str  # path (absolute or relative to the rules dir) or upload name
    start_time: str
    end_time: str
    datasource_url: str | None = None  # falls back to the configured default


@dataclass(frozen=True, slots=True)
class ResolvedCommand:
    """Evaluator invocation as a discrete argument vector."""

    binary_path: str
    args: tuple[str, ...]

    @property
    def argv(self) -> list[str]:
        return [self.binary_path, *self.args]

    def display(self) -> str:
        """Shell-quoted form for logs only."""
        return shlex.join(self.argv)


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """A rules file persisted to the upload directory for one request."""

    stored_path: str
    original_name: str
    size_bytes: int


class FailureReason(str, Enum):
    """Why an evaluator run did not succeed."""

    EXIT_CODE = "exit_code"
    SIGNAL = "signal"
    TIMEOUT = "timeout"
    OUTPUT_TOO_LARGE = "output_too_large"
    SPAWN = "spawn"


@dataclass(frozen=True, slots=True)
class ExecutionSuccess:
    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class ExecutionFailure:
    message: str
    reason: FailureReason
    stdout: str | None = None
    stderr: str | None = None
    exit_code: int | None = None
    exit_signal: str | None = None  # e.g. "SIGKILL"


ExecutionOutcome = ExecutionSuccess | ExecutionFailure


@dataclass(frozen=True, slots=True)
class NormalizedResult:
    """HTTP status plus JSON body produced at the end of the pipeline."""

    status_code: int
    payload: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class ReplayOutput(BaseModel):
    output: str = Field(description="Evaluator output, trimmed.")


class ErrorBody(BaseModel):
    error: str = Field(description="Human-readable failure reason.")


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: datetime
