"""Error taxonomy for the replay pipeline.

Input errors are rejected before any subprocess is spawned (HTTP 400).
Execution errors carry whatever the evaluator managed to print (HTTP 500).
"""

from __future__ import annotations


class ReplayError(Exception):
    """Base class for all replay pipeline errors."""

    status_code = 500


class InputError(ReplayError):
    """The request cannot be executed as submitted."""

    status_code = 400


class ValidationError(InputError, ValueError):
    """Missing or malformed request fields."""


class UnsupportedFileType(InputError):
    """Uploaded rules file is not YAML."""


class RuleFileNotFound(InputError, FileNotFoundError):
    """Resolved rules file does not exist on disk."""


class ReplayExecutionError(ReplayError):
    """The evaluator ran (or tried to) and did not succeed."""

    def __init__(
        self,
        message: str,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
        exit_code: int | None = None,
        exit_signal: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.exit_signal = exit_signal


class ExecutionTimeout(ReplayExecutionError):
    """The evaluator exceeded the wall-clock limit and was terminated."""


class OutputTooLarge(ReplayExecutionError):
    """The evaluator produced more output than the capture limit."""


class SubprocessFailure(ReplayExecutionError):
    """Non-zero exit, signal termination, or failure to start."""
