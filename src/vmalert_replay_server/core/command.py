"""vmalert command construction."""

from __future__ import annotations

from .models import ResolvedCommand

# Output is captured, never shown on a terminal.
DISABLE_PROGRESS_FLAG = "-replay.disableProgressBar"


def build_replay_command(
    rule_path: str,
    start_time: str,
    end_time: str,
    *,
    datasource_url: str,
    remote_write_url: str,
    vmalert_path: str,
) -> ResolvedCommand:
    """Build the vmalert replay invocation.

    vmalert has no ``replay`` subcommand; replay mode is selected by the
    ``-replay.timeFrom``/``-replay.timeTo`` flags. Times are passed through
    untouched and must already be RFC 3339.
    """
    args = (
        f"-rule={rule_path}",
        f"-replay.timeFrom={start_time}",
        f"-replay.timeTo={end_time}",
        f"-datasource.url={datasource_url}",
        f"-remoteWrite.url={remote_write_url}",
        DISABLE_PROGRESS_FLAG,
    )
    return ResolvedCommand(binary_path=vmalert_path, args=args)
