from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from dataclasses import replace

from vmalert_replay_server.core.config import resolve_replay_config
from vmalert_replay_server.core.models import ReplayRequest
from vmalert_replay_server.core.replay_service import replay
from vmalert_replay_server.core.time_window import normalize_window


def _positive_float(s: str) -> float:
    try:
        value = float(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError("must be a number") from e
    if value <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return value


def main(argv: Sequence[str] | None = None) -> None:
    """Run a single replay from the command line (no server)."""
    p = argparse.ArgumentParser(description="Replay vmalert rules against a historical time range.")
    p.add_argument("rule_file", help="Rules file (relative names resolve inside the rules dir)")
    p.add_argument("--start", required=True, help="ISO8601 start time (assumes UTC if tz missing)")
    p.add_argument("--end", required=True, help="ISO8601 end time (assumes UTC if tz missing)")
    p.add_argument("--datasource-url", default=None, help="Default: $DATASOURCE_URL or http://localhost:8428")
    p.add_argument("--vmalert-path", default=None, help="Default: $VMALERT_PATH or ./vmalert-prod")
    p.add_argument("--rules-dir", default=None, help="Default: $VMALERT_RULES_DIR or /app/rules")
    p.add_argument("--timeout", type=_positive_float, default=None, help="Seconds before vmalert is killed")

    args = p.parse_args(argv)

    try:
        config = resolve_replay_config()
        if args.vmalert_path:
            config = replace(config, vmalert_path=args.vmalert_path)
        if args.rules_dir:
            config = replace(config, rules_dir=args.rules_dir)
        if args.timeout is not None:
            config = replace(config, timeout_s=args.timeout)
        start, end = normalize_window(args.start, args.end)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    request = ReplayRequest(
        rule_reference=args.rule_file,
        start_time=start,
        end_time=end,
        datasource_url=args.datasource_url,
    )
    result = asyncio.run(replay(request, config=config))

    if result.ok:
        print(result.payload["output"])
        return
    print(result.payload["error"], file=sys.stderr)
    raise SystemExit(2 if result.status_code < 500 else 1)


if __name__ == "__main__":
    main()
