"""MCP tool implementations.

Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from vmalert_replay_server.core.config import ReplayConfig
from vmalert_replay_server.core.errors import ValidationError
from vmalert_replay_server.core.intake import parse_replay_request
from vmalert_replay_server.core.normalizer import normalize_rejection
from vmalert_replay_server.core.replay_service import replay
from vmalert_replay_server.core.time_window import normalize_window


async def replay_rules_impl(
    *,
    rule_file: str,
    start_time: str,
    end_time: str,
    datasource_url: str | None = None,
    config: ReplayConfig,
) -> dict[str, Any]:
    """Implementation for the `replay_rules` MCP tool.

    Unlike the HTTP endpoint, times may be any ISO-8601 form; they are
    converted to RFC 3339 UTC here, as the web form does in the browser.
    """
    try:
        request = parse_replay_request(
            {
                "ruleFile": rule_file,
                "startTime": start_time,
                "endTime": end_time,
                "datasourceUrl": datasource_url,
            }
        )
        start_rfc, end_rfc = normalize_window(request.start_time, request.end_time)
    except ValidationError as e:
        result = normalize_rejection(e)
    except ValueError as e:
        result = normalize_rejection(ValidationError(f"Invalid time window: {e}"))
    else:
        result = await replay(
            replace(request, start_time=start_rfc, end_time=end_rfc),
            config=config,
        )

    return {"status_code": result.status_code, **result.payload}
