"""Rate limit tracking for gha-guard.

Reads the quota headers the remote API attaches to each response. The
result is informational: it is handed back to the call site, which decides
whether to slow down. Nothing here throttles.
"""

from collections.abc import Mapping
from datetime import datetime, timezone

from ..types import RateLimitSnapshot

REMAINING_HEADER = "x-ratelimit-remaining"
LIMIT_HEADER = "x-ratelimit-limit"
RESET_HEADER = "x-ratelimit-reset"


def _parse_int(value: str) -> int | None:
    # int() also takes "+5", "4_892" and padding; headers are bare digits
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def parse_rate_limit_headers(headers: Mapping[str, str | None]) -> RateLimitSnapshot | None:
    """Build a snapshot from response headers.

    Args:
        headers: Response headers. Names are matched case-insensitively.

    Returns:
        The snapshot, or None when any of remaining/limit/reset is absent,
        empty or not an integer. Partial data is treated as no data.
    """
    lowered = {name.lower(): value for name, value in headers.items()}

    raw = [lowered.get(name) for name in (REMAINING_HEADER, LIMIT_HEADER, RESET_HEADER)]
    if not all(raw):
        return None

    remaining, limit, reset = (_parse_int(value) for value in raw)
    if remaining is None or limit is None or reset is None:
        return None

    return RateLimitSnapshot(
        remaining=remaining,
        limit=limit,
        reset_at=datetime.fromtimestamp(reset, tz=timezone.utc),
    )
