"""Human-readable rendering of workflow run fields."""

from datetime import datetime, timezone

_STATUS_ICONS = {
    "success": "✓",
    "failure": "✗",
    "cancelled": "⊘",
    "skipped": "⊖",
}


def _to_datetime(value: datetime | str) -> datetime:
    if isinstance(value, str):
        # Python < 3.11 does not accept a trailing "Z"
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_duration(
    started_at: datetime | str,
    completed_at: datetime | str | None = None,
) -> str:
    """Render elapsed time as ``42s``, ``3m 5s`` or ``2h 4m``.

    A run that has not completed is measured up to now.
    """
    start = _to_datetime(started_at)
    end = _to_datetime(completed_at) if completed_at else datetime.now(timezone.utc)
    seconds = int((end - start).total_seconds())

    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def status_icon(conclusion: str | None) -> str:
    """Icon for a run or job conclusion; None means still in progress."""
    if conclusion is None:
        return "●"
    return _STATUS_ICONS.get(conclusion, "?")
