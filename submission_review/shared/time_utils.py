from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_seconds(seconds: float) -> str:
    """Render a duration for log lines: "850ms", "2.40s", "3m 5s", "1h 2m 3s"."""
    if seconds < 0:
        return "0ms"

    if seconds < 1:
        return f"{int(seconds * 1000)}ms"

    if seconds < 60:
        return f"{seconds:.2f}s"

    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"


def format_stage_durations(durations: Mapping[str, float]) -> str:
    return ", ".join(f"{stage}={format_seconds(value)}" for stage, value in durations.items())
