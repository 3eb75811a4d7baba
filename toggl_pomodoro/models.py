"""
Plain data carried between the source, the reconstructor and the readers.

TimeEntry is what the time-tracking service hands us; SessionState is the
snapshot rebuilt from those entries on every refresh.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Phase(Enum):
    IDLE = "Idle"
    WORK = "Work"
    BREAK = "Break"

    def __str__(self) -> str:
        return self.value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as sent by Toggl ("Z" means UTC)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class TimeEntry:
    start: datetime
    stop: Optional[datetime]
    duration: int  # seconds, negative while the entry is running
    description: str = ""
    tags: Tuple[str, ...] = ()
    project_id: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self.duration < 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TimeEntry":
        stop = data.get("stop")
        project_id = data.get("project_id")
        if project_id is None:
            project_id = data.get("pid")
        return cls(
            start=parse_timestamp(data["start"]),
            stop=parse_timestamp(stop) if stop else None,
            duration=int(data["duration"]),
            description=data.get("description") or "",
            tags=tuple(data.get("tags") or ()),
            project_id=project_id,
        )


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.IDLE
    pomodoro_count: int = 0
    phase_finish_time: Optional[datetime] = None  # None only while idle
    task_finish_time: Optional[datetime] = None
    notify_count: int = 0
    task_notify_count: int = 0

    @property
    def is_idle(self) -> bool:
        return self.phase is Phase.IDLE

    def with_counters(self, notify_count: int, task_notify_count: int) -> "SessionState":
        return replace(self, notify_count=notify_count, task_notify_count=task_notify_count)


IDLE = SessionState()
