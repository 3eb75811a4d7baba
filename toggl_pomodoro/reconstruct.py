"""
Rebuild the pomodoro state from the time-entry log.

Nothing is remembered between refreshes: the current phase, the pomodoro
count and the finish times all come out of the entry history every time.

The newest entry decides the phase. Older entries are walked backwards to
find the streak it belongs to: consecutive entries separated by at most
STREAK_GAP_SECONDS, cut short by a break at least as long as a long break.
Work and break runs in the streak are merged into buckets, and every
work/break pair of buckets is one completed pomodoro.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from .config import STREAK_GAP_SECONDS, PomodoroConfig
from .models import IDLE, Phase, SessionState, TimeEntry
from .phases import classify, task_minutes

logger = logging.getLogger(__name__)

Bucket = Tuple[Phase, int]


def _same_task(a: TimeEntry, b: TimeEntry) -> bool:
    return (
        a.description == b.description
        and a.project_id == b.project_id
        and set(a.tags) == set(b.tags)
    )


def extra_task_duration(latest: TimeEntry, earlier: Sequence[TimeEntry]) -> int:
    """Seconds already spent on latest's task in the entries just before it.

    Breaks in between are skipped; the first different task stops the count.
    This walk does not look at the streak gap.
    """
    total = 0
    for x in reversed(earlier):
        if classify(x) is Phase.BREAK:
            continue
        if not _same_task(latest, x):
            break
        total += x.duration
    return total


def streak_history(
    latest: TimeEntry, earlier: Sequence[TimeEntry], long_break_min: int
) -> List[Bucket]:
    """Merged (phase, seconds) buckets of the streak, most recent first."""
    history: List[Bucket] = []
    last_start = latest.start
    for x in reversed(earlier):
        if x.stop is None:
            break
        if (last_start - x.stop).total_seconds() > STREAK_GAP_SECONDS:
            break

        phase = classify(x)
        if history and history[-1][0] is phase:
            history[-1] = (phase, history[-1][1] + x.duration)
        else:
            history.append((phase, x.duration))

        if history[-1][0] is Phase.BREAK and history[-1][1] >= long_break_min * 60:
            # a long break ends the previous streak
            history.pop()
            break

        last_start = x.start
    return history


def break_minutes(pomodoro_count: int, pomodoro: PomodoroConfig) -> int:
    if pomodoro_count >= pomodoro.long_break_after:
        return pomodoro.long_break_min
    return pomodoro.short_break_min


def phase_minutes(phase: Phase, pomodoro_count: int, pomodoro: PomodoroConfig) -> int:
    if phase is Phase.BREAK:
        return break_minutes(pomodoro_count, pomodoro)
    return pomodoro.pomodoro_min


def _task_finish_time(latest: TimeEntry, extra: int) -> Optional[datetime]:
    try:
        minutes = task_minutes(latest)
        if minutes is None:
            return None
        return latest.start + timedelta(seconds=minutes * 60 - extra)
    except (ValueError, OverflowError) as e:
        logger.warning("Ignoring sub-task tag on %r: %s", latest.description, e)
        return None


def reconstruct(entries: Sequence[TimeEntry], pomodoro: PomodoroConfig) -> SessionState:
    """Derive the current SessionState from entries ordered oldest first.

    The returned state always has zeroed notification counters; carrying them
    over is the escalation controller's job.
    """
    if not entries or not entries[-1].is_running:
        return IDLE

    latest = entries[-1]
    earlier = entries[:-1]
    phase = classify(latest)

    extra = extra_task_duration(latest, earlier) if phase is Phase.WORK else 0
    history = streak_history(latest, earlier, pomodoro.long_break_min)
    count = len(history) // 2 + 1

    duration = phase_minutes(phase, count, pomodoro) * 60
    if history and history[0][0] is phase:
        # the same phase was already running before a short interruption
        duration -= history[0][1]

    return SessionState(
        phase=phase,
        pomodoro_count=count,
        phase_finish_time=latest.start + timedelta(seconds=duration),
        task_finish_time=_task_finish_time(latest, extra),
    )
