"""Render the one-line status shown in the status bar."""

from datetime import datetime
from typing import Dict, Tuple

from .config import FormatConfig
from .models import SessionState


def remaining(finish_time: datetime, now: datetime) -> Tuple[str, str, bool]:
    """(remaining_time, remaining_time_abs, overrun) until finish_time.

    Minutes are truncated toward zero, so the last minute of an overrun
    shows as "00:SS" rather than "-1:SS".
    """
    secs = int((finish_time - now).total_seconds())
    mins = abs(secs) // 60
    signed_mins = -mins if secs < 0 else mins
    rest = abs(secs) % 60
    return f"{signed_mins:02}:{rest:02}", f"{mins:02}:{rest:02}", secs < 0


def _context(state: SessionState, finish_time: datetime, now: datetime, task: str = "") -> Tuple[Dict, bool]:
    remaining_time, remaining_time_abs, overrun = remaining(finish_time, now)
    context = {
        "count": state.pomodoro_count,
        "remaining_time": remaining_time,
        "remaining_time_abs": remaining_time_abs,
        "task": task,
    }
    return context, overrun


def render_status(state: SessionState, formats: FormatConfig, now: datetime) -> str:
    if state.is_idle:
        return formats.idle

    phase = state.phase.value.lower()

    task = ""
    if state.task_finish_time is not None:
        context, overrun = _context(state, state.task_finish_time, now)
        key = f"task_over{phase}" if overrun else f"task_{phase}"
        task = formats.template(key).format(**context)

    context, overrun = _context(state, state.phase_finish_time, now, task)
    key = f"over{phase}" if overrun else phase
    return formats.template(key).format(**context)
