"""
Escalating overrun reminders.

When a phase (or a sub-task) runs past its finish time the user is reminded
right away, again once the overrun exceeds `second_after` seconds, and a last
time after `third_after` seconds. The counter goes back to zero as soon as the
finish time is in the future again.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from .config import EscalationConfig, PomodoroConfig
from .models import Phase, SessionState
from .notifiers import Notifier
from .reconstruct import break_minutes

logger = logging.getLogger(__name__)


def should_escalate(count: int, overrun: float, thresholds: EscalationConfig) -> bool:
    """Whether reminder number count+1 is due after `overrun` seconds."""
    if count == 0:
        return True
    if count == 1:
        return overrun > thresholds.second_after
    if count == 2:
        return overrun > thresholds.third_after
    return False


def escalate(
    count: int, finish_time: datetime, now: datetime, thresholds: EscalationConfig
) -> Tuple[bool, int]:
    """Return (notify, new_count) for one reminder channel."""
    overrun = (now - finish_time).total_seconds()
    if overrun < 0:
        return False, 0
    if should_escalate(count, overrun, thresholds):
        return True, count + 1
    return False, count


def next_phase(state: SessionState, pomodoro: PomodoroConfig) -> Tuple[Phase, int]:
    """The phase that should follow the current one, with its length in minutes."""
    if state.phase is Phase.BREAK:
        return Phase.WORK, pomodoro.pomodoro_min
    return Phase.BREAK, break_minutes(state.pomodoro_count, pomodoro)


class EscalationController:
    def __init__(
        self,
        notifiers: Sequence[Notifier],
        pomodoro: PomodoroConfig,
        thresholds: EscalationConfig,
    ):
        self.notifiers = list(notifiers)
        self.pomodoro = pomodoro
        self.thresholds = thresholds

    def evaluate(
        self, state: SessionState, previous: Optional[SessionState], now: datetime
    ) -> SessionState:
        """Fire due reminders and return `state` with updated counters.

        `previous` is the last published snapshot; its counters are the ones
        being escalated.
        """
        if state.is_idle:
            return state.with_counters(0, 0)

        notify_count = previous.notify_count if previous else 0
        task_notify_count = previous.task_notify_count if previous else 0

        phase_due, notify_count = escalate(
            notify_count, state.phase_finish_time, now, self.thresholds
        )
        phase_overrun = now >= state.phase_finish_time

        task_due = False
        if phase_overrun or state.task_finish_time is None:
            # the phase reminder takes over from task reminders
            task_notify_count = 0
        else:
            task_due, task_notify_count = escalate(
                task_notify_count, state.task_finish_time, now, self.thresholds
            )

        if phase_due:
            phase, minutes = next_phase(state, self.pomodoro)
            logger.info("%s overrun, reminder %d: %s %d min", state.phase, notify_count, phase, minutes)
            self._dispatch(lambda n: n.notify(phase, minutes))
        if task_due:
            logger.info("Sub-task overrun, reminder %d", task_notify_count)
            self._dispatch(lambda n: n.notify_task())

        return state.with_counters(notify_count, task_notify_count)

    def _dispatch(self, send: Callable[[Notifier], None]) -> None:
        """Call every backend; a failing one is logged and skipped."""
        for notifier in self.notifiers:
            try:
                send(notifier)
            except Exception:
                logger.exception("%s notification failed", notifier.name)
