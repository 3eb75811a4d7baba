"""Classify time entries as work or break."""

import re
from typing import Optional

from .models import Phase, TimeEntry

BREAK_DESCRIPTION = "Pomodoro Break"
BREAK_TAG = "pomodoro-break"

# Tag like "15min": the entry carries a shorter sub-task of that many minutes.
# ASCII digits only.
TASK_TAG_PATTERN = re.compile(r"(\d+)min", re.ASCII)


def classify(entry: TimeEntry) -> Phase:
    if entry.description == BREAK_DESCRIPTION:
        return Phase.BREAK
    if BREAK_TAG in entry.tags:
        return Phase.BREAK
    return Phase.WORK


def task_minutes(entry: TimeEntry) -> Optional[int]:
    """Minutes from the first "<N>min" tag, or None when there is none."""
    for tag in entry.tags:
        m = TASK_TAG_PATTERN.fullmatch(tag)
        if m:
            return int(m.group(1))
    return None
