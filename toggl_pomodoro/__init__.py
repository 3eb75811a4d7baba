"""Pomodoro phases reconstructed from a Toggl time-entry log."""

__version__ = "0.3.0"
