"""Exceptions raised by toggl_pomodoro."""


class PomodoroError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(PomodoroError):
    pass


class SourceError(PomodoroError):
    """Time entries could not be fetched or decoded."""


class NotifierError(PomodoroError):
    """A notification backend failed to deliver a message."""
