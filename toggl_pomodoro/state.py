"""
The shared state cell: one refresher writes, any number of connections read.
"""

import threading
from contextlib import contextmanager
from typing import Iterator

from .models import IDLE, SessionState


class RWLock:
    """Readers share the lock, a writer holds it alone.

    Waiting writers block new readers, so a steady stream of status queries
    cannot starve the refresher.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer_active or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True

    def release_write(self) -> None:
        with self._cond:
            self._writer_active = False
            self._cond.notify_all()

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class StateCell:
    """Holds the latest SessionState; a publish replaces it as a whole."""

    def __init__(self, initial: SessionState = IDLE):
        self._lock = RWLock()
        self._state = initial

    def get(self) -> SessionState:
        with self._lock.read_lock():
            return self._state

    def publish(self, state: SessionState) -> None:
        with self._lock.write_lock():
            self._state = state
