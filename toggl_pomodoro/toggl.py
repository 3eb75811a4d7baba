"""Fetch recent time entries from the Toggl Track API."""

import logging
from typing import List, Optional

import requests

from .config import FETCH_TIMEOUT, TOGGL_URL
from .errors import SourceError
from .models import TimeEntry

logger = logging.getLogger(__name__)


class TogglSource:
    """Time-entry source backed by the Toggl v9 REST API.

    fetch_entries() always returns entries oldest first, so the last element
    is the most recent (possibly still running) entry.
    """

    def __init__(
        self,
        token: str,
        session: Optional[requests.Session] = None,
        url: str = TOGGL_URL,
        timeout: float = FETCH_TIMEOUT,
    ):
        self.token = token
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_entries(self) -> List[TimeEntry]:
        try:
            resp = self.session.get(
                self.url,
                auth=(self.token, "api_token"),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise SourceError(f"Toggl request failed: {e}") from e
        except ValueError as e:
            raise SourceError(f"Toggl returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise SourceError(f"Unexpected Toggl payload: {type(payload).__name__}")
        try:
            entries = [TimeEntry.from_json(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(f"Malformed time entry: {e}") from e

        entries.sort(key=lambda e: e.start)
        logger.debug("Fetched %d time entries", len(entries))
        return entries
