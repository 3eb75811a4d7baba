"""
Notification backends.

Each backend only knows how to deliver a one-line message. The escalation
controller calls every configured backend for every reminder and deals with
failures one backend at a time.
"""

import logging
import shutil
import subprocess
from email.message import EmailMessage
from typing import List

import requests

from .config import APP_NAME, FETCH_TIMEOUT, TASK_SWITCH_MESSAGE, NotificationConfig
from .errors import NotifierError
from .models import Phase

logger = logging.getLogger(__name__)


def phase_message(phase: Phase, minutes: int) -> str:
    return f"{phase} {minutes} min"


class Notifier:
    """Base class: subclasses implement send()."""

    name = "notifier"

    def send(self, message: str) -> None:
        raise NotImplementedError

    def notify(self, phase: Phase, minutes: int) -> None:
        """Tell the user the next phase should start and how long it lasts."""
        self.send(phase_message(phase, minutes))

    def notify_task(self) -> None:
        self.send(TASK_SWITCH_MESSAGE)


class DesktopNotifier(Notifier):
    """Desktop pop-up through notify-send."""

    name = "desktop"

    def __init__(self, title: str = APP_NAME):
        self.title = title

    def send(self, message: str) -> None:
        logger.debug("Sending desktop notification: %s", message)
        try:
            result = subprocess.run(
                ["notify-send", "-h", "string:sound-name:message-new-instant", self.title, message],
                capture_output=True,
            )
        except OSError as e:
            raise NotifierError(f"notify-send failed: {e}") from e
        if result.returncode != 0:
            raise NotifierError(f"notify-send failed: {result.stderr.decode().strip()}")


class SlackNotifier(Notifier):
    """Message to a Slack incoming webhook."""

    name = "slack"

    def __init__(self, url: str, session=None, timeout: float = FETCH_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(self, phase: Phase, minutes: int) -> None:
        emoji = ":tomato:" if phase is Phase.WORK else ":coffee:"
        self._post(phase_message(phase, minutes), emoji)

    def send(self, message: str) -> None:
        self._post(message, ":tomato:")

    def _post(self, message: str, emoji: str) -> None:
        payload = {"username": APP_NAME, "icon_emoji": emoji, "text": message}
        try:
            resp = self.session.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise NotifierError(f"Slack webhook failed: {e}") from e


class MailNotifier(Notifier):
    """Mail with the message as subject, handed to the local sendmail."""

    name = "mail"

    def __init__(self, to: str, sender: str, sendmail: str = "sendmail"):
        self.to = to
        self.sender = sender
        self.sendmail = sendmail

    def build_message(self, message: str) -> EmailMessage:
        mail = EmailMessage()
        mail["From"] = self.sender
        mail["To"] = self.to
        mail["Subject"] = message
        mail.set_content("")
        return mail

    def send(self, message: str) -> None:
        mail = self.build_message(message)
        try:
            result = subprocess.run(
                [self.sendmail, "-t", "-oi"],
                input=mail.as_bytes(),
                capture_output=True,
            )
        except OSError as e:
            raise NotifierError(f"sendmail failed: {e}") from e
        if result.returncode != 0:
            raise NotifierError(f"sendmail failed: {result.stderr.decode().strip()}")


def build_notifiers(config: NotificationConfig) -> List[Notifier]:
    """Instantiate every backend enabled in the [notification] section."""
    notifiers: List[Notifier] = []
    if config.desktop:
        if not shutil.which("notify-send"):
            logger.warning("notify-send not found, desktop notifications will fail")
        notifiers.append(DesktopNotifier())
    if config.slack:
        notifiers.append(SlackNotifier(config.slack))
    if config.mail:
        notifiers.append(MailNotifier(config.mail, config.mail_from))
    return notifiers
