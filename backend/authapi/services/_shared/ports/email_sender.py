from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from authapi.services._shared.errors import DeliveryError


class EmailSender(Protocol):
    """Port for the transactional email collaborator."""

    def send_verification_email(self, recipient: str, code: str) -> None:
        """
        Deliver the email-verification message carrying ``code``.

        :raises DeliveryError: When the provider does not accept the message.
        """


@dataclass(frozen=True, slots=True)
class SentEmail:
    recipient: str
    code: str


class RecordingEmailSender(EmailSender):
    """
    Records messages instead of sending them (development and tests).

    Set ``fail_with`` to make the next sends raise :class:`DeliveryError`.
    """

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []
        self.fail_with: str | None = None
        self._lock = threading.Lock()

    def send_verification_email(self, recipient: str, code: str) -> None:
        if self.fail_with is not None:
            raise DeliveryError(self.fail_with)
        with self._lock:
            self.sent.append(SentEmail(recipient=recipient, code=code))

    def last_code_for(self, recipient: str) -> str | None:
        for message in reversed(self.sent):
            if message.recipient == recipient:
                return message.code
        return None
