# authapi/infra/mail/postmark_email_sender.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from authapi.services._shared.errors import DeliveryError
from authapi.services._shared.ports import EmailSender

log = logging.getLogger(__name__)

POSTMARK_TEMPLATE_ENDPOINT = "https://api.postmarkapp.com/email/withTemplate"


@dataclass(slots=True)
class PostmarkEmailSender(EmailSender):
    """
    Sends templated email through Postmark's HTTP API.

    Every call is bounded by ``timeout`` seconds. Transport errors and non-2xx
    responses surface as :class:`DeliveryError`; the provider's response body
    is logged, never returned.

    :param server_token: Postmark server API token.
    :param sender: ``From`` address.
    :param template_alias: Template used for verification messages.
    :param timeout: Per-request timeout in seconds.
    """

    server_token: str = field(repr=False)
    sender: str
    template_alias: str = "signup-confirmation"
    timeout: float = 10.0
    message_stream: str = "outbound"
    http: requests.Session = field(default_factory=requests.Session, repr=False)

    def send_verification_email(self, recipient: str, code: str) -> None:
        body = {
            "From": self.sender,
            "To": recipient,
            "TemplateAlias": self.template_alias,
            "TemplateModel": {"user_token": code},
            "MessageStream": self.message_stream,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self.server_token,
        }
        try:
            resp = self.http.post(
                POSTMARK_TEMPLATE_ENDPOINT, json=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            log.error("postmark transport failure: %s", type(exc).__name__)
            raise DeliveryError("Verification email could not be sent.") from exc

        if not resp.ok:
            log.error(
                "postmark rejected message: status=%s body=%s",
                resp.status_code,
                resp.text[:500],
            )
            raise DeliveryError("Verification email could not be sent.")
        log.info("verification email accepted", extra={"event": "mail.sent"})

    def close(self) -> None:
        self.http.close()
