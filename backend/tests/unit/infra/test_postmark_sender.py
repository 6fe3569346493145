"""Unit tests for the Postmark email adapter (HTTP mocked with ``responses``)."""

from __future__ import annotations

import json

import pytest
import requests
import responses

from authapi.infra.mail.postmark_email_sender import (
    POSTMARK_TEMPLATE_ENDPOINT,
    PostmarkEmailSender,
)
from authapi.services._shared.errors import DeliveryError


@pytest.fixture
def sender():
    s = PostmarkEmailSender(server_token="pm-token", sender="no-reply@example.com", timeout=2)
    yield s
    s.close()


@responses.activate
def test_sends_template_with_code(sender):
    responses.add(responses.POST, POSTMARK_TEMPLATE_ENDPOINT, json={"ErrorCode": 0}, status=200)

    sender.send_verification_email("jo@example.com", "abc123")

    call = responses.calls[0]
    body = json.loads(call.request.body)
    assert call.request.headers["X-Postmark-Server-Token"] == "pm-token"
    assert body["To"] == "jo@example.com"
    assert body["From"] == "no-reply@example.com"
    assert body["TemplateAlias"] == "signup-confirmation"
    assert body["TemplateModel"] == {"user_token": "abc123"}


@responses.activate
def test_rejection_raises_delivery_error(sender):
    responses.add(
        responses.POST,
        POSTMARK_TEMPLATE_ENDPOINT,
        json={"ErrorCode": 300, "Message": "Invalid email request"},
        status=422,
    )

    with pytest.raises(DeliveryError) as exc_info:
        sender.send_verification_email("jo@example.com", "abc123")
    assert "Invalid email request" not in str(exc_info.value)


@responses.activate
def test_transport_failure_raises_delivery_error(sender):
    responses.add(
        responses.POST,
        POSTMARK_TEMPLATE_ENDPOINT,
        body=requests.ConnectionError("connection refused"),
    )

    with pytest.raises(DeliveryError):
        sender.send_verification_email("jo@example.com", "abc123")
