"""Tests for service registry wiring and shutdown."""

from __future__ import annotations

from flask import Flask

from authapi.core import registry as registry_module
from authapi.core.registry import ServiceRegistry
from authapi.services._shared.ports import (
    InMemorySingleUseTokenStore,
    RecordingEmailSender,
    StubOAuthProviderClient,
    StubSessionCodec,
)


class ClosingOAuthClient(StubOAuthProviderClient):
    def __init__(self, provider: str) -> None:
        super().__init__(provider)
        self.closed = 0

    def close(self) -> None:
        self.closed += 1


class ClosingEmailSender(RecordingEmailSender):
    def __init__(self) -> None:
        super().__init__()
        self.closed = 0

    def close(self) -> None:
        self.closed += 1


def _registry() -> ServiceRegistry:
    return ServiceRegistry(
        codec=StubSessionCodec(),
        token_store=InMemorySingleUseTokenStore(),
        email_sender=ClosingEmailSender(),
        oauth_clients={
            "discord": ClosingOAuthClient("discord"),
            "twitch": ClosingOAuthClient("twitch"),
        },
    )


def test_close_releases_every_outbound_adapter():
    reg = _registry()

    reg.close()

    assert reg.email_sender.closed == 1
    assert [c.closed for c in reg.oauth_clients.values()] == [1, 1]


def test_init_app_schedules_close_at_exit(monkeypatch):
    scheduled = []
    monkeypatch.setattr(registry_module.atexit, "register", scheduled.append)
    reg = _registry()
    app = Flask(__name__)

    assert registry_module.init_app(app, reg) is reg
    assert app.extensions["authapi"] is reg
    assert scheduled == [reg.close]

    for callback in scheduled:
        callback()
    assert reg.email_sender.closed == 1
    assert all(c.closed == 1 for c in reg.oauth_clients.values())
