"""Shared fixtures: isolated config and a recording httpx transport."""
import json

import httpx
import pytest


class Recorder:
    """httpx.MockTransport handler that records every request and delegates the answer."""

    def __init__(self, responder=None):
        self.requests: list[httpx.Request] = []
        self.responder = responder or (lambda request: httpx.Response(404))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls_to(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """No real keys or data dirs leak in from the developer's environment."""
    from src.krishi_router import config

    monkeypatch.setattr(config, "HF_TOKEN", "")
    monkeypatch.setattr(config, "GEMINI_API_KEY", "")
    monkeypatch.setattr(config, "SUPABASE_URL", "")
    monkeypatch.setattr(config, "SUPABASE_KEY", "")
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    monkeypatch.setattr(config, "LOG_DIR", tmp_path / "logs")
    return config


@pytest.fixture
def recorder():
    return Recorder()
