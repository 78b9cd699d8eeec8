import pytest


@pytest.fixture(autouse=True)
def _session_secret(monkeypatch):
    monkeypatch.setattr("app.services.session.SESSION_SECRET", "test-session-secret")
