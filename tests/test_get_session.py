from __future__ import annotations

import asyncio

import pytest

import get_session


class FakeClient:
    def __init__(self, authorized: bool) -> None:
        self._authorized = authorized
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def is_user_authorized(self) -> bool:
        return self._authorized


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch) -> None:
    monkeypatch.setattr(get_session, "load_dotenv", lambda: None)


def test_build_client_requires_api_credentials(monkeypatch) -> None:
    monkeypatch.delenv("API_ID", raising=False)
    monkeypatch.setenv("API_HASH", "abc")

    with pytest.raises(RuntimeError, match="API_ID and API_HASH"):
        get_session.build_client()


def test_build_client_rejects_non_numeric_api_id(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "12ab")
    monkeypatch.setenv("API_HASH", "abc")

    with pytest.raises(RuntimeError, match="numeric"):
        get_session.build_client()


def test_unauthorized_session_is_disconnected_and_refused(monkeypatch) -> None:
    client = FakeClient(authorized=False)
    monkeypatch.setattr(get_session, "build_client", lambda: client)

    with pytest.raises(RuntimeError, match="wazewatch login"):
        asyncio.run(get_session.connect_saved_messages_client())
    assert not client.connected


def test_authorized_session_is_returned_connected(monkeypatch) -> None:
    client = FakeClient(authorized=True)
    monkeypatch.setattr(get_session, "build_client", lambda: client)

    assert asyncio.run(get_session.connect_saved_messages_client()) is client
    assert client.connected
