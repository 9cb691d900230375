import asyncio
import json

import pytest

from digital_humans.core.security import create_access_token
from digital_humans.realtime.connection import ConnectionContext
from digital_humans.realtime.gateway import RealtimeGateway
from digital_humans.realtime.manager import ConnectionManager
from digital_humans.schemas.digital_human import DigitalHumanCreate
from digital_humans.schemas.user import UserResponse
from digital_humans.services.digital_human_service import digital_human_service


class Client:
    """A connection that records every frame it is sent."""

    def __init__(self, manager=None):
        self.frames = []
        self.ctx = ConnectionContext(self._send)
        if manager is not None:
            manager.register(self.ctx)

    async def _send(self, text):
        self.frames.append(json.loads(text))

    def events(self, name=None):
        return [f for f in self.frames if name is None or f["type"] == name]

    def last(self):
        return self.frames[-1]


@pytest.fixture
def manager():
    return ConnectionManager()


@pytest.fixture
def gateway(manager):
    return RealtimeGateway(manager=manager)


def send(gateway, client, event, data=None):
    asyncio.run(gateway.dispatch(client.ctx, event, data))
    return client.last()


def signed_in(manager, user):
    client = Client(manager)
    client.ctx.bind(UserResponse.model_validate(user))
    return client


def test_ping_and_unknown_event(gateway, manager):
    client = Client(manager)
    assert send(gateway, client, "ping")["type"] == "pong"

    frame = send(gateway, client, "teleport")
    assert frame["type"] == "error"
    assert frame["data"]["code"] == "UNKNOWN_EVENT"


def test_identity_required(gateway, manager):
    client = Client(manager)
    for event in ["send-message", "get-dashboard-data", "delete-digital-human", "generate-prompt", "get-public-digital-humans"]:
        frame = send(gateway, client, event, {})
        assert frame["type"] == "error"
        assert frame["data"]["code"] == "AUTH_REQUIRED"


def test_authenticate_with_token_pushes_dashboard(gateway, manager, alice):
    client = Client(manager)
    token = create_access_token(alice.id)
    send(gateway, client, "authenticate", token)

    authenticated = client.events("authenticated")[0]["data"]
    assert authenticated["success"] is True
    assert authenticated["user"]["id"] == alice.id
    assert authenticated["token"] == token

    dashboard = client.last()
    assert dashboard["type"] == "dashboard-data"
    assert set(dashboard["data"]["bots"]) == {"userBots", "publicBots", "recentBots"}
    assert dashboard["data"]["sessions"] == []


def test_authenticate_failures(gateway, manager):
    client = Client(manager)

    frame = send(gateway, client, "authenticate", "not-a-token")
    assert frame["data"]["code"] == "AUTH_ERROR"
    assert not client.ctx.is_authenticated

    frame = send(gateway, client, "authenticate", {"email": "nobody@x.com", "password": "pw123456"})
    assert frame["data"]["code"] == "AUTH_ERROR"

    frame = send(gateway, client, "authenticate", None)
    assert frame["data"]["code"] == "AUTH_ERROR"


def test_guest_login_binds_identity(gateway, manager):
    client = Client(manager)
    send(gateway, client, "guest-login")

    user = client.events("authenticated")[0]["data"]["user"]
    assert user["isGuest"] is True
    assert client.ctx.user.id == user["id"]


def test_generate_and_validation(gateway, manager, alice):
    client = signed_in(manager, alice)

    frame = send(gateway, client, "generate-prompt", {"description": "a cheerful tutor"})
    assert frame["type"] == "prompt-generated"
    assert frame["data"]["name"]
    assert frame["data"]["temperature"] == 0.7
    assert frame["data"]["userId"] == alice.id

    frame = send(gateway, client, "generate-prompt", {"personality": "calm"})
    assert frame["data"]["code"] == "VALIDATION_ERROR"


def test_ownership_errors(gateway, manager, db, alice, bob):
    bot = digital_human_service.create(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    intruder = signed_in(manager, bob)

    frame = send(gateway, intruder, "update-digital-human", {"id": bot.id, "name": "Mine"})
    assert frame["data"]["code"] == "PERMISSION_DENIED"

    frame = send(gateway, intruder, "update-digital-human", {"id": "dh_missing", "name": "Mine"})
    assert frame["data"]["code"] == "NOT_FOUND"

    frame = send(gateway, intruder, "delete-digital-human", bot.id)
    assert frame["data"]["code"] == "DELETE_ERROR"

    assert digital_human_service.get_by_id(db, bot.id).name == "Rex"


def test_owner_update_and_delete(gateway, manager, db, alice):
    bot = digital_human_service.create(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    owner = signed_in(manager, alice)

    frame = send(gateway, owner, "update-digital-human", {"digitalHuman": {"id": bot.id, "maxTokens": 200}})
    assert frame["type"] == "digital-human-updated"
    assert frame["data"]["maxTokens"] == 200
    assert frame["data"]["name"] == "Rex"

    frame = send(gateway, owner, "delete-digital-human", bot.id)
    assert frame == {"type": "digital-human-deleted", "data": bot.id}


def test_public_changes_are_broadcast(gateway, manager, db, alice, bob):
    bot = digital_human_service.create(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    owner = signed_in(manager, alice)
    watcher = signed_in(manager, bob)

    send(gateway, owner, "update-digital-human", {"id": bot.id, "personality": "quiet"})
    assert watcher.frames == []

    send(gateway, owner, "update-digital-human", {"id": bot.id, "isPublic": True})
    assert watcher.last()["type"] == "digital-human-updated"
    assert len(owner.events("digital-human-updated")) == 2

    send(gateway, watcher, "get-public-digital-humans")
    assert [b["id"] for b in watcher.last()["data"]] == [bot.id]

    send(gateway, owner, "delete-digital-human", bot.id)
    assert watcher.last() == {"type": "digital-human-deleted", "data": bot.id}


def test_chat_flow(gateway, manager, db, alice):
    bot = digital_human_service.create(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    client = signed_in(manager, alice)

    frame = send(gateway, client, "send-message", {"message": "hello", "digitalHumanId": bot.id, "chatHistory": []})
    assert frame["type"] == "message-received"
    assert frame["data"]["role"] == "assistant"

    client.frames.clear()
    send(gateway, client, "join-chat", bot.id)
    assert [f["data"]["role"] for f in client.events("message-received")] == ["user", "assistant"]

    frame = send(gateway, client, "clear-history", {"digitalHumanId": bot.id})
    assert frame["data"] == {"digitalHumanId": bot.id, "deleted": 2}

    frame = send(gateway, client, "send-message", {"message": "hi", "digitalHumanId": "dh_missing"})
    assert frame["data"]["code"] == "HUMAN_NOT_FOUND"

    frame = send(gateway, client, "send-message", {"message": "  ", "digitalHumanId": bot.id})
    assert frame["data"]["code"] == "VALIDATION_ERROR"


def test_listing_events(gateway, manager, db, alice, bob):
    own = digital_human_service.create(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    shared = digital_human_service.create(
        db, bob.id, DigitalHumanCreate(name="Nova", prompt="You are Nova.", is_public=True)
    )
    client = signed_in(manager, alice)

    assert [b["id"] for b in send(gateway, client, "get-user-bots")["data"]] == [own.id]
    assert {b["id"] for b in send(gateway, client, "load-digital-humans")["data"]} == {own.id, shared.id}

    frame = send(gateway, client, "search-digital-humans", {"query": "nova"})
    assert frame["type"] == "search-results"
    assert [b["id"] for b in frame["data"]["results"]] == [shared.id]


def test_closed_connection_drops_events(manager):
    client = Client(manager)
    client.ctx.close()

    assert asyncio.run(client.ctx.emit("pong")) is False
    assert client.frames == []
    assert manager.active() == []


def test_public_listing_limit_must_be_a_positive_integer(gateway, manager, alice):
    client = signed_in(manager, alice)

    for limit in [True, 0, "5"]:
        frame = send(gateway, client, "get-public-digital-humans", {"limit": limit})
        assert frame["type"] == "error"
        assert frame["data"]["code"] == "VALIDATION_ERROR"

    assert send(gateway, client, "get-public-digital-humans", {"limit": 5})["type"] == "public-digital-humans"
