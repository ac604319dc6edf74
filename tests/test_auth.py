from datetime import timedelta

from cost_assistant.core.config import settings
from cost_assistant.core.security import create_access_token


def _bearer(user_id, **kwargs):
    return {"Authorization": f"Bearer {create_access_token(user_id, **kwargs)}"}


async def test_guest_requests_share_the_guest_identity(client):
    await client.post("/api/chat/new")

    threads = (await client.get("/api/chat/list")).json()["threads"]
    assert len(threads) == 1


async def test_token_scopes_threads_to_its_subject(client):
    alice = _bearer("alice")
    bob = _bearer("bob")
    thread_id = (await client.post("/api/chat/new", headers=alice)).json()["threadId"]

    assert len((await client.get("/api/chat/list", headers=alice)).json()["threads"]) == 1
    assert (await client.get("/api/chat/list", headers=bob)).json()["threads"] == []
    assert (await client.get("/api/chat/list")).json()["threads"] == []

    foreign = await client.get("/api/chat/history", params={"threadId": thread_id}, headers=bob)
    assert foreign.status_code == 404


async def test_invalid_token_is_rejected(client):
    response = await client.get(
        "/api/chat/list", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}


async def test_expired_token_is_rejected(client):
    headers = _bearer("alice", expires_delta=timedelta(minutes=-5))

    response = await client.get("/api/chat/list", headers=headers)

    assert response.status_code == 401


async def test_guest_access_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_GUEST", False)

    anonymous = await client.get("/api/chat/list")
    signed_in = await client.get("/api/chat/list", headers=_bearer("alice"))

    assert anonymous.status_code == 401
    assert signed_in.status_code == 200


async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}
