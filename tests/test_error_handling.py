import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cost_assistant.models.conversation import Conversation
from cost_assistant.models.message import Message
from cost_assistant.services.conversation_store import ConversationStore
from cost_assistant.services.thread_manager import ChatContext, ThreadManager


async def _failing_create_thread(db, user_id, title=None):
    raise OperationalError("INSERT INTO conversations", {}, Exception("disk I/O error"))


@pytest.fixture
def broken_thread_creation(monkeypatch):
    monkeypatch.setattr(
        ConversationStore, "create_thread", staticmethod(_failing_create_thread)
    )


async def test_storage_error_on_new_chat_is_500(client, db, broken_thread_creation):
    response = await client.post("/api/chat/new")

    assert response.status_code == 500
    assert response.json() == {"error": "Storage error"}
    assert (await db.execute(select(func.count(Conversation.seq)))).scalar_one() == 0


async def test_storage_error_during_turn_stores_nothing(client, llm, db, broken_thread_creation):
    response = await client.post("/api/chat", json={"message": "Trim my AWS bill"})

    assert response.status_code == 500
    assert response.json() == {"error": "Storage error"}
    assert llm.calls == []
    assert (await db.execute(select(func.count(Message.id)))).scalar_one() == 0


async def test_failed_thread_creation_leaves_context_without_thread(db, broken_thread_creation):
    ctx = ChatContext(user_id="user-1")

    with pytest.raises(OperationalError):
        await ThreadManager.resolve(db, ctx)

    assert ctx.thread_id is None
