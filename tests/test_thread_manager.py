import pytest
from sqlalchemy import select

from cost_assistant.core.exceptions import ThreadNotFoundError
from cost_assistant.models.uploaded_file import UploadedFile
from cost_assistant.services.conversation_store import ConversationStore
from cost_assistant.services.file_service import FileService
from cost_assistant.services.thread_manager import ChatContext, ThreadManager

USER = "user-1"


async def test_resolve_creates_thread_when_user_has_none(db):
    ctx = ChatContext(user_id=USER)

    resolved = await ThreadManager.resolve(db, ctx)

    assert resolved.thread_id is not None
    assert ctx.thread_id is None
    assert await ConversationStore.get_latest_thread(db, USER) == resolved.thread_id


async def test_resolve_reuses_latest_thread(db):
    await ConversationStore.create_thread(db, USER)
    latest = await ConversationStore.create_thread(db, USER)

    resolved = await ThreadManager.resolve(db, ChatContext(user_id=USER))

    assert resolved.thread_id == latest
    assert len(await ConversationStore.list_threads(db, USER)) == 2


async def test_resolve_keeps_supplied_thread(db):
    chosen = await ConversationStore.create_thread(db, USER)
    await ConversationStore.create_thread(db, USER)

    resolved = await ThreadManager.resolve(db, ChatContext(user_id=USER, thread_id=chosen))

    assert resolved.thread_id == chosen


async def test_resolve_rejects_foreign_thread(db):
    foreign = await ConversationStore.create_thread(db, "someone-else")

    with pytest.raises(ThreadNotFoundError):
        await ThreadManager.resolve(db, ChatContext(user_id=USER, thread_id=foreign))


async def test_start_new_always_creates_thread_and_drops_pending_uploads(db):
    existing = await ConversationStore.create_thread(db, USER)
    await FileService.save_upload(
        db, USER, "session-a", "plan", "plan.csv", "text/csv", b"service,cost\nec2,100\n"
    )

    started = await ThreadManager.start_new(db, USER, previous_session_id="session-a")

    assert started.thread_id != existing
    assert started.session_id != "session-a"
    remaining = (await db.execute(select(UploadedFile))).scalars().all()
    assert remaining == []


async def test_select_loads_history_and_issues_new_session(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, thread_id, "user", "hello", True)
    await ConversationStore.save_message(db, USER, thread_id, "assistant", "hi", True)

    selected = await ThreadManager.select(db, USER, thread_id, previous_session_id="old")

    assert selected.thread_id == thread_id
    assert selected.session_id != "old"
    assert [m.content for m in selected.messages] == ["hello", "hi"]


async def test_select_unknown_thread(db):
    with pytest.raises(ThreadNotFoundError):
        await ThreadManager.select(db, USER, "does-not-exist")
