from cost_assistant.models.analysis import Analysis
from cost_assistant.services.conversation_store import EMPTY_THREAD_TEXT, ConversationStore
from sqlalchemy import select

USER = "user-1"


async def test_create_thread_then_latest_returns_it(db):
    first = await ConversationStore.create_thread(db, USER)
    second = await ConversationStore.create_thread(db, USER)

    assert first != second
    # Both rows share a timestamp at second resolution; seq breaks the tie
    assert await ConversationStore.get_latest_thread(db, USER) == second


async def test_latest_thread_is_none_without_threads(db):
    assert await ConversationStore.get_latest_thread(db, USER) is None


async def test_latest_thread_is_scoped_to_user(db):
    mine = await ConversationStore.create_thread(db, USER)
    await ConversationStore.create_thread(db, "someone-else")

    assert await ConversationStore.get_latest_thread(db, USER) == mine
    assert await ConversationStore.get_thread(db, "someone-else", mine) is None


async def test_messages_come_back_in_insertion_order(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    contents = [f"turn {i}" for i in range(8)]
    for i, content in enumerate(contents):
        role = "user" if i % 2 == 0 else "assistant"
        await ConversationStore.save_message(db, USER, thread_id, role, content, True)

    messages = await ConversationStore.get_thread_messages(db, USER, thread_id)

    assert [m.content for m in messages] == contents
    assert [m.role for m in messages][:2] == ["user", "assistant"]


async def test_duplicate_saves_store_two_rows(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, thread_id, "user", "same", True)
    await ConversationStore.save_message(db, USER, thread_id, "user", "same", True)

    messages = await ConversationStore.get_thread_messages(db, USER, thread_id)
    assert [m.content for m in messages] == ["same", "same"]


async def test_limit_returns_trailing_window_oldest_first(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    for i in range(6):
        await ConversationStore.save_message(db, USER, thread_id, "user", str(i), True)

    window = await ConversationStore.get_thread_messages(db, USER, thread_id, limit=3)
    assert [m.content for m in window] == ["3", "4", "5"]


async def test_relevant_flag_round_trips(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, thread_id, "user", "who won?", False)
    await ConversationStore.save_message(db, USER, thread_id, "user", "my S3 bill", True)

    first, second = await ConversationStore.get_thread_messages(db, USER, thread_id)
    assert first.relevant is False
    assert second.relevant is True


async def test_messages_of_another_user_are_invisible(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, thread_id, "user", "private", True)

    assert await ConversationStore.get_thread_messages(db, "intruder", thread_id) == []


async def test_full_thread_text_of_empty_thread_is_sentinel(db):
    thread_id = await ConversationStore.create_thread(db, USER)

    text = await ConversationStore.get_full_thread_text(db, USER, thread_id)
    assert text == EMPTY_THREAD_TEXT == "No messages."


async def test_full_thread_text_joins_role_lines(db):
    thread_id = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, thread_id, "user", "hello", True)
    await ConversationStore.save_message(db, USER, thread_id, "assistant", "hi there", True)

    text = await ConversationStore.get_full_thread_text(db, USER, thread_id)
    assert text == "user: hello\nassistant: hi there"


async def test_list_threads_newest_first_with_counts(db):
    older = await ConversationStore.create_thread(db, USER)
    newer = await ConversationStore.create_thread(db, USER)
    await ConversationStore.save_message(db, USER, older, "user", "a", True)
    await ConversationStore.save_message(db, USER, older, "assistant", "b", True)
    await ConversationStore.create_thread(db, "someone-else")

    threads = await ConversationStore.list_threads(db, USER)

    assert [t.thread_id for t in threads] == [newer, older]
    assert [t.msg_count for t in threads] == [0, 2]
    assert threads[0].title == "New Conversation"


async def test_save_analysis_allows_missing_thread(db):
    saved = await ConversationStore.save_analysis(
        db, USER, None, plan="plan", metrics="metrics", comment=None, result="result"
    )

    rows = (await db.execute(select(Analysis))).scalars().all()
    assert [r.id for r in rows] == [saved.id]
    assert rows[0].thread_id is None
    assert rows[0].result == "result"
