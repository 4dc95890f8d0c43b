"""
Persistence tests: DAOs, @transactional service functions and the
ConversationStore adapter on a SQLite database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from crm_backend.api.conversation_store import ConversationStore
from crm_backend.database.config.config import settings
from crm_backend.database.core import funcs
from crm_backend.database.daos.chat_message_dao import ChatMessagesDao
from crm_backend.database.daos.crm_chat_dao import CrmChatDao
from crm_backend.database.entities.chat_messages import ChatMessage
from crm_backend.database.entities.crm_chat import CrmChat


async def seed_turns(session_factory, user_id, count, start=None):
    start = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    dao = CrmChatDao()
    async with session_factory() as session:
        for i in range(count):
            await dao.createChat(
                session,
                CrmChat(
                    user_id=user_id,
                    question=f"pregunta {i}",
                    interpretation=f"respuesta {i}",
                    created_at=start + timedelta(minutes=i),
                ),
            )
        await session.commit()


@pytest.mark.asyncio
async def test_list_is_chronological_and_total_is_independent_of_limit(sqlite_db):
    await seed_turns(sqlite_db, user_id=1, count=7)
    await seed_turns(sqlite_db, user_id=2, count=2)

    listing = await funcs.list_crm_chats(user_id=1, limit=3)

    assert [chat["question"] for chat in listing["chats"]] == ["pregunta 4", "pregunta 5", "pregunta 6"]
    assert listing["total_messages"] == 7


@pytest.mark.asyncio
async def test_list_with_limit_larger_than_history(sqlite_db):
    await seed_turns(sqlite_db, user_id=1, count=2)

    listing = await funcs.list_crm_chats(user_id=1, limit=50)

    assert [chat["question"] for chat in listing["chats"]] == ["pregunta 0", "pregunta 1"]
    assert listing["total_messages"] == 2


@pytest.mark.asyncio
async def test_store_recent_turns_are_last_five_oldest_first(sqlite_db):
    await seed_turns(sqlite_db, user_id=1, count=8)
    store = ConversationStore(history_turns=5)

    turns = await store.recent_turns(1)

    assert [turn["question"] for turn in turns] == [f"pregunta {i}" for i in range(3, 8)]


@pytest.mark.asyncio
async def test_store_with_zero_history_turns_feeds_no_history(sqlite_db):
    await seed_turns(sqlite_db, user_id=1, count=3)
    store = ConversationStore(history_turns=0)

    assert store.history_turns == 0
    assert await store.recent_turns(1) == []


def test_store_history_turns_default_comes_from_settings():
    assert ConversationStore().history_turns == settings.HISTORY_TURNS


@pytest.mark.asyncio
async def test_store_creates_and_updates_turn_in_place(sqlite_db):
    store = ConversationStore()

    turn_id = await store.create_turn(3, "¿Cuántas oportunidades hay?")
    await store.update_turn(turn_id, sql="SELECT count(*) FROM oportunity;")
    await store.update_turn(turn_id, answer=[{"count": 5}])
    await store.update_turn(turn_id, interpretation="Hay 5 oportunidades.")

    async with sqlite_db() as session:
        turn = await CrmChatDao().fetchChatById(session, turn_id)
    assert turn.question == "¿Cuántas oportunidades hay?"
    assert turn.sql == "SELECT count(*) FROM oportunity;"
    assert turn.answer == [{"count": 5}]
    assert turn.interpretation == "Hay 5 oportunidades."

    listing = await store.list_by_user(3, 10)
    assert listing["total_messages"] == 1


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(sqlite_db):
    turn = await funcs.create_crm_chat(user_id=1, question="hola")

    with pytest.raises(ValueError):
        await funcs.update_crm_chat(chat_id=turn["id"], question="otra")


@pytest.mark.asyncio
async def test_failed_transaction_is_rolled_back(sqlite_db):
    with pytest.raises(Exception):
        await funcs.update_crm_chat(chat_id=999, sql="SELECT 1;")

    listing = await funcs.list_crm_chats(user_id=1, limit=5)
    assert listing == {"chats": [], "total_messages": 0}


@pytest.mark.asyncio
async def test_chat_exchange_logs_both_sides(sqlite_db):
    store = ConversationStore()

    await store.save_exchange("¿Qué cursos hay?", "Hay tres cursos.", chat_model="gemma3:latest", embedding_model="all-minilm")

    async with sqlite_db() as session:
        messages = await ChatMessagesDao().fetchLatestMessages(session, limit=10)
    assert [(m.role, m.content) for m in messages] == [
        ("user", "¿Qué cursos hay?"),
        ("assistant", "Hay tres cursos."),
    ]
    assert all(m.embedding_model == "all-minilm" for m in messages)


def test_chat_message_rejects_unknown_role():
    with pytest.raises(ValueError):
        ChatMessage(role="system", content="hola")
