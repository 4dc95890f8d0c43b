"""
Pytest configuration and shared fixtures for the CRM assistant tests.

This module provides:
- Environment defaults so `Settings()` validates without a real `.env`
- In-memory fakes for the LLM gateway, retrieval store, conversation store
  and CRM executor
- A SQLite (aiosqlite) database wired into `@transactional`
"""

import os

os.environ.setdefault("DB_USERNAME", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_DATABASE_NAME", "crm_assistant_test")
os.environ.setdefault("CRM_DB_USERNAME", "test")
os.environ.setdefault("CRM_DB_PASSWORD", "test")
os.environ.setdefault("CRM_DB_HOST", "localhost")
os.environ.setdefault("CRM_DB_DATABASE_NAME", "crm_test")
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("INIT_MODE", "test")

from collections import deque
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crm_backend.api.llm_gateway import LLMResponse
from crm_backend.api.retrieval import INDEX_REGISTRY, RetrievedChunk
from crm_backend.database.config.connection_engine import metadata
from crm_backend.database.helpers import transactionManagement
import crm_backend.database.entities  # noqa: F401


# ============================================================================
# Fakes
# ============================================================================

class FakeGateway:
    """
    Returns scripted replies in call order and records every call.
    A scripted Exception instance is raised instead of returned.
    """

    def __init__(self, replies=None):
        self.replies = deque(replies or [])
        self.calls = []

    async def complete(self, prompt, model, system=None):
        self.calls.append({"prompt": prompt, "model": model, "system": system})
        reply = self.replies.popleft()
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(text=reply, usage={"input_tokens": 3, "output_tokens": 5, "total_tokens": 8})


class FakeRetrieval:
    """Returns the same chunks for every index and records searches."""

    def __init__(self, chunks=None):
        self.chunks = chunks or [RetrievedChunk(content="tabla oportunity(id, stage_id, created_at)", score=0.9)]
        self.searches = []
        self.upserts = []

    def spec(self, index_name):
        return INDEX_REGISTRY[index_name]

    async def search(self, index_name, query, k=None):
        self.searches.append((index_name, query))
        return list(self.chunks)

    async def upsert(self, index_name, chunks):
        self.upserts.append((index_name, chunks))
        return len(chunks)


class FakeConversationStore:
    """In-memory turns and message log with the ConversationStore interface."""

    def __init__(self, history_turns=5):
        self.history_turns = history_turns
        self.turns = []
        self.messages = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def add_turn(self, user_id, question, interpretation=None, **fields):
        self._clock += timedelta(minutes=1)
        turn = {
            "id": len(self.turns) + 1,
            "user_id": user_id,
            "question": question,
            "sql": None,
            "answer": None,
            "interpretation": interpretation,
            "created_at": self._clock.isoformat(),
            "updated_at": self._clock.isoformat(),
        }
        turn.update(fields)
        self.turns.append(turn)
        return turn

    def turn(self, turn_id):
        return next(turn for turn in self.turns if turn["id"] == turn_id)

    async def recent_turns(self, user_id):
        own = [turn for turn in self.turns if turn["user_id"] == user_id]
        return own[-self.history_turns:]

    async def create_turn(self, user_id, question, interpretation=None):
        return self.add_turn(user_id, question, interpretation)["id"]

    async def update_turn(self, turn_id, **fields):
        self.turn(turn_id).update(fields)

    async def list_by_user(self, user_id, limit):
        own = [turn for turn in self.turns if turn["user_id"] == user_id]
        return {"chats": own[-limit:], "total_messages": len(own)}

    async def save_exchange(self, user_message, assistant_message, chat_model=None, embedding_model=None):
        self.messages.append(
            {"role": "user", "content": user_message, "chat_model": chat_model, "embedding_model": embedding_model}
        )
        self.messages.append(
            {"role": "assistant", "content": assistant_message, "chat_model": chat_model, "embedding_model": embedding_model}
        )


class FakeExecutor:
    """Returns scripted rows, or raises the scripted error."""

    def __init__(self, rows=None, error=None):
        self.rows = rows if rows is not None else []
        self.error = error
        self.executed = []

    async def execute(self, sql):
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.fixture
def fake_retrieval():
    return FakeRetrieval()


@pytest.fixture
def fake_store():
    return FakeConversationStore()


# ============================================================================
# SQLite database for the persistence layer
# ============================================================================

@pytest_asyncio.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """
    Create the application tables in a temporary SQLite file and make
    `@transactional` open its sessions there. Yields the session factory.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(transactionManagement, "session_factory", factory)
    yield factory
    await engine.dispose()
