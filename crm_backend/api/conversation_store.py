"""
Conversation Store: the pipeline's view of persisted CRM turns.

Thin async adapter over the ``@transactional`` service functions in
:mod:`crm_backend.database.core.funcs`, so the orchestrator depends on one
small object that tests can replace with an in-memory fake.
"""

from typing import Any

from crm_backend.database.config.config import settings
from crm_backend.database.core import funcs


class ConversationStore:
    """
    Persistence of CRM assistant turns.

    Args:
        history_turns (int | None): How many prior turns feed the prompts;
            defaults to ``settings.HISTORY_TURNS``.
    """

    def __init__(self, history_turns: int | None = None):
        self.history_turns = history_turns if history_turns is not None else settings.HISTORY_TURNS

    async def recent_turns(self, user_id: int) -> list[dict]:
        """Last turns of a user in chronological order (oldest first)."""
        turns = await funcs.get_recent_crm_chats(user_id=user_id, limit=self.history_turns)
        return list(reversed(turns))

    async def create_turn(self, user_id: int, question: str, interpretation: str | None = None) -> int:
        """Insert a turn and return its id."""
        turn = await funcs.create_crm_chat(user_id=user_id, question=question, interpretation=interpretation)
        return turn["id"]

    async def update_turn(self, turn_id: int, **fields: Any) -> None:
        """Overwrite ``sql``, ``answer`` and/or ``interpretation`` of a turn."""
        await funcs.update_crm_chat(chat_id=turn_id, **fields)

    async def list_by_user(self, user_id: int, limit: int) -> dict:
        """Newest ``limit`` turns, oldest first, plus the user's total turn count."""
        return await funcs.list_crm_chats(user_id=user_id, limit=limit)

    async def save_exchange(
        self,
        user_message: str,
        assistant_message: str,
        chat_model: str | None = None,
        embedding_model: str | None = None,
    ) -> None:
        """Log both sides of a plain chat or document Q&A exchange."""
        await funcs.save_chat_exchange(
            user_message=user_message,
            assistant_message=assistant_message,
            chat_model=chat_model,
            embedding_model=embedding_model,
        )
