"""
Service-layer operations for CRM assistant turns and chat messages.

All functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy async sessions and transactions automatically. Each function
accepts (and uses) an injected `session: AsyncSession` provided by the
decorator, so callers pass every other argument by keyword.

This module provides high-level operations that orchestrate DAO calls and
return plain dictionaries, ready to be serialized by the API layer.
"""

from crm_backend.database.helpers.transactionManagement import transactional
from sqlalchemy.ext.asyncio import AsyncSession
from crm_backend.database.daos.crm_chat_dao import CrmChatDao
from crm_backend.database.daos.chat_message_dao import ChatMessagesDao
from crm_backend.database.entities.crm_chat import CrmChat
from crm_backend.database.entities.chat_messages import ChatMessage, MessageRole


def crm_chat_to_dict(crm_chat: CrmChat) -> dict:
    """Serialize a turn into the shape returned by the listing endpoint."""
    return {
        "id": crm_chat.id,
        "user_id": crm_chat.user_id,
        "question": crm_chat.question,
        "sql": crm_chat.sql,
        "answer": crm_chat.answer,
        "interpretation": crm_chat.interpretation,
        "created_at": crm_chat.created_at.isoformat() if crm_chat.created_at else None,
        "updated_at": crm_chat.updated_at.isoformat() if crm_chat.updated_at else None,
    }


@transactional
async def create_crm_chat(
    session: AsyncSession,
    user_id: int,
    question: str,
    interpretation: str | None = None,
) -> dict:
    """
    Create a new turn for a user.

    Parameters
    ----------
    session : AsyncSession
        Active SQLAlchemy session (injected by @transactional).
    user_id : int
        Owner of the turn.
    question : str
        The natural-language question as received.
    interpretation : str | None
        Final answer, when it is already known (conversation branch).

    Returns
    -------
    dict
        The serialized turn, including its new `id`.
    """
    crm_chat_dao = CrmChatDao()
    crm_chat = await crm_chat_dao.createChat(
        session, CrmChat(user_id=user_id, question=question, interpretation=interpretation)
    )
    return crm_chat_to_dict(crm_chat)


@transactional
async def update_crm_chat(session: AsyncSession, chat_id: int, **fields) -> dict:
    """
    Update the progressively filled fields (`sql`, `answer`, `interpretation`)
    of an existing turn.

    Parameters
    ----------
    session : AsyncSession
        Active SQLAlchemy session (injected by @transactional).
    chat_id : int
        Identifier of the turn.
    **fields
        Columns to overwrite.

    Returns
    -------
    dict
        The serialized turn after the update.
    """
    crm_chat_dao = CrmChatDao()
    crm_chat = await crm_chat_dao.updateChat(session, chat_id, **fields)
    return crm_chat_to_dict(crm_chat)


@transactional
async def get_recent_crm_chats(session: AsyncSession, user_id: int, limit: int) -> list[dict]:
    """Return up to `limit` turns of a user, most recent first."""
    crm_chat_dao = CrmChatDao()
    chats = await crm_chat_dao.fetchRecentChatsByUserId(session, user_id=user_id, limit=limit)
    return [crm_chat_to_dict(chat) for chat in chats]


@transactional
async def list_crm_chats(session: AsyncSession, user_id: int, limit: int) -> dict:
    """
    List a user's most recent turns in chronological order.

    Parameters
    ----------
    session : AsyncSession
        Active SQLAlchemy session (injected by @transactional).
    user_id : int
        Owner of the turns.
    limit : int
        Number of most recent turns to include.

    Returns
    -------
    dict
        - chats (list[dict]): the newest `limit` turns, oldest first.
        - total_messages (int): count of all of the user's turns.
    """
    crm_chat_dao = CrmChatDao()
    chats = await crm_chat_dao.fetchRecentChatsByUserId(session, user_id=user_id, limit=limit)
    total = await crm_chat_dao.countChatsByUserId(session, user_id=user_id)
    return {
        "chats": [crm_chat_to_dict(chat) for chat in reversed(chats)],
        "total_messages": total,
    }


@transactional
async def save_chat_exchange(
    session: AsyncSession,
    user_message: str,
    assistant_message: str,
    chat_model: str | None = None,
    embedding_model: str | None = None,
) -> None:
    """
    Log both sides of a chat exchange in one transaction.

    Parameters
    ----------
    session : AsyncSession
        Active SQLAlchemy session (injected by @transactional).
    user_message : str
        What the user sent.
    assistant_message : str
        What the model answered.
    chat_model : str | None
        Name of the chat model used.
    embedding_model : str | None
        Name of the embedding model used for retrieval, if any.
    """
    chat_messages_dao = ChatMessagesDao()
    await chat_messages_dao.createMessages(
        session,
        [
            ChatMessage(
                role=MessageRole.USER,
                content=user_message,
                chat_model=chat_model,
                embedding_model=embedding_model,
            ),
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content=assistant_message,
                chat_model=chat_model,
                embedding_model=embedding_model,
            ),
        ],
    )

