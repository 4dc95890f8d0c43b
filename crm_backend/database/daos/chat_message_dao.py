"""
Chat Messages DAO

Purpose
-------
Data-access layer for the `ChatMessage` ORM entity. Provides:
- Batch creation of both sides of an exchange
- Retrieval of the latest messages (chronological)

Design
------
- Requires an active SQLAlchemy `AsyncSession` provided by the caller.
- Retrieval uses a subquery for "latest-first then re-order ascending" semantics.

Error Handling
--------------
- Methods catch generic `Exception`, log a message, and re-raise.
"""

import logging
from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from crm_backend.database.entities.chat_messages import ChatMessage

logger = logging.getLogger(__name__)


class ChatMessagesDao:
    """
    Data Access Object (DAO) for the append-only chat message log.
    """

    async def createMessages(self, session: AsyncSession, messages: list[ChatMessage]) -> list[ChatMessage]:
        """
        Add several messages in one flush.

        Parameters
        ----------
        session : AsyncSession
            Active SQLAlchemy session.
        messages : list[ChatMessage]
            Messages to add, in the order they were exchanged.

        Returns
        -------
        list[ChatMessage]
            The persisted messages (with ids).
        """
        try:
            session.add_all(messages)
            await session.flush()
            return messages
        except Exception as e:
            logger.error(f"Error in ChatMessagesDao.createMessages. Error Message: {e}")
            raise e

    async def fetchLatestMessages(self, session: AsyncSession, limit: int) -> list[ChatMessage]:
        """
        Fetch the latest `limit` messages, ordered by creation time (ascending).
        Internally, retrieves the latest messages first via a subquery,
        then re-orders them chronologically.
        """
        try:
            subq = (
                select(ChatMessage)
                .order_by(desc(ChatMessage.created_at), desc(ChatMessage.id))
                .limit(limit)
            ).subquery()

            recentMessages = aliased(ChatMessage, subq)

            result = await session.execute(
                select(recentMessages).order_by(asc(recentMessages.created_at), asc(recentMessages.id))
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Error in ChatMessagesDao.fetchLatestMessages. Error Message: {e}")
            raise e
