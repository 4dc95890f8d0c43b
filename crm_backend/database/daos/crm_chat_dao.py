"""
CRM Chat DAO

Purpose
-------
Provides a thin data-access layer for the `CrmChat` ORM entity:
- Create turns
- Fetch a user's most recent turns (newest first) and count all of them
- Update the progressively filled fields of a turn

Design
------
- Requires an active SQLAlchemy `AsyncSession` supplied by the caller (no
  session creation inside the DAO). Transaction boundaries live in the
  service layer (`database.core.funcs`, via `@transactional`).
- Update operations fetch the target row, mutate attributes and flush.

Usage
-----
.. code-block:: python

    from crm_backend.database.config.connection_engine import session_factory
    from crm_backend.database.entities.crm_chat import CrmChat
    from crm_backend.database.daos.crm_chat_dao import CrmChatDao

    dao = CrmChatDao()
    async with session_factory() as session:
        turn = await dao.createChat(session, CrmChat(user_id=1, question="¿Cuántas oportunidades hay?"))
        await dao.updateChat(session, turn.id, sql="SELECT count(*) FROM oportunity;")
        recent = await dao.fetchRecentChatsByUserId(session, user_id=1, limit=5)
        await session.commit()

Error Handling
--------------
- Methods catch generic `Exception`, log the error message, and re-raise.
- `updateChat` uses `.scalar_one()`, which raises `NoResultFound` if the turn
  does not exist.
"""

import logging
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from crm_backend.database.entities.crm_chat import CrmChat

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("sql", "answer", "interpretation")
"""Columns a turn may be updated with after creation."""


class CrmChatDao:
    """
    Data Access Object (DAO) for managing CrmChat entities.
    """

    async def createChat(self, session: AsyncSession, crm_chat: CrmChat) -> CrmChat:
        """
        Create a new turn record and flush it so its id is assigned.

        Parameters
        ----------
        session : AsyncSession
            Active SQLAlchemy session.
        crm_chat : CrmChat
            Turn entity instance to be added.

        Returns
        -------
        CrmChat
            The persisted entity (with `id`).
        """
        try:
            session.add(crm_chat)
            await session.flush()
            return crm_chat
        except Exception as e:
            logger.error(f"Error in CrmChatDao.createChat. Error: {e}")
            raise e

    async def fetchChatById(self, session: AsyncSession, chat_id: int) -> CrmChat | None:
        """Return the turn with the given id, or None."""
        try:
            result = await session.execute(select(CrmChat).where(CrmChat.id == chat_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Error in CrmChatDao.fetchChatById. Error: {e}")
            raise e

    async def fetchRecentChatsByUserId(self, session: AsyncSession, user_id: int, limit: int) -> list[CrmChat]:
        """
        Fetch the most recent turns of a user, newest first.

        Parameters
        ----------
        session : AsyncSession
            Active SQLAlchemy session.
        user_id : int
            Owner of the turns.
        limit : int
            Maximum number of turns to return.

        Returns
        -------
        list[CrmChat]
            Turns ordered by `created_at` descending (ties broken by id).
        """
        try:
            result = await session.execute(
                select(CrmChat)
                .where(CrmChat.user_id == user_id)
                .order_by(desc(CrmChat.created_at), desc(CrmChat.id))
                .limit(limit)
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Error in CrmChatDao.fetchRecentChatsByUserId. Error: {e}")
            raise e

    async def countChatsByUserId(self, session: AsyncSession, user_id: int) -> int:
        """Count every turn that belongs to a user."""
        try:
            result = await session.execute(
                select(func.count()).select_from(CrmChat).where(CrmChat.user_id == user_id)
            )
            return int(result.scalar_one())
        except Exception as e:
            logger.error(f"Error in CrmChatDao.countChatsByUserId. Error: {e}")
            raise e

    async def updateChat(self, session: AsyncSession, chat_id: int, **fields) -> CrmChat:
        """
        Update `sql`, `answer` and/or `interpretation` of an existing turn.

        Parameters
        ----------
        session : AsyncSession
            Active SQLAlchemy session.
        chat_id : int
            Identifier of the turn.
        **fields
            Any of `sql`, `answer`, `interpretation`.

        Raises
        ------
        ValueError
            If an unknown field is passed.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update CrmChat fields: {sorted(unknown)}")
        try:
            result = await session.execute(select(CrmChat).where(CrmChat.id == chat_id))
            crm_chat = result.scalar_one()
            for key, value in fields.items():
                setattr(crm_chat, key, value)
            await session.flush()
            return crm_chat
        except Exception as e:
            logger.error(f"Error in CrmChatDao.updateChat. Error: {e}")
            raise e
