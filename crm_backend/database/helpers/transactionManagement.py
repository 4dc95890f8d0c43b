"""
Database Transaction Management
===============================

This module provides utilities for managing SQLAlchemy async sessions
using Python context variables and a decorator-based transaction wrapper.

It allows seamless propagation of a database session across awaited calls
without explicitly threading it through arguments. Coroutine functions can
be decorated with ``@transactional`` to ensure they run inside a managed
transactional context.

Key features
~~~~~~~~~~~~
- Context variable to store the active session (task-local under asyncio)
- Implicit reuse of existing sessions
- Automatic commit and rollback handling
- Clean session closure after execution
"""

from functools import wraps
import contextvars
from crm_backend.database.config.connection_engine import session_factory

db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""Context variable storing the active SQLAlchemy ``AsyncSession``."""


def transactional(func):
    """
    Decorator to wrap coroutine functions in a managed SQLAlchemy transaction.

    Ensures that:
    - If a session already exists in context, it is reused.
    - Otherwise, a new session is created, committed, and closed.
    - On errors, the session is rolled back and closed.

    Parameters
    ----------
    func : coroutine function
        The function to wrap. It must accept a `session` keyword argument.

    Returns
    -------
    coroutine function
        The wrapped function, executed within a database transaction.

    Example
    -------
    >>> @transactional
    ... async def create_turn(turn: CrmChat, session=None):
    ...     session.add(turn)
    ...     return turn
    """
    @wraps(func)
    async def wrap_func(*args, **kwargs):
        session = db_session_context.get()
        if session:
            return await func(*args, session=session, **kwargs)

        session = session_factory()
        token = db_session_context.set(session)

        try:
            result = await func(*args, session=session, **kwargs)
            await session.flush()
            await session.commit()
        except Exception as e:
            await session.rollback()
            raise e
        finally:
            await session.close()
            db_session_context.reset(token)

        return result

    return wrap_func
