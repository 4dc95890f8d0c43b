"""
DAOs Package — Data Access Layer (SQLAlchemy 2.0, asyncio)
==========================================================

The `daos` package provides the Data Access Layer for the application.
It encapsulates all interactions with SQLAlchemy ORM entities, providing
clean async CRUD APIs for the service layer while hiding query details.

Conventions
-----------
- SQLAlchemy 2.0 typed mappings (Mapped[...] / mapped_column)
- Session lifecycle (open/commit/rollback) is handled by callers
- DAOs surface exceptions so upper layers decide error policy

Contents
--------
- CrmChatDao
    Manages CRM assistant turns:
    * Creates turns
    * Fetches a user's most recent turns and counts all of them
    * Updates `sql`, `answer` and `interpretation` in place

- ChatMessagesDao
    Manages the chat message log:
    * Creates both sides of an exchange in one flush
    * Fetches the latest messages (chronological order)
"""
