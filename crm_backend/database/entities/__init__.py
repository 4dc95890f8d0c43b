"""
Entities Package — SQLAlchemy 2.0 ORM Models
============================================

The `entities` package defines the ORM models of the application, mapping
database tables to Python classes using SQLAlchemy 2.0-typed mappings.
These classes are consumed by DAOs (`daos` package).

Conventions
-----------
- Integer surrogate keys
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`
- JSONB on PostgreSQL for semi-structured values, plain JSON elsewhere

Contents
--------
- CrmChat
    One question/answer turn of the CRM assistant.
    * Fields: `id`, `user_id`, `question`, `sql`, `answer` (raw rows),
      `interpretation`, `created_at`, `updated_at`

- ChatMessage
    Append-only log of the plain chat and document Q&A endpoints.
    * Fields: `id`, `role` ("user" | "assistant"), `content`,
      `chat_model`, `embedding_model`, `created_at`
"""

from crm_backend.database.entities.crm_chat import CrmChat
from crm_backend.database.entities.chat_messages import ChatMessage, MessageRole

__all__ = ["CrmChat", "ChatMessage", "MessageRole"]
