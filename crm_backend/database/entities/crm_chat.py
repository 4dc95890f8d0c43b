"""
CrmChat ORM Model
=================

The ``CrmChat`` ORM model represents one question/answer turn between a user
and the CRM assistant, stored in the ``crm_chat`` table.

Key features
~~~~~~~~~~~~
- Integer surrogate primary key (``id``)
- Owner of the turn (``user_id``)
- The question as asked (``question``), always set on creation
- Progressively filled fields: generated SQL (``sql``), raw rows returned by
  the CRM database (``answer``, JSONB on PostgreSQL) and the natural-language
  reply (``interpretation``)
- Timezone-aware ``created_at`` / ``updated_at`` timestamps (UTC)

Integration notes
~~~~~~~~~~~~~~~~~
- Greeting, farewell and unrecognized turns only carry ``question`` and
  ``interpretation``.
- SQL turns are inserted with the question alone and updated in place as the
  pipeline advances, so a failed turn still leaves a partial record.
"""

from crm_backend.database.config.connection_engine import declarativeBase
from sqlalchemy import BigInteger, DateTime, Integer, JSON, TEXT
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class CrmChat(declarativeBase):
    """
    ORM model for the `crm_chat` table.

    Attributes
    ----------
    id : int
        Primary key.
    user_id : int
        Owner of the turn.
    question : str
        The user's question.
    sql : str | None
        SQL statement synthesized for the question, if any.
    answer : Any | None
        Rows returned by the CRM database (JSON), if the SQL was executed.
    interpretation : str | None
        Natural-language reply shown to the user.
    created_at : datetime
        Creation timestamp (UTC).
    updated_at : datetime
        Last update timestamp (UTC).
    """

    __tablename__ = 'crm_chat'

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    question: Mapped[str] = mapped_column(TEXT, nullable=False)

    sql: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    """Generated SQL, stored as soon as it is known."""

    answer: Mapped[Any] = mapped_column(
        JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql"), nullable=True
    )
    """Raw result rows."""

    interpretation: Mapped[str | None] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    def __init__(
        self,
        user_id: int,
        question: str,
        interpretation: str | None = None,
        sql: str | None = None,
        answer: Any | None = None,
        created_at: datetime | str | None = None,
    ):
        """
        Initialize a new CrmChat turn.

        Parameters
        ----------
        user_id : int
            Owner of the turn.
        question : str
            The user's question.
        interpretation : str | None
            Reply, when it is known up front (canned answers).
        sql : str | None
            Generated SQL, if already known.
        answer : Any | None
            Raw rows, if already known.
        created_at : datetime | str | None
            Creation time. Accepts datetime or ISO8601 string; defaults to now.
        """
        self.user_id = user_id
        self.question = question
        self.interpretation = interpretation
        self.sql = sql
        self.answer = answer
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        self.created_at = created_at or utc_now()
        self.updated_at = self.created_at

    def __str__(self) -> str:
        return (
            f"CrmChat: id:{self.id}, user: {self.user_id}, question: {self.question}, "
            f"time_created: {self.created_at}"
        )
