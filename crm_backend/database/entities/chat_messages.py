"""
ChatMessage ORM Model
=====================

The ``ChatMessage`` ORM model is the append-only log written by the plain chat
and document question-answering endpoints. Each exchange stores two rows: the
user's message and the assistant's reply.

Key features
~~~~~~~~~~~~
- Integer surrogate primary key (``id``)
- Sender role (``role``): ``user`` or ``assistant``
- Message text (``content``)
- Optional model identifiers (``chat_model``, ``embedding_model``)
- Timezone-aware ``created_at`` timestamp (UTC)
"""

from crm_backend.database.config.connection_engine import declarativeBase
from sqlalchemy import BigInteger, DateTime, Integer, TEXT
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from enum import Enum


class MessageRole(str, Enum):
    """Sender of a logged chat message."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(declarativeBase):
    """
    ORM model for the `chat_message` table.

    Attributes
    ----------
    id : int
        Primary key.
    role : str
        Role of the sender ("user" | "assistant").
    content : str
        Text of the message.
    chat_model : str | None
        Chat model that produced (or received) the message.
    embedding_model : str | None
        Embedding model used for retrieval, when any.
    created_at : datetime
        Timestamp when the message was created (UTC).
    """

    __tablename__ = 'chat_message'

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )

    role: Mapped[str] = mapped_column(TEXT, nullable=False)

    content: Mapped[str] = mapped_column(TEXT, nullable=False)

    chat_model: Mapped[str | None] = mapped_column(TEXT, nullable=True)

    embedding_model: Mapped[str | None] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def __init__(
        self,
        role: MessageRole | str,
        content: str,
        chat_model: str | None = None,
        embedding_model: str | None = None,
        created_at: datetime | None = None,
    ):
        """
        Initialize a new ChatMessage.

        Parameters
        ----------
        role : MessageRole | str
            Sender role. Raises ``ValueError`` for anything but user/assistant.
        content : str
            Text of the message.
        chat_model : str | None
            Optional chat model name.
        embedding_model : str | None
            Optional embedding model name.
        created_at : datetime | None
            Creation time; defaults to now (UTC).
        """
        self.role = MessageRole(role).value
        self.content = content
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        self.created_at = created_at or datetime.now(timezone.utc)

    def __str__(self) -> str:
        return (
            f"role: {self.role}, "
            f"message: {self.content}, "
            f"time_created: {self.created_at}"
        )
