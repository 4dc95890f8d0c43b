"""
Pydantic models used for request/response validation and API data contracts.

Each class defines the structure of data expected in API endpoints, ensuring
validation and automatic OpenAPI schema generation.
"""

from pydantic import BaseModel
from typing import Any, List, Optional
from pydantic import Field


class FileRec(BaseModel):
    """Metadata for an uploaded/stored file."""
    original: str = Field(..., description="Original filename as provided by the client.", examples=["catalogo.pdf"])
    path: str = Field(..., description="Server-side storage path.", examples=["documents/input/3f2a-catalogo.pdf"])
    mime: str = Field(..., description="MIME type of the file.", examples=["application/pdf"])


class CrmQuestion(BaseModel):
    """
    A natural-language question about the CRM data.
    """
    question: str = Field(..., min_length=1, examples=["¿Cuántas oportunidades hay?"])
    """The question exactly as typed by the user."""
    llm_model: Optional[str] = Field(None, min_length=1, examples=["gpt-4o-mini"])
    """Chat model used to synthesize the SQL statement; the configured default when omitted."""
    user_id: int
    """Owner of the turn; used for history and persistence."""


class CrmAnswer(BaseModel):
    """
    Result of one CRM assistant turn.
    """
    answer: str
    """The executed SQL on a successful SQL turn, otherwise the question itself."""
    result: Optional[List[dict[str, Any]]] = None
    """Rows returned by the CRM database, when SQL was executed."""
    interpretation: str
    """Natural-language reply shown to the user."""


class CrmChatRecord(BaseModel):
    """
    A persisted turn as returned by the listing endpoint.
    """
    id: int
    user_id: int
    question: str
    sql: Optional[str] = None
    answer: Optional[Any] = None
    interpretation: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CrmChatList(BaseModel):
    """
    Chronological page of a user's most recent turns.
    """
    chats: List[CrmChatRecord]
    """Newest turns, oldest first."""
    total_messages: int
    """Count of all of the user's turns, independent of the page size."""


class ChatRequest(BaseModel):
    """
    A single message for the plain chat endpoints.
    """
    message: str = Field(..., min_length=1)
    """Text sent to the chat model."""


class ChatResponse(BaseModel):
    """
    Reply of a plain chat endpoint.
    """
    response: str
    """Text produced by the model."""
    usage: Optional[dict[str, Any]] = None
    """Token accounting reported by the provider, when available."""


class DocumentQuestion(BaseModel):
    """
    A question answered from the ingested document corpus.
    """
    question: str = Field(..., min_length=1)


class IngestionReport(BaseModel):
    """
    Outcome of ingesting one uploaded file.
    """
    message: str
    """Human readable status."""
    documents: int
    """Number of source documents (pages or files) loaded."""
    chunks: int
    """Number of chunks embedded and stored."""
