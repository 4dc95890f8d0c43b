"""
FastAPI Router — CRM Questions • Chat • Document Q&A • File Ingestion
====================================================================

Purpose
-------
Defines the HTTP API for:
- CRM questions answered from the live database, and the per-user turn listing
- Plain chat with a hosted (OpenAI) or local (Ollama) model
- Question answering over ingested documents
- Uploading documents (and the CRM schema description) into vector indexes

Key Notes
---------
- Input validation via Pydantic models in `crm_backend.api.models`.
- Every route requires the `x-api-key` header (see `crm_backend.api.utils`).
- Collaborators (pipeline, conversation store, chat service, ingestor) are
  built at startup and read from `request.app.state`.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Path, Request, UploadFile

from crm_backend.api.models import (
    ChatRequest,
    ChatResponse,
    CrmAnswer,
    CrmChatList,
    CrmQuestion,
    DocumentQuestion,
    IngestionReport,
)
from crm_backend.api.retrieval import DOCUMENTS_MINILM_INDEX, DOCUMENTS_OPENAI_INDEX, SCHEMA_INDEX
from crm_backend.api.utils import verify_api_key
from crm_backend.database.config.config import settings
from crm_backend.ingestion.loaders import SUPPORTED_EXTENSIONS, UnsupportedDocumentError, guess_ext, persist_upload

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key)])
"""Creates the FastAPI router in which we define its routes (all guarded by the API key)"""

LISTING_ERROR = "Error al listar el chat del CRM"
INGESTION_ERROR = "Hubo un error al procesar el archivo"


@router.post('/chat/ask-crm-db', response_model=CrmAnswer)
async def ask_crm_db(data: CrmQuestion, request: Request):
    """Answer a natural-language question about the CRM.

    Request body:
        CrmQuestion {question, llm_model, user_id}

    Behavior:
        - Runs the CRM workflow (history → intent → branch).
        - Failures inside the workflow come back as a normal 200 response whose
          interpretation is "Ha ocurrido un error".

    Response:
        200: {'answer', 'result', 'interpretation'}
    """
    pipeline = request.app.state.pipeline
    return await pipeline.answer_question(data.question, data.user_id, data.llm_model)


@router.get('/chat/list-crm-chats/{user_id}/{message_number}', response_model=CrmChatList)
async def list_crm_chats(
    request: Request,
    user_id: int,
    message_number: int = Path(..., ge=1, description="Number of most recent turns to return."),
):
    """List a user's most recent turns, oldest first, plus their total count.

    Response:
        200: {'chats': [...], 'total_messages': int}
        422: message_number < 1
        500: storage failure
    """
    store = request.app.state.conversation_store
    try:
        return await store.list_by_user(user_id, message_number)
    except Exception:
        logger.exception(LISTING_ERROR)
        raise HTTPException(status_code=500, detail=LISTING_ERROR)


@router.post('/chat/opengpt', response_model=ChatResponse)
async def chat_openai(data: ChatRequest, request: Request):
    """Send one message to the hosted chat model; returns the reply and token usage."""
    return await request.app.state.chat_service.chat(data.message, settings.OPEN_AI_CHAT_MODEL)


@router.post('/chat/ollama', response_model=ChatResponse, response_model_exclude_none=True)
async def chat_ollama(data: ChatRequest, request: Request):
    """Send one message to the local chat model; returns the reply only."""
    response = await request.app.state.chat_service.chat(data.message, settings.LOCAL_CHAT_MODEL)
    return ChatResponse(response=response.response)


@router.post('/question-answer/ollama-gemma3-allminilm', response_model=str)
async def question_ollama_allminilm(data: DocumentQuestion, request: Request):
    """Answer from documents embedded with all-minilm, using the local chat model."""
    return await request.app.state.chat_service.answer_from_documents(
        data.question, DOCUMENTS_MINILM_INDEX, settings.LOCAL_CHAT_MODEL
    )


@router.post('/question-answer/openai-35-turbo3-small', response_model=str)
async def question_openai_3small(data: DocumentQuestion, request: Request):
    """Answer from documents embedded with text-embedding-3-small, using the hosted chat model."""
    return await request.app.state.chat_service.answer_from_documents(
        data.question, DOCUMENTS_OPENAI_INDEX, settings.OPEN_AI_CHAT_MODEL
    )


async def ingest_upload(request: Request, file: UploadFile, index_name: str) -> dict:
    """Persist an upload and ingest it into `index_name`, mapping failures to HTTP errors."""
    ext = guess_ext(file.filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail=str(UnsupportedDocumentError(ext)))
    try:
        stored = await asyncio.to_thread(persist_upload, file)
        return await request.app.state.ingestor.ingest(stored.path, stored.original, index_name)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Error while ingesting %s into %s", file.filename, index_name)
        raise HTTPException(status_code=500, detail=INGESTION_ERROR)


@router.post('/files/all-minilm', response_model=IngestionReport)
async def upload_all_minilm(request: Request, file: UploadFile = File(...)):
    """Ingest a .pdf/.txt file into the all-minilm document index."""
    return await ingest_upload(request, file, DOCUMENTS_MINILM_INDEX)


@router.post('/files/openai-3-small', response_model=IngestionReport)
async def upload_openai_3small(request: Request, file: UploadFile = File(...)):
    """Ingest a .pdf/.txt file into the text-embedding-3-small document index."""
    return await ingest_upload(request, file, DOCUMENTS_OPENAI_INDEX)


@router.post('/files/embed-schema', response_model=IngestionReport)
async def upload_schema(request: Request, file: UploadFile = File(...)):
    """Ingest a description of the CRM schema; SQL synthesis retrieves from it."""
    return await ingest_upload(request, file, SCHEMA_INDEX)
