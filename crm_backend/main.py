"""
FastAPI application bootstrap with: \n
- Lifespan-managed creation of the database tables and the CRM question pipeline \n
- CORS configured for the frontend \n
- Unauthenticated health check \n

Environment contract (from `settings`): \n
- INIT_MODE: if 'runtime', create tables and build the pipeline during app startup. \n
- FRONTEND_URL: allowed CORS origin. \n
- SQL_RULES_PATH: optional JSON file overriding the built-in SQL naming rules. \n
"""

from fastapi import FastAPI
from crm_backend.api.fast_api import router
from fastapi.middleware.cors import CORSMiddleware
from crm_backend.database.config.config import settings
from crm_backend.database.config.connection_engine import connection_engine, create_tables
import logging
from contextlib import asynccontextmanager
from crm_backend.api.chat_service import ChatService
from crm_backend.api.conversation_store import ConversationStore
from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.api.llm_pipeline import CrmQuestionPipeline
from crm_backend.api.query_executor import CrmQueryExecutor
from crm_backend.api.retrieval import VectorIndexStore
from crm_backend.api.sql_rules import load_sql_rules
from crm_backend.api.sql_synthesis import SqlSynthesizer
from crm_backend.ingestion.pipeline import DocumentIngestor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    App lifespan manager.

    Notes
    ------------
    - On startup (before yielding):
        * If INIT_MODE == 'runtime':
            - Create the application tables.
            - Build the gateway, vector index store, conversation store and CRM executor.
            - Construct the CRM pipeline, chat service and ingestor, attach them to `app.state`.
    - On shutdown (after yielding):
        * Dispose the CRM executor engine (if created) and the application engine.
    """
    print("⚙️  Initializing CRM assistant...")
    executor = None

    if settings.INIT_MODE == "runtime":
        await create_tables()

        gateway = LLMGateway()
        retrieval = VectorIndexStore()
        store = ConversationStore()
        executor = CrmQueryExecutor()
        synthesizer = SqlSynthesizer(gateway, rules=load_sql_rules(settings.SQL_RULES_PATH))

        app.state.pipeline = CrmQuestionPipeline(gateway, retrieval, store, executor, synthesizer=synthesizer)
        app.state.conversation_store = store
        app.state.chat_service = ChatService(gateway, retrieval, store)
        app.state.ingestor = DocumentIngestor(retrieval)
        print("✅ Tables ready and pipeline loaded.")
    else:
        print(f"⏭️  Skipping runtime init (INIT_MODE={settings.INIT_MODE}).")

    try:
        yield
    finally:
        if executor is not None:
            await executor.dispose()
        await connection_engine.dispose()
        print("🛑 App shutting down, database connections released.")


# Instantiate the FastAPI app with lifespan handler
app = FastAPI(lifespan=lifespan)
"""Instatiates a FastAPI application object
    The lifespan=lifespan argument registers a custom startup/shutdown lifecycle manager that:\n
        - On startup: creates tables and builds the pipeline if INIT_MODE == 'runtime'.\n
        - On shutdown: releases database connections. \n
"""

logger = logging.getLogger("uvicorn")
"""Logger instance for capturing and emitting Uvicorn server logs."""

# -----------------------
# CORS configuration
# -----------------------
url = settings.FRONTEND_URL
"""The allowed frontend origin (URL) used for CORS configuration.
This value comes from application settings and represents the domain that is permitted to interact with the backend via cross-origin requests.
"""


app.add_middleware(
    CORSMiddleware,
    allow_origins=[url],      # Frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------
# API routes
# -----------------------
app.include_router(router)


@app.get("/health")
async def health():
    """Liveness probe; does not require the API key."""
    return {"status": "ok"}
