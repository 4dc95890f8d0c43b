"""
API Package — FastAPI Router • Models • API-Key Auth • CRM Question Pipeline
===========================================================================

Mission
-------
This package defines the backend's HTTP interface and the question-answering
stack behind it: FastAPI routing, API-key auth, the LangGraph workflow that
turns Spanish questions into read-only SQL against the CRM database, and the
plain chat / document Q&A services.

Contents
--------
- fast_api
    FastAPI router with endpoints for:
      • CRM: ask a question, list a user's recent turns
      • Chat: hosted (OpenAI) and local (Ollama) single-message chat
      • Document Q&A over the ingested indexes
      • File upload into the document and schema indexes

- models
    Pydantic data contracts (CrmQuestion, CrmAnswer, CrmChatList, ChatRequest,
    ChatResponse, DocumentQuestion, IngestionReport, FileRec).

- utils
    API-key check and the FastAPI dependency enforcing it.

- llm_gateway
    Model-name → provider routing (ChatOpenAI / ChatOllama), async completions.

- retrieval
    Named LlamaIndex vector indexes persisted on disk (search / upsert).

- intent, sql_rules, sql_synthesis, sql_guard, query_executor, interpreter
    The steps of the SQL branch: classify, write SQL, extract and guard it,
    run it on the CRM database, explain the rows.

- conversation_store
    Turn persistence used by the workflow (wraps `database.core.funcs`).

- llm_pipeline
    LangGraph state machine: history → intent → branch → persisted answer.
      • Public entrypoint: CrmQuestionPipeline.answer_question(question, user_id, llm_model)

- chat_service
    Plain chat and document question answering, both logged to `chat_message`.

Operational Notes
-----------------
- Security: every router endpoint requires the `x-api-key` header. Never log secrets.
- Language: prompts and canned replies are Spanish.
"""
