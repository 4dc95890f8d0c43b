"""
HTTP surface tests: API key enforcement, request validation and error mapping.
"""

import pytest
from fastapi.testclient import TestClient

from crm_backend.api.models import ChatResponse, CrmAnswer
from crm_backend.main import app

HEADERS = {"x-api-key": "test-api-key"}


class StubPipeline:
    def __init__(self):
        self.calls = []

    async def answer_question(self, question, user_id, llm_model):
        self.calls.append((question, user_id, llm_model))
        return CrmAnswer(answer="SELECT count(*) FROM oportunity;", result=[{"count": 5}], interpretation="Hay 5.")


class FailingStore:
    async def list_by_user(self, user_id, limit):
        raise RuntimeError("database unavailable")


class StubChatService:
    async def chat(self, message, model):
        return ChatResponse(response=f"{model}: {message}", usage={"promptTokens": 1, "completionTokens": 1, "totalTokens": 2})

    async def answer_from_documents(self, question, index_name, model):
        return f"{index_name}|{model}"


class StubIngestor:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def ingest(self, path, original_name, index_name):
        self.calls.append((original_name, index_name))
        if self.error is not None:
            raise self.error
        return {"message": "Archivo procesado y almacenado exitosamente", "documents": 1, "chunks": 2}


@pytest.fixture
def client(fake_store, tmp_path, monkeypatch):
    from crm_backend.database.config.config import settings

    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    app.state.pipeline = StubPipeline()
    app.state.conversation_store = fake_store
    app.state.chat_service = StubChatService()
    app.state.ingestor = StubIngestor()
    return TestClient(app)


def test_health_needs_no_key(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("headers", [{}, {"x-api-key": "wrong"}])
def test_missing_or_wrong_key_is_rejected_before_the_pipeline(client, headers):
    response = client.post(
        "/chat/ask-crm-db",
        json={"question": "hola", "llm_model": "gpt-4o-mini", "user_id": 1},
        headers=headers,
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "API Key inválida"}
    assert app.state.pipeline.calls == []


def test_ask_crm_db(client):
    response = client.post(
        "/chat/ask-crm-db",
        json={"question": "¿Cuántas oportunidades hay?", "llm_model": "gpt-4o-mini", "user_id": 4},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == {
        "answer": "SELECT count(*) FROM oportunity;",
        "result": [{"count": 5}],
        "interpretation": "Hay 5.",
    }
    assert app.state.pipeline.calls == [("¿Cuántas oportunidades hay?", 4, "gpt-4o-mini")]


def test_ask_crm_db_without_model_leaves_the_choice_to_the_pipeline(client):
    response = client.post("/chat/ask-crm-db", json={"question": "hola", "user_id": 4}, headers=HEADERS)
    assert response.status_code == 200
    assert app.state.pipeline.calls == [("hola", 4, None)]


def test_ask_crm_db_validates_body(client):
    response = client.post("/chat/ask-crm-db", json={"question": "hola"}, headers=HEADERS)
    assert response.status_code == 422


def test_list_crm_chats(client, fake_store):
    for i in range(4):
        fake_store.add_turn(9, f"pregunta {i}", f"respuesta {i}")

    response = client.get("/chat/list-crm-chats/9/2", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert [chat["question"] for chat in body["chats"]] == ["pregunta 2", "pregunta 3"]
    assert body["total_messages"] == 4


def test_list_crm_chats_requires_positive_limit(client):
    assert client.get("/chat/list-crm-chats/9/0", headers=HEADERS).status_code == 422


def test_list_crm_chats_storage_failure(client):
    app.state.conversation_store = FailingStore()
    response = client.get("/chat/list-crm-chats/9/5", headers=HEADERS)
    assert response.status_code == 500
    assert response.json() == {"detail": "Error al listar el chat del CRM"}


def test_chat_endpoints(client):
    openai_reply = client.post("/chat/opengpt", json={"message": "hola"}, headers=HEADERS).json()
    assert openai_reply["response"] == "gpt-3.5-turbo: hola"
    assert openai_reply["usage"]["totalTokens"] == 2

    ollama_reply = client.post("/chat/ollama", json={"message": "hola"}, headers=HEADERS).json()
    assert ollama_reply == {"response": "gemma3:latest: hola"}


def test_document_question_endpoints(client):
    minilm = client.post("/question-answer/ollama-gemma3-allminilm", json={"question": "x"}, headers=HEADERS)
    openai = client.post("/question-answer/openai-35-turbo3-small", json={"question": "x"}, headers=HEADERS)
    assert minilm.json() == "documents_all_minilm|gemma3:latest"
    assert openai.json() == "documents_openai_3small|gpt-3.5-turbo"


def test_upload_schema(client):
    response = client.post(
        "/files/embed-schema",
        files={"file": ("schema.txt", b"tabla lead(id, fullname)", "text/plain")},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Archivo procesado y almacenado exitosamente", "documents": 1, "chunks": 2}
    assert app.state.ingestor.calls == [("schema.txt", "crm_schema")]


def test_upload_unsupported_type(client):
    response = client.post(
        "/files/all-minilm",
        files={"file": ("foto.png", b"\x89PNG", "image/png")},
        headers=HEADERS,
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Tipo de archivo no soportado: .png"}
    assert app.state.ingestor.calls == []


def test_upload_processing_failure(client):
    app.state.ingestor = StubIngestor(error=RuntimeError("embedding service down"))
    response = client.post(
        "/files/openai-3-small",
        files={"file": ("manual.pdf", b"%PDF-1.4", "application/pdf")},
        headers=HEADERS,
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "Hubo un error al procesar el archivo"}
