"""
Plain chat and document question answering.

Functions here serve the endpoints that are not part of the CRM workflow:

- ``chat``                  : one message to a chat model, brief-answer system prompt.
- ``answer_from_documents`` : retrieval over an ingested document index + answer
                              grounded strictly in the retrieved chunks.

Both log the user message and the model reply into ``chat_message``.
"""

import logging
from typing import Optional

from langchain_core.prompts import PromptTemplate

from crm_backend.api.conversation_store import ConversationStore
from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.api.models import ChatResponse
from crm_backend.api.retrieval import VectorIndexStore

logger = logging.getLogger(__name__)

BRIEF_SYSTEM_MESSAGE = "Responde con claridad y brevedad."
NO_ANSWER_MESSAGE = "No se encontró respuesta"

DOCUMENT_QA_PROMPT = PromptTemplate.from_template(
    """Eres un asistente útil que responde preguntas basado estrictamente en los documentos proporcionados.

Contexto:
{context}

Pregunta:
{question}"""
)


def usage_to_token_counts(usage: Optional[dict]) -> dict:
    """Map LangChain usage metadata to prompt/completion/total token counts (0 when missing)."""
    usage = usage or {}
    return {
        "promptTokens": usage.get("input_tokens", 0),
        "completionTokens": usage.get("output_tokens", 0),
        "totalTokens": usage.get("total_tokens", 0),
    }


class ChatService:
    """
    Args:
        gateway (LLMGateway): Chat-model access.
        retrieval (VectorIndexStore): Document indexes.
        store (ConversationStore): Message log.
    """

    def __init__(self, gateway: LLMGateway, retrieval: VectorIndexStore, store: ConversationStore):
        self.gateway = gateway
        self.retrieval = retrieval
        self.store = store

    async def chat(self, message: str, model: str) -> ChatResponse:
        """
        Send one message and log the exchange.

        Returns:
            ChatResponse: Reply text and token counts.
        """
        response = await self.gateway.complete(message, model=model, system=BRIEF_SYSTEM_MESSAGE)
        await self.store.save_exchange(message, response.text, chat_model=model)
        return ChatResponse(response=response.text, usage=usage_to_token_counts(response.usage))

    async def answer_from_documents(self, question: str, index_name: str, model: str) -> str:
        """
        Answer a question from an ingested document index.

        Args:
            question (str): User question.
            index_name (str): Document index to search.
            model (str): Chat model that writes the answer.

        Returns:
            str: The model's answer, or "No se encontró respuesta" when it is empty.
        """
        chunks = await self.retrieval.search(index_name, question)
        prompt = DOCUMENT_QA_PROMPT.format(
            context="\n".join(chunk.content for chunk in chunks),
            question=question,
        )
        response = await self.gateway.complete(prompt, model=model)
        answer = response.text or NO_ANSWER_MESSAGE
        embedding_model = self.retrieval.spec(index_name).embedding_model
        await self.store.save_exchange(question, answer, chat_model=model, embedding_model=embedding_model)
        return answer
