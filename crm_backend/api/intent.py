"""
Intent classification for incoming CRM questions.

One prompt, one model call, one exact-match parse. Anything the model says
that is not exactly one of the four labels maps to ``UNRECOGNIZED``; a sloppy
classifier therefore produces the polite "out of scope" reply instead of
sending a greeting down the SQL path.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from langchain_core.prompts import PromptTemplate

from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)


class IntentLabel(str, Enum):
    """Closed set of intents the assistant acts on."""
    GREETING = "hello"
    FAREWELL = "bye"
    CONVERSATIONAL = "conversation"
    SQL_QUESTION = "sql"
    UNRECOGNIZED = "unrecognized"


CLASSIFY_PROMPT = PromptTemplate.from_template(
    """Clasifica el siguiente mensaje como:
- "sql" si requiere una consulta a base de datos incluyendo preguntas sobre leads, precontactos, asesores, ganados, ventas.
- "hello" si es un saludo o agradecimiento.
- "bye" si es una despedida, incluso si es informal (ej: "nos vemos", "hasta luego", "cuídate").
- "conversation" si es una conversación general.

Responde solo con una de las palabras: "sql", "hello", "bye" o "conversation". No expliques tu respuesta.
Si el mensaje es sobre **oportunidades** clasifícalo como "sql".
Considera el historial reciente si el mensaje actual es una continuación.

Historial reciente:
{history}

Mensaje: {message}"""
)


def render_history(turns: Iterable[dict]) -> str:
    """
    Render prior turns, oldest first, as the history snippet used in prompts.

    Each turn becomes ``"Usuario: {question}\\nAsistente: {interpretation}"``;
    turns are joined with a newline. A missing interpretation renders as an
    empty string.
    """
    return "\n".join(
        f"Usuario: {turn.get('question', '')}\nAsistente: {turn.get('interpretation') or ''}"
        for turn in turns
    )


def parse_intent(raw: str) -> IntentLabel:
    """Map the classifier's raw output to a label (exact match after trim/lower-case)."""
    label = (raw or "").strip().lower()
    match label:
        case "sql":
            return IntentLabel.SQL_QUESTION
        case "hello":
            return IntentLabel.GREETING
        case "bye":
            return IntentLabel.FAREWELL
        case "conversation":
            return IntentLabel.CONVERSATIONAL
        case _:
            return IntentLabel.UNRECOGNIZED


class IntentClassifier:
    """
    LLM-backed intent classifier.

    Args:
        gateway (LLMGateway): Model access.
        model (str | None): Classifier model; defaults to ``settings.CLASSIFIER_MODEL``.
    """

    def __init__(self, gateway: LLMGateway, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model or settings.CLASSIFIER_MODEL

    async def classify(self, message: str, history: str = "") -> IntentLabel:
        """
        Classify a message given the rendered recent history.

        Returns:
            IntentLabel: Never raises for odd model output; provider errors propagate.
        """
        prompt = CLASSIFY_PROMPT.format(history=history, message=message)
        response = await self.gateway.complete(prompt, model=self.model)
        intent = parse_intent(response.text)
        logger.info("Classified message as %s (raw=%r)", intent.value, response.text[:40])
        return intent
