"""
Result interpretation: rows → short Spanish answer for a non-technical reader.
"""

import json
import logging
from typing import Any, List, Optional

from langchain_core.prompts import PromptTemplate

from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)

INTERPRETATION_PROMPT = PromptTemplate.from_template(
    """Eres un experto en CRM y bases de datos que responde en español. Un usuario ha hecho la siguiente pregunta:

{question}

Se ejecutó la siguiente consulta SQL:

{sql}

Y se obtuvo el siguiente resultado:

{result}

Responde de manera clara, concisa, sin repetir la pregunta ni mencionar al usuario, enumerando los elementos de forma ordenada si es que el resultado es un array de varios objetos.
No incluyas saludos, introducciones ni encabezados como "Respuesta".
No incluyas la consulta SQL ni menciones nombres de tablas, columnas ni estructura técnica.
Si se incluyen fechas en el resultado, muéstralas en el formato día/mes/año (por ejemplo, 23/08/2024).
Si el resultado devuelve alguna contraseña, no la muestres."""
)


class ResultInterpreter:
    """
    Turns query results into prose with one model call.

    Args:
        gateway (LLMGateway): Model access.
        model (str | None): Defaults to ``settings.CLASSIFIER_MODEL`` (the local model).
    """

    def __init__(self, gateway: LLMGateway, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model or settings.CLASSIFIER_MODEL

    async def interpret(self, question: str, sql: str, rows: List[dict[str, Any]]) -> str:
        """Return the model's text verbatim; provider errors propagate."""
        prompt = INTERPRETATION_PROMPT.format(
            question=question,
            sql=sql,
            result=json.dumps(rows, ensure_ascii=False, default=str),
        )
        response = await self.gateway.complete(prompt, model=self.model)
        return response.text
