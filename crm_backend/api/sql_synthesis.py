"""
SQL synthesis: question + schema context + history → one PostgreSQL SELECT.

The prompt carries the CRM naming rules (see :mod:`crm_backend.api.sql_rules`),
the retrieved schema chunks, the recent history and the question. The model
reply goes through :func:`crm_backend.api.sql_guard.extract_sql` before it is
returned.
"""

import logging
from typing import List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel

from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.api.retrieval import RetrievedChunk
from crm_backend.api.sql_guard import extract_sql
from crm_backend.api.sql_rules import DEFAULT_SQL_RULES, SqlRuleSet

logger = logging.getLogger(__name__)

SQL_PROMPT = PromptTemplate.from_template(
    """Eres un experto en SQL. Dada la pregunta, debes crear una consulta SQL sintácticamente correcta, utilizando solo las columnas y tablas presentes en el contexto del esquema proporcionado.
La consulta debe ser de solo lectura: nunca modifiques datos ni el esquema.
Ten en cuenta las siguientes reglas:
{rules}
Debes responder utilizando **solo** código SQL, sin envolverla en algún bloque de código, sin saltos de línea, sin caracteres especiales, sin explicaciones, sin comentarios, y sin texto adicional.

Historial reciente:
{history}

Contexto:
{context}

Pregunta:
{question}"""
)


class SqlCandidate(BaseModel):
    """Model reply and the statement extracted from it."""
    raw: str
    sql: str


class SqlSynthesizer:
    """
    Builds the synthesis prompt and calls the selected model.

    Args:
        gateway (LLMGateway): Model access.
        rules (SqlRuleSet | None): Naming rules; defaults to the built-in set.
    """

    def __init__(self, gateway: LLMGateway, rules: Optional[SqlRuleSet] = None):
        self.gateway = gateway
        self.rules = rules or DEFAULT_SQL_RULES

    def build_prompt(self, question: str, context: List[RetrievedChunk], history: str) -> str:
        return SQL_PROMPT.format(
            rules=self.rules.render(),
            history=history,
            context="\n".join(chunk.content for chunk in context),
            question=question,
        )

    async def synthesize(
        self, question: str, context: List[RetrievedChunk], history: str, model: str
    ) -> SqlCandidate:
        """
        Produce one SQL candidate.

        Args:
            question (str): User question.
            context (list[RetrievedChunk]): Schema chunks; only ``content`` is used.
            history (str): Rendered recent turns.
            model (str): Model that writes the SQL.

        Returns:
            SqlCandidate: Raw reply and extracted statement (possibly empty).
        """
        response = await self.gateway.complete(self.build_prompt(question, context, history), model=model)
        sql = extract_sql(response.text)
        logger.info("Raw SQL reply: %s", response.text)
        logger.info("Extracted SQL: %s", sql)
        return SqlCandidate(raw=response.text, sql=sql)
