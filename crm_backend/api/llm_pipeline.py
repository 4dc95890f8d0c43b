"""
CRM Question Workflow: History • Intent • RAG • SQL Synthesis • Guard • Execution • Interpretation
==================================================================================================

Purpose
-------
This module wires up the LangGraph state machine that answers one question
about the CRM:

- Loads the user's last turns and renders them as history.
- Classifies the message (greeting, farewell, conversation, SQL, unrecognized).
- Answers greetings/farewells/unrecognized messages with fixed Spanish replies.
- Answers general conversation from the ``general_knowledge`` index.
- For data questions: retrieves schema chunks, synthesizes SQL, guards it,
  executes it on the CRM database and interprets the rows.

Every branch persists exactly one ``crm_chat`` row. SQL turns are inserted with
the question alone and updated as the graph advances, so a failure leaves a
partial record behind.

Graph
-----
::

    load_history → classify ─┬─ greeting ─────────────→ END
                             ├─ farewell ─────────────→ END
                             ├─ unrecognized ─────────→ END
                             ├─ conversation ─────────→ END
                             └─ sql_draft ─┬─ sql_refusal ───────────────→ END
                                           └─ sql_execute → sql_interpret → END

Key Components
--------------
- CrmState              : Shared graph state (TypedDict).
- CrmQuestionPipeline   : Builds the graph from injected collaborators and
                          exposes :meth:`CrmQuestionPipeline.answer_question`.

Configuration (settings)
------------------------
- settings.CLASSIFIER_MODEL : Local model used for classification, conversation
                              and interpretation.
- settings.OPEN_AI_MODEL    : SQL model when the request does not name one.
"""

import logging
from typing import Any, List, Optional, TypedDict

from langchain_core.prompts import PromptTemplate
from langgraph.graph import END, StateGraph

from crm_backend.api.conversation_store import ConversationStore
from crm_backend.api.intent import IntentClassifier, IntentLabel, render_history
from crm_backend.api.interpreter import ResultInterpreter
from crm_backend.api.llm_gateway import LLMGateway
from crm_backend.api.models import CrmAnswer
from crm_backend.api.query_executor import CrmQueryExecutor
from crm_backend.api.retrieval import GENERAL_INDEX, SCHEMA_INDEX, VectorIndexStore
from crm_backend.api.sql_guard import REFUSAL_MESSAGE, validate_sql
from crm_backend.api.sql_synthesis import SqlSynthesizer
from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)

GREETING_MESSAGE = (
    "¡Hola! 👋 Soy tu asistente de consultas para el CRM. \n"
    "Puedes hacerme preguntas como: \n"
    "- ¿Cuántas oportunidades hay?\n"
    "- Muestra los últimos 10 precontactos.\n"
    "¡Adelante, dime qué quieres saber! 😊"
)
FAREWELL_MESSAGE = (
    "¡Hasta luego! 😊 Si necesitas algo más sobre el CRM, estaré aquí para ayudarte. "
    "¡Que tengas un buen día!"
)
UNRECOGNIZED_MESSAGE = "Solo puedo ayudarte con preguntas sobre la base de datos o SAP"
FAILURE_MESSAGE = "Ha ocurrido un error"

CONVERSATION_PROMPT = PromptTemplate.from_template(
    """Eres un asistente conversacional experto.
Debes responder de manera natural y directa, utilizando como base el historial de conversación y los documentos proporcionados, sin mencionarlos explícitamente.
Si encuentras información relacionada en el contexto, complétala con tu conocimiento general para dar una respuesta más completa.
Si el tema no aparece en el contexto indica amablemente que no puedes responder y menciona los temas de los que sí dispones información.
Evita inventar datos.

Historial reciente:
{history}

Contexto:
{context}

Pregunta:
{question}"""
)


class CrmState(TypedDict, total=False):
    """
    Shared graph state.

    Keys:
        question (str): The user's message, unchanged.
        user_id (int): Owner of the turn.
        llm_model (str): Model selected by the client for SQL synthesis.
        history (str): Rendered recent turns, oldest first.
        intent (IntentLabel): Classifier verdict.
        turn_id (int): Id of the persisted SQL turn.
        sql (str): Extracted SQL statement.
        sql_accepted (bool): Guard verdict.
        rows (list[dict]): Rows returned by the CRM database.
        answer (str): ``answer`` field of the response.
        result (list[dict] | None): ``result`` field of the response.
        interpretation (str): ``interpretation`` field of the response.
    """
    question: str
    user_id: int
    llm_model: str
    history: str
    intent: IntentLabel
    turn_id: int
    sql: str
    sql_accepted: bool
    rows: List[dict[str, Any]]
    answer: str
    result: Optional[List[dict[str, Any]]]
    interpretation: str


class CrmQuestionPipeline:
    """
    End-to-end CRM assistant built on LangGraph.

    Responsibilities:
        - Hold references to the store, retrieval, gateway and executor.
        - Drive the graph for each question and degrade to a soft failure reply.

    Args:
        gateway (LLMGateway): Chat-model access.
        retrieval (VectorIndexStore): Named vector indexes.
        store (ConversationStore): Turn persistence.
        executor (CrmQueryExecutor): CRM database access.
        classifier (IntentClassifier | None): Defaults to one built on ``gateway``.
        synthesizer (SqlSynthesizer | None): Defaults to one built on ``gateway``.
        interpreter (ResultInterpreter | None): Defaults to one built on ``gateway``.
        conversation_model (str | None): Defaults to ``settings.CLASSIFIER_MODEL``.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        retrieval: VectorIndexStore,
        store: ConversationStore,
        executor: CrmQueryExecutor,
        classifier: Optional[IntentClassifier] = None,
        synthesizer: Optional[SqlSynthesizer] = None,
        interpreter: Optional[ResultInterpreter] = None,
        conversation_model: Optional[str] = None,
    ):
        self.gateway = gateway
        self.retrieval = retrieval
        self.store = store
        self.executor = executor
        self.classifier = classifier or IntentClassifier(gateway)
        self.synthesizer = synthesizer or SqlSynthesizer(gateway)
        self.interpreter = interpreter or ResultInterpreter(gateway)
        self.conversation_model = conversation_model or settings.CLASSIFIER_MODEL
        self.app = self.initialize_workflow()

    # ---- nodes

    async def load_history(self, state: CrmState) -> dict:
        """Fetch the last turns of the user and render them oldest first."""
        turns = await self.store.recent_turns(state["user_id"])
        return {"history": render_history(turns)}

    async def classify(self, state: CrmState) -> dict:
        intent = await self.classifier.classify(state["question"], state.get("history", ""))
        return {"intent": intent}

    async def _canned(self, state: CrmState, message: str) -> dict:
        await self.store.create_turn(state["user_id"], state["question"], interpretation=message)
        return {"answer": state["question"], "result": None, "interpretation": message}

    async def greeting(self, state: CrmState) -> dict:
        return await self._canned(state, GREETING_MESSAGE)

    async def farewell(self, state: CrmState) -> dict:
        return await self._canned(state, FAREWELL_MESSAGE)

    async def unrecognized(self, state: CrmState) -> dict:
        return await self._canned(state, UNRECOGNIZED_MESSAGE)

    async def conversation(self, state: CrmState) -> dict:
        """Answer general conversation from the general knowledge index."""
        chunks = await self.retrieval.search(GENERAL_INDEX, state["question"])
        prompt = CONVERSATION_PROMPT.format(
            history=state.get("history", ""),
            context="\n".join(chunk.content for chunk in chunks),
            question=state["question"],
        )
        response = await self.gateway.complete(prompt, model=self.conversation_model)
        await self.store.create_turn(state["user_id"], state["question"], interpretation=response.text)
        return {"answer": state["question"], "result": None, "interpretation": response.text}

    async def sql_draft(self, state: CrmState) -> dict:
        """
        Persist the turn, retrieve schema context, synthesize and guard the SQL.
        The extracted SQL is stored before the guard runs.
        """
        turn_id = await self.store.create_turn(state["user_id"], state["question"])
        chunks = await self.retrieval.search(SCHEMA_INDEX, state["question"])
        candidate = await self.synthesizer.synthesize(
            state["question"], chunks, state.get("history", ""), model=state["llm_model"]
        )
        await self.store.update_turn(turn_id, sql=candidate.sql)
        verdict = validate_sql(candidate.sql)
        if not verdict.accepted:
            logger.warning("Rejected SQL (%s: %s): %s", verdict.reason, verdict.keyword, candidate.sql)
        return {"turn_id": turn_id, "sql": candidate.sql, "sql_accepted": verdict.accepted}

    async def sql_refusal(self, state: CrmState) -> dict:
        await self.store.update_turn(state["turn_id"], interpretation=REFUSAL_MESSAGE)
        return {"answer": state["question"], "result": None, "interpretation": REFUSAL_MESSAGE}

    async def sql_execute(self, state: CrmState) -> dict:
        rows = await self.executor.execute(state["sql"])
        await self.store.update_turn(state["turn_id"], answer=rows)
        return {"rows": rows}

    async def sql_interpret(self, state: CrmState) -> dict:
        interpretation = await self.interpreter.interpret(state["question"], state["sql"], state["rows"])
        await self.store.update_turn(state["turn_id"], interpretation=interpretation)
        return {"answer": state["sql"], "result": state["rows"], "interpretation": interpretation}

    # ---- routing

    def route_intent(self, state: CrmState) -> str:
        match state["intent"]:
            case IntentLabel.GREETING:
                return "greeting"
            case IntentLabel.FAREWELL:
                return "farewell"
            case IntentLabel.CONVERSATIONAL:
                return "conversation"
            case IntentLabel.SQL_QUESTION:
                return "sql_draft"
            case IntentLabel.UNRECOGNIZED:
                return "unrecognized"

    def route_sql(self, state: CrmState) -> str:
        return "sql_execute" if state["sql_accepted"] else "sql_refusal"

    def initialize_workflow(self):
        """
        Build and compile the LangGraph workflow (see module docstring).

        Returns:
            Any: Compiled app instance.
        """
        workflow = StateGraph(CrmState)

        workflow.add_node("load_history", self.load_history)
        workflow.add_node("classify", self.classify)
        workflow.add_node("greeting", self.greeting)
        workflow.add_node("farewell", self.farewell)
        workflow.add_node("unrecognized", self.unrecognized)
        workflow.add_node("conversation", self.conversation)
        workflow.add_node("sql_draft", self.sql_draft)
        workflow.add_node("sql_refusal", self.sql_refusal)
        workflow.add_node("sql_execute", self.sql_execute)
        workflow.add_node("sql_interpret", self.sql_interpret)

        workflow.set_entry_point("load_history")
        workflow.add_edge("load_history", "classify")
        workflow.add_conditional_edges(
            "classify",
            self.route_intent,
            {
                "greeting": "greeting",
                "farewell": "farewell",
                "unrecognized": "unrecognized",
                "conversation": "conversation",
                "sql_draft": "sql_draft",
            },
        )
        workflow.add_conditional_edges(
            "sql_draft",
            self.route_sql,
            {"sql_refusal": "sql_refusal", "sql_execute": "sql_execute"},
        )
        workflow.add_edge("sql_execute", "sql_interpret")
        for terminal in ("greeting", "farewell", "unrecognized", "conversation", "sql_refusal", "sql_interpret"):
            workflow.add_edge(terminal, END)

        return workflow.compile()

    async def answer_question(self, question: str, user_id: int, llm_model: Optional[str] = None) -> CrmAnswer:
        """
        Main entrypoint for serving a CRM question.

        Args:
            question (str): The user's message.
            user_id (int): Owner of the turn.
            llm_model (str | None): Model used to write the SQL; defaults to
                ``settings.OPEN_AI_MODEL``.

        Returns:
            CrmAnswer: ``answer``/``result``/``interpretation``. Any failure inside
            the graph is logged and turned into the generic error reply; what was
            already persisted for the turn stays.
        """
        try:
            state = await self.app.ainvoke(
                {"question": question, "user_id": user_id, "llm_model": llm_model or settings.OPEN_AI_MODEL}
            )
            return CrmAnswer(
                answer=state["answer"],
                result=state.get("result"),
                interpretation=state["interpretation"],
            )
        except Exception:
            logger.exception("Error while answering CRM question for user %s", user_id)
            return CrmAnswer(answer=question, result=None, interpretation=FAILURE_MESSAGE)
