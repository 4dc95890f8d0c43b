"""
LLM Gateway: one async entrypoint for every chat-model call
===========================================================

Purpose
-------
Hides the provider behind a model-name string. Hosted OpenAI models
(``gpt-*``, ``o1*``, ``o3*``, ``o4*``) are served through LangChain's
``ChatOpenAI``; every other name is treated as a local Ollama model and
served through ``ChatOllama``.

Key Components
--------------
- is_openai_model      : Routing rule from model name to provider.
- build_chat_model     : Default factory creating the LangChain chat model.
- lc_text_from_content : Normalize LangChain message content to plain text.
- LLMResponse          : Text + token usage of one completion.
- LLMGateway           : Caches chat models per name and awaits completions.

Configuration (settings)
------------------------
- settings.OPENAI_API_KEY     : Key used by ``ChatOpenAI``.
- settings.OLLAMA_SERVER_URL  : Base URL of the Ollama server.
"""

import logging
from typing import Any, Callable, Optional, Sequence, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)

OPENAI_MODEL_PREFIXES = ("gpt-", "o1", "o3", "o4")
"""Model-name prefixes routed to OpenAI."""

Prompt = Union[str, Sequence[BaseMessage]]


def is_openai_model(model_name: str) -> bool:
    """Return True when the model name belongs to the hosted OpenAI family."""
    return model_name.strip().lower().startswith(OPENAI_MODEL_PREFIXES)


def build_chat_model(model_name: str) -> BaseChatModel:
    """
    Create the LangChain chat model for a model name.

    Args:
        model_name (str): e.g. "gpt-4o-mini" or "llama3.1:8b".

    Returns:
        BaseChatModel: ``ChatOpenAI`` or ``ChatOllama`` with temperature 0.
    """
    if is_openai_model(model_name):
        return ChatOpenAI(model=model_name, api_key=settings.OPENAI_API_KEY, temperature=0)
    return ChatOllama(model=model_name, base_url=settings.OLLAMA_SERVER_URL, temperature=0)


def lc_text_from_content(content) -> str:
    """Normalize LangChain message content to plain text.

    - If string → return as-is.
    - If list of content parts → concatenates only 'text' parts (plain strings kept).
    - Else → str(content).
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content)


class LLMResponse(BaseModel):
    """Text and provider usage of one completion."""
    text: str
    usage: Optional[dict[str, Any]] = None


class LLMGateway:
    """
    Async facade over LangChain chat models.

    Args:
        model_factory (Callable[[str], BaseChatModel] | None): Builds a chat model
            from its name. Defaults to :func:`build_chat_model`; tests inject fakes.
    """

    def __init__(self, model_factory: Optional[Callable[[str], BaseChatModel]] = None):
        self.model_factory = model_factory or build_chat_model
        self._models: dict[str, BaseChatModel] = {}

    def get_model(self, model_name: str) -> BaseChatModel:
        """Return the cached chat model for a name, creating it on first use."""
        model = self._models.get(model_name)
        if model is None:
            model = self.model_factory(model_name)
            self._models[model_name] = model
        return model

    async def complete(self, prompt: Prompt, model: str, system: Optional[str] = None) -> LLMResponse:
        """
        Run one completion.

        Args:
            prompt (str | Sequence[BaseMessage]): Rendered prompt or ready message list.
            model (str): Model name; selects the provider.
            system (str | None): Optional system message prepended to a string prompt.

        Returns:
            LLMResponse: Plain text of the reply and the usage metadata, if reported.

        Raises:
            Whatever the provider raises; callers decide how to degrade.
        """
        if isinstance(prompt, str):
            messages: list[BaseMessage] = [HumanMessage(content=prompt)]
            if system:
                messages.insert(0, SystemMessage(content=system))
        else:
            messages = list(prompt)

        chat_model = self.get_model(model)
        logger.debug("Calling chat model %s", model)
        response = await chat_model.ainvoke(messages)
        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            text=lc_text_from_content(response.content),
            usage=dict(usage) if usage else None,
        )
