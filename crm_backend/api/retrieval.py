"""
Embedding & Retrieval Store (LlamaIndex)
========================================

Purpose
-------
Owns the named vector indexes used by the assistant:

- ``general_knowledge``       : free-form company knowledge for conversational turns.
- ``crm_schema``              : CRM table/column descriptions for SQL synthesis.
- ``documents_all_minilm``    : ingested documents, embedded locally with all-minilm.
- ``documents_openai_3small`` : ingested documents, embedded with text-embedding-3-small.

Each index has exactly one embedding model, fixed in :data:`INDEX_REGISTRY`, so
queries are always embedded with the model that produced the stored vectors.
Indexes live on disk, one directory per name under ``settings.VECTOR_INDEX_DIR``,
and are opened lazily on first use (in a worker thread when read from disk).
Loads and writes of one index are serialized by a per-index ``asyncio.Lock``
so a persist never runs while another upload is changing the same index.

Key Components
--------------
- IndexSpec         : Name, embedding model and provider of one index.
- build_embedding   : Create the LlamaIndex embedding of an index (OpenAI / Ollama).
- RetrievedChunk    : One search hit (content, source, score, metadata).
- VectorIndexStore  : Async ``search`` and ``upsert`` over the registry.
"""

import asyncio
import logging
import os
from typing import Any, Callable, Dict, List, Literal, Optional

from llama_index.core import StorageContext, VectorStoreIndex, load_index_from_storage
from llama_index.core.base.embeddings.base import BaseEmbedding
from llama_index.core.schema import TextNode
from llama_index.embeddings.ollama import OllamaEmbedding
from llama_index.embeddings.openai import OpenAIEmbedding
from pydantic import BaseModel, Field

from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)

GENERAL_INDEX = "general_knowledge"
SCHEMA_INDEX = "crm_schema"
DOCUMENTS_MINILM_INDEX = "documents_all_minilm"
DOCUMENTS_OPENAI_INDEX = "documents_openai_3small"


class IndexSpec(BaseModel):
    """Static description of a named index."""
    name: str
    embedding_model: str
    provider: Literal["ollama", "openai"]


INDEX_REGISTRY: Dict[str, IndexSpec] = {
    GENERAL_INDEX: IndexSpec(name=GENERAL_INDEX, embedding_model="nomic-embed-text", provider="ollama"),
    SCHEMA_INDEX: IndexSpec(name=SCHEMA_INDEX, embedding_model="nomic-embed-text", provider="ollama"),
    DOCUMENTS_MINILM_INDEX: IndexSpec(name=DOCUMENTS_MINILM_INDEX, embedding_model="all-minilm", provider="ollama"),
    DOCUMENTS_OPENAI_INDEX: IndexSpec(
        name=DOCUMENTS_OPENAI_INDEX, embedding_model="text-embedding-3-small", provider="openai"
    ),
}
"""Every index the application knows about."""


def build_embedding(spec: IndexSpec) -> BaseEmbedding:
    """
    Create the embedding backend of an index.

    Args:
        spec (IndexSpec): Index description.

    Returns:
        BaseEmbedding: ``OpenAIEmbedding`` or ``OllamaEmbedding``.
    """
    if spec.provider == "openai":
        return OpenAIEmbedding(model=spec.embedding_model, api_key=settings.OPENAI_API_KEY)
    return OllamaEmbedding(model_name=spec.embedding_model, base_url=settings.OLLAMA_SERVER_URL)


class RetrievedChunk(BaseModel):
    """One retrieved piece of text, best match first in result lists."""
    content: str
    source: Optional[str] = None
    score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UnknownIndexError(KeyError):
    """Raised when an index name is not in the registry."""


class VectorIndexStore:
    """
    Lazily opened, disk-persisted LlamaIndex vector indexes.

    Args:
        base_dir (str | None): Root directory of the persisted indexes.
            Defaults to ``settings.VECTOR_INDEX_DIR``.
        registry (dict[str, IndexSpec] | None): Known indexes. Defaults to :data:`INDEX_REGISTRY`.
        embed_factory (Callable[[IndexSpec], BaseEmbedding] | None): Embedding builder;
            tests inject LlamaIndex's ``MockEmbedding``.
        top_k (int | None): Default number of hits. Defaults to ``settings.RETRIEVAL_TOP_K``.
    """

    def __init__(
        self,
        base_dir: Optional[str] = None,
        registry: Optional[Dict[str, IndexSpec]] = None,
        embed_factory: Optional[Callable[[IndexSpec], BaseEmbedding]] = None,
        top_k: Optional[int] = None,
    ):
        self.base_dir = base_dir or settings.VECTOR_INDEX_DIR
        self.registry = registry or INDEX_REGISTRY
        self.embed_factory = embed_factory or build_embedding
        self.top_k = top_k or settings.RETRIEVAL_TOP_K
        self._indexes: Dict[str, VectorStoreIndex] = {}
        self._embeddings: Dict[str, BaseEmbedding] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def spec(self, index_name: str) -> IndexSpec:
        try:
            return self.registry[index_name]
        except KeyError:
            raise UnknownIndexError(index_name) from None

    def persist_dir(self, index_name: str) -> str:
        """Directory holding the persisted files of an index."""
        return os.path.join(self.base_dir, index_name)

    def embedding(self, index_name: str) -> BaseEmbedding:
        embed_model = self._embeddings.get(index_name)
        if embed_model is None:
            embed_model = self.embed_factory(self.spec(index_name))
            self._embeddings[index_name] = embed_model
        return embed_model

    def lock(self, index_name: str) -> asyncio.Lock:
        """Lock serializing loads and writes of one index."""
        lock = self._locks.get(index_name)
        if lock is None:
            lock = self._locks[index_name] = asyncio.Lock()
        return lock

    def _load_index(self, persist_dir: str, embed_model: BaseEmbedding) -> VectorStoreIndex:
        storage_context = StorageContext.from_defaults(persist_dir=persist_dir)
        return load_index_from_storage(storage_context=storage_context, embed_model=embed_model)

    async def get_index(self, index_name: str) -> VectorStoreIndex:
        """
        Open an index, loading it from disk (in a worker thread) when it was
        persisted before or starting an empty one otherwise.
        """
        index = self._indexes.get(index_name)
        if index is not None:
            return index

        embed_model = self.embedding(index_name)
        async with self.lock(index_name):
            index = self._indexes.get(index_name)
            if index is not None:
                return index
            index = await self._open_index(index_name, embed_model)
            self._indexes[index_name] = index
        return index

    async def _open_index(self, index_name: str, embed_model: BaseEmbedding) -> VectorStoreIndex:
        persist_dir = self.persist_dir(index_name)
        if os.path.exists(os.path.join(persist_dir, "docstore.json")):
            logger.info("Loading vector index %s from %s", index_name, persist_dir)
            index = await asyncio.to_thread(self._load_index, persist_dir, embed_model)
        else:
            logger.info("Vector index %s not found on disk, starting empty", index_name)
            index = VectorStoreIndex(nodes=[], embed_model=embed_model)
        return index

    async def search(self, index_name: str, query: str, k: Optional[int] = None) -> List[RetrievedChunk]:
        """
        Top-k similarity search.

        Args:
            index_name (str): A registered index.
            query (str): Free text; embedded with the index's own model.
            k (int | None): Number of hits; defaults to the store's ``top_k``.

        Returns:
            list[RetrievedChunk]: Hits ordered by descending similarity. Empty for an empty index.

        Raises:
            UnknownIndexError: If the index is not registered.
        """
        index = await self.get_index(index_name)
        if not index.docstore.docs:
            return []

        retriever = index.as_retriever(similarity_top_k=k or self.top_k)
        nodes = await retriever.aretrieve(query)
        chunks = [
            RetrievedChunk(
                content=node.get_content(),
                source=node.metadata.get("source"),
                score=node.score,
                metadata=dict(node.metadata),
            )
            for node in nodes
        ]
        chunks.sort(key=lambda chunk: chunk.score if chunk.score is not None else float("-inf"), reverse=True)
        return chunks

    async def upsert(self, index_name: str, chunks: List[dict]) -> int:
        """
        Embed and store chunks, then persist the index.

        Args:
            index_name (str): A registered index.
            chunks (list[dict]): Items shaped ``{"id": str, "content": str, "metadata": dict}``.
                A chunk whose id already exists replaces the stored one.

        Returns:
            int: Number of chunks written.
        """
        if not chunks:
            return 0

        index = await self.get_index(index_name)
        nodes = [
            TextNode(id_=chunk["id"], text=chunk["content"], metadata={"id": chunk["id"], **chunk.get("metadata", {})})
            for chunk in chunks
        ]
        persist_dir = self.persist_dir(index_name)
        # insert and persist must not interleave with another write to this index
        async with self.lock(index_name):
            await index.ainsert_nodes(nodes)
            os.makedirs(persist_dir, exist_ok=True)
            await asyncio.to_thread(index.storage_context.persist, persist_dir=persist_dir)
        logger.info("Stored %d chunks in vector index %s", len(nodes), index_name)
        return len(nodes)
