"""
Document ingestion: stored file → chunks → vector index.

Conventions
-----------
- Each chunk is a dict::

    {
        "id": str,
        "content": str,
        "metadata": dict
    }

- Chunks are 512 characters with a 50 character overlap, split with
  LangChain's ``RecursiveCharacterTextSplitter``.
- Empty chunks (blank PDF pages) are dropped.
"""

import logging
import uuid
from typing import List

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from crm_backend.api.retrieval import VectorIndexStore
from crm_backend.ingestion.loaders import load_documents

logger = logging.getLogger(__name__)

CHUNK_SIZE = 512
CHUNK_OVERLAP = 50
SUCCESS_MESSAGE = "Archivo procesado y almacenado exitosamente"


def split_documents(documents: List[Document]) -> List[dict]:
    """
    Split documents into chunk dicts.

    Args:
        documents (list[Document]): Loaded pages or files.

    Returns:
        list[dict]: Chunks with a fresh ``id``, the text and the source metadata.
    """
    splitter = RecursiveCharacterTextSplitter(chunk_size=CHUNK_SIZE, chunk_overlap=CHUNK_OVERLAP)
    chunks = []
    for piece in splitter.split_documents(documents):
        if not piece.page_content.strip():
            continue
        chunks.append({"id": uuid.uuid4().hex, "content": piece.page_content, "metadata": dict(piece.metadata)})
    return chunks


class DocumentIngestor:
    """
    Loads, splits and stores documents into a named index.

    Args:
        retrieval (VectorIndexStore): Destination indexes.
    """

    def __init__(self, retrieval: VectorIndexStore):
        self.retrieval = retrieval

    async def ingest(self, path: str, original_name: str, index_name: str) -> dict:
        """
        Ingest one stored file.

        Returns:
            dict: ``{"message", "documents", "chunks"}``.

        Raises:
            UnsupportedDocumentError: For unsupported extensions.
        """
        documents = load_documents(path, original_name)
        chunks = split_documents(documents)
        await self.retrieval.upsert(index_name, chunks)
        logger.info(
            "Ingested %s into %s: %d documents, %d chunks", original_name, index_name, len(documents), len(chunks)
        )
        return {"message": SUCCESS_MESSAGE, "documents": len(documents), "chunks": len(chunks)}
