"""
Upload persistence and document loading (Uploads → LangChain Documents)
=======================================================================

Key Functions
-------------
- guess_ext          : Infer file extension from a filename.
- persist_upload     : Save an UploadFile to disk, return FileRec metadata.
- extract_pdf_pages  : Extract plain text from every page of a PDF.
- safe_read_text     : Read text files robustly (UTF-8 with ignore errors).
- load_documents     : Turn a stored .pdf/.txt file into LangChain Documents.

Dependencies
------------
FastAPI (UploadFile), pypdf, LangChain core documents.
"""

import os
import shutil
import uuid
from typing import List

from fastapi import UploadFile
from langchain_core.documents import Document
from pypdf import PdfReader

from crm_backend.api.models import FileRec
from crm_backend.database.config.config import settings

SUPPORTED_EXTENSIONS = (".pdf", ".txt")


class UnsupportedDocumentError(ValueError):
    """Raised for file types the ingestion pipeline cannot read."""

    def __init__(self, ext: str):
        self.ext = ext
        super().__init__(f"Tipo de archivo no soportado: {ext}")


def guess_ext(filename: str) -> str:
    """
    Extract the file extension from a filename.

    Args:
        filename (str): Input filename.

    Returns:
        str: Lowercased file extension (e.g., ".pdf").
    """
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def persist_upload(f: UploadFile, upload_dir: str | None = None) -> FileRec:
    """
    Save an uploaded file to the server.

    - Generates a unique filename using UUID.
    - Preserves original extension.
    - Stores the file under ``settings.UPLOAD_DIR`` unless told otherwise.

    Args:
        f (UploadFile): The file uploaded by the client.
        upload_dir (str | None): Destination directory.

    Returns:
        FileRec: Metadata containing original name, storage path, and MIME type.
    """
    upload_dir = upload_dir or settings.UPLOAD_DIR
    os.makedirs(upload_dir, exist_ok=True)
    ext = guess_ext(f.filename)
    new_name = f"{uuid.uuid4().hex}{ext}"
    dest = os.path.join(upload_dir, new_name)
    with open(dest, "wb") as out:
        shutil.copyfileobj(f.file, out)
    return FileRec(original=f.filename or new_name, path=dest, mime=(f.content_type or "").lower())


def extract_pdf_pages(path: str) -> List[str]:
    """
    Extract plain text from all pages of a PDF.

    Args:
        path (str): Path to PDF file.

    Returns:
        list[str]: One string per page (empty for pages without a text layer).
    """
    reader = PdfReader(path)
    return [page.extract_text() or "" for page in reader.pages]


def safe_read_text(path: str) -> str:
    """Read text from a file as UTF-8, ignoring undecodable bytes."""
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


def load_documents(path: str, original_name: str) -> List[Document]:
    """
    Load a stored file as LangChain Documents.

    The type is decided by the extension of ``original_name`` (the stored name
    keeps it too): a PDF yields one Document per page, a text file yields one
    Document.

    Raises:
        UnsupportedDocumentError: For anything but .pdf and .txt.
    """
    ext = guess_ext(original_name)
    match ext:
        case ".pdf":
            return [
                Document(page_content=text, metadata={"source": original_name, "page": number})
                for number, text in enumerate(extract_pdf_pages(path), start=1)
            ]
        case ".txt":
            return [Document(page_content=safe_read_text(path), metadata={"source": original_name})]
        case _:
            raise UnsupportedDocumentError(ext)
