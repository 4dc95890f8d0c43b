"""
Ingestion Package — Uploads → Documents → Chunks → Vector Indexes
==================================================================

Contents
--------
- loaders
    * persist_upload(UploadFile) -> FileRec — saves uploads to disk
    * load_documents(path, original_name) — .pdf (one Document per page) or .txt
    * UnsupportedDocumentError — raised for any other extension

- pipeline
    * split_documents(documents) — 512/50 character chunks
    * DocumentIngestor.ingest(path, original_name, index_name) — load, split,
      embed and persist into a named index; returns ``{message, documents, chunks}``
"""
