import asyncio

import pytest
from llama_index.core import MockEmbedding

from crm_backend.api.retrieval import (
    DOCUMENTS_MINILM_INDEX,
    INDEX_REGISTRY,
    SCHEMA_INDEX,
    UnknownIndexError,
    VectorIndexStore,
)


def mock_embed_factory(spec):
    return MockEmbedding(embed_dim=8)


@pytest.fixture
def store(tmp_path):
    return VectorIndexStore(base_dir=str(tmp_path), embed_factory=mock_embed_factory, top_k=2)


def test_registry_fixes_one_embedding_model_per_index():
    assert INDEX_REGISTRY[SCHEMA_INDEX].embedding_model == "nomic-embed-text"
    assert INDEX_REGISTRY[DOCUMENTS_MINILM_INDEX].embedding_model == "all-minilm"
    assert INDEX_REGISTRY["documents_openai_3small"].provider == "openai"


@pytest.mark.asyncio
async def test_empty_index_returns_no_chunks(store):
    assert await store.search(SCHEMA_INDEX, "oportunidades") == []


@pytest.mark.asyncio
async def test_unknown_index_is_rejected(store):
    with pytest.raises(UnknownIndexError):
        await store.search("nope", "x")


@pytest.mark.asyncio
async def test_upsert_then_search_respects_k(store):
    chunks = [
        {"id": f"c{i}", "content": f"tabla {name}", "metadata": {"source": "schema.txt"}}
        for i, name in enumerate(["oportunity", "lead", "pre_contact"])
    ]

    assert await store.upsert(SCHEMA_INDEX, chunks) == 3
    results = await store.search(SCHEMA_INDEX, "tabla", k=2)

    assert len(results) == 2
    assert all(result.source == "schema.txt" for result in results)
    assert all(result.content.startswith("tabla ") for result in results)


@pytest.mark.asyncio
async def test_upsert_persists_to_disk(tmp_path, store):
    await store.upsert(DOCUMENTS_MINILM_INDEX, [{"id": "d1", "content": "Curso de ventas", "metadata": {}}])

    assert (tmp_path / DOCUMENTS_MINILM_INDEX / "docstore.json").exists()

    reopened = VectorIndexStore(base_dir=str(tmp_path), embed_factory=mock_embed_factory)
    results = await reopened.search(DOCUMENTS_MINILM_INDEX, "ventas")
    assert [result.content for result in results] == ["Curso de ventas"]


@pytest.mark.asyncio
async def test_upsert_nothing_is_a_no_op(tmp_path, store):
    assert await store.upsert(SCHEMA_INDEX, []) == 0
    assert not (tmp_path / SCHEMA_INDEX).exists()


@pytest.mark.asyncio
async def test_concurrent_upserts_to_one_index_are_all_persisted(tmp_path, store):
    batches = [
        [{"id": f"{prefix}{i}", "content": f"{prefix} chunk {i}", "metadata": {}} for i in range(3)]
        for prefix in ("a", "b", "c")
    ]

    counts = await asyncio.gather(*(store.upsert(DOCUMENTS_MINILM_INDEX, batch) for batch in batches))

    assert counts == [3, 3, 3]
    reopened = VectorIndexStore(base_dir=str(tmp_path), embed_factory=mock_embed_factory)
    results = await reopened.search(DOCUMENTS_MINILM_INDEX, "chunk", k=20)
    assert len(results) == 9


@pytest.mark.asyncio
async def test_persist_waits_for_the_index_lock(store):
    await store.upsert(SCHEMA_INDEX, [{"id": "s1", "content": "tabla lead", "metadata": {}}])

    async with store.lock(SCHEMA_INDEX):
        pending = asyncio.create_task(
            store.upsert(SCHEMA_INDEX, [{"id": "s2", "content": "tabla stage", "metadata": {}}])
        )
        await asyncio.sleep(0.05)
        assert not pending.done()
        index = await store.get_index(SCHEMA_INDEX)
        assert "s2" not in index.docstore.docs

    assert await pending == 1


@pytest.mark.asyncio
async def test_persisted_index_is_loaded_once(tmp_path, store, monkeypatch):
    await store.upsert(SCHEMA_INDEX, [{"id": "s1", "content": "tabla lead", "metadata": {}}])
    reopened = VectorIndexStore(base_dir=str(tmp_path), embed_factory=mock_embed_factory)
    loads = []
    original_load = reopened._load_index

    def counting_load(persist_dir, embed_model):
        loads.append(persist_dir)
        return original_load(persist_dir, embed_model)

    monkeypatch.setattr(reopened, "_load_index", counting_load)

    results = await asyncio.gather(*(reopened.search(SCHEMA_INDEX, "lead") for _ in range(3)))

    assert loads == [str(tmp_path / SCHEMA_INDEX)]
    assert all(chunks[0].content == "tabla lead" for chunks in results)
