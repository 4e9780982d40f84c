"""
Tests for the FAISS-backed policy stores, using deterministic fake
embeddings (identical text gives an identical vector).
"""
import json

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from agent_labs.domain.exceptions import VectorStoreError
from agent_labs.domain.models import PolicyDocument
from agent_labs.infrastructure.config import PolicyCollectionSettings, Settings
from agent_labs.infrastructure.vector_store.policy_store import (
    PolicyVectorStore,
    build_policy_stores,
    initialize_vector_stores,
)
from tests.fakes import PROJECT_ROOT, make_result

POLICY_DIR = PROJECT_ROOT / "data" / "vector_store"


@pytest.fixture
def embeddings():
    return DeterministicFakeEmbedding(size=32)


@pytest.fixture
def store(tmp_path, embeddings):
    return PolicyVectorStore(
        collection_name="return-policy",
        data_file=POLICY_DIR / "return-policy.json",
        index_dir=tmp_path / "indexes",
        embeddings=embeddings,
    )


class TestPolicyRecords:

    def test_case_insensitive_keys(self):
        doc = PolicyDocument.from_dict({
            "DocumentId": "refund-policy",
            "Category": "Remboursements",
            "Title": "Politique",
            "Sections": [{"Id": "delay", "Title": "Délai", "Content": "Sous 14 jours."}],
        })

        record = doc.to_records()[0]

        assert record.id == "refund-policy-delay"
        assert record.embedding_text == "Title: Délai\nContent: Sous 14 jours."

    def test_format(self):
        result = make_result("delay", title="Délai", content="Sous 14 jours.", score=0.87654)
        assert result.format() == "[test] Délai (Score: 0.8765): Sous 14 jours."

    def test_load_shipped_records(self, store):
        records = store.load_records()
        assert records
        assert all(r.id.startswith("return-policy-") for r in records)
        assert all(r.category == "Retours" for r in records)

    def test_missing_data_file(self, tmp_path, embeddings):
        store = PolicyVectorStore("x", tmp_path / "missing.json", tmp_path, embeddings)
        with pytest.raises(FileNotFoundError):
            store.load_records()

    def test_document_without_sections(self, tmp_path, embeddings):
        data_file = tmp_path / "empty.json"
        data_file.write_text(json.dumps({"documentId": "empty", "sections": []}), encoding="utf-8")
        store = PolicyVectorStore("empty", data_file, tmp_path, embeddings)

        with pytest.raises(VectorStoreError):
            store.initialize()


class TestPolicyVectorStore:

    @pytest.mark.asyncio
    async def test_search_before_initialize(self, store):
        assert not store.is_ready
        assert await store.search("retour") == []

    @pytest.mark.asyncio
    async def test_initialize_and_search(self, store):
        count = store.initialize()
        records = store.load_records()

        assert count == len(records)
        assert (store.index_path / "index.faiss").exists()

        target = records[0]
        results = await store.search(target.embedding_text, top_k=2)

        assert len(results) == 2
        assert results[0].record == target
        assert results[0].score == pytest.approx(1.0, abs=1e-4)
        assert results[0].score >= results[1].score

    @pytest.mark.asyncio
    async def test_reload_persisted_index(self, store, tmp_path, embeddings):
        store.initialize()
        reopened = PolicyVectorStore(
            "return-policy", store.data_file, tmp_path / "indexes", embeddings,
        )

        assert reopened.load()
        assert reopened.is_ready
        formatted = await reopened.search_formatted("retour", top_k=1)
        assert formatted[0].startswith("[Retours] ")


class TestInitializeVectorStores:

    def settings(self, tmp_path, build: bool, data_dir=POLICY_DIR) -> Settings:
        return Settings(
            project_root=tmp_path,
            data_dir=tmp_path,
            agents_config_path=tmp_path / "agents.json",
            vector_store_dir=tmp_path / "indexes",
            vector_store_data_dir=data_dir,
            vector_store_initialize_on_startup=build,
            collections={
                "return_policy": PolicyCollectionSettings("return-policy", "return-policy.json"),
                "refund_policy": PolicyCollectionSettings(
                    "refund-policy", "refund-policy.json", enabled=False,
                ),
            },
        )

    @pytest.mark.asyncio
    async def test_build_enabled_collections(self, tmp_path, embeddings):
        config = self.settings(tmp_path, build=True)
        stores = build_policy_stores(config, embeddings)

        indexed = await initialize_vector_stores(config, stores)

        assert set(indexed) == {"return_policy"}
        assert stores["return_policy"].is_ready
        assert not stores["refund_policy"].is_ready

    @pytest.mark.asyncio
    async def test_load_only_without_index(self, tmp_path, embeddings):
        config = self.settings(tmp_path, build=False)
        stores = build_policy_stores(config, embeddings)

        assert await initialize_vector_stores(config, stores) == {}
        assert not stores["return_policy"].is_ready

    @staticmethod
    def write_policy(data_dir, *sections):
        data_dir.mkdir(exist_ok=True)
        (data_dir / "return-policy.json").write_text(json.dumps({
            "documentId": "return-policy",
            "category": "Retours",
            "title": "Politique de retour",
            "sections": [
                {"id": section_id, "title": section_id, "content": content}
                for section_id, content in sections
            ],
        }), encoding="utf-8")

    @pytest.mark.asyncio
    async def test_startup_reindexes_edited_data_file(self, tmp_path, embeddings):
        data_dir = tmp_path / "policies"
        config = self.settings(tmp_path, build=True, data_dir=data_dir)
        self.write_policy(data_dir, ("window", "30 jours pour retourner un article."))

        first = await initialize_vector_stores(config, build_policy_stores(config, embeddings))

        self.write_policy(
            data_dir,
            ("window", "30 jours pour retourner un article."),
            ("label", "Une étiquette de retour prépayée est fournie."),
        )
        stores = build_policy_stores(config, embeddings)
        second = await initialize_vector_stores(config, stores)

        assert first == {"return_policy": 1}
        assert second == {"return_policy": 2}
        results = await stores["return_policy"].search(
            "Title: label\nContent: Une étiquette de retour prépayée est fournie.", top_k=1,
        )
        assert results[0].record.id == "return-policy-label"

    @pytest.mark.asyncio
    async def test_startup_fails_when_data_file_removed(self, tmp_path, embeddings):
        data_dir = tmp_path / "policies"
        config = self.settings(tmp_path, build=True, data_dir=data_dir)
        self.write_policy(data_dir, ("window", "30 jours pour retourner un article."))
        await initialize_vector_stores(config, build_policy_stores(config, embeddings))

        (data_dir / "return-policy.json").unlink()

        with pytest.raises(FileNotFoundError):
            await initialize_vector_stores(config, build_policy_stores(config, embeddings))
