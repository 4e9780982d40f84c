"""
agent_labs.infrastructure.vector_store.policy_store - FAISS-backed policy search.

Each policy collection (return, refund, cancellation, seller requirements)
is one JSON document split into sections. Every section becomes one
vector record whose embedding text is "Title: ...\\nContent: ...".

Indexes are persisted under <vector_store_dir>/<collection_name> and
reloaded with load(); initialize() rebuilds from the JSON file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Mapping, Optional

from langchain_community.vectorstores import FAISS
from langchain_core.embeddings import Embeddings

from agent_labs.domain.exceptions import VectorStoreError
from agent_labs.domain.models import PolicyDocument, PolicySearchResult, PolicySectionRecord
from agent_labs.infrastructure.config import Settings

logger = logging.getLogger(__name__)


class PolicyVectorStore:
    """One searchable policy collection (implements PolicySearcher)."""

    def __init__(
        self,
        collection_name: str,
        data_file: Path,
        index_dir: Path,
        embeddings: Embeddings,
    ):
        self.collection_name = collection_name
        self.data_file = Path(data_file)
        self.index_path = Path(index_dir) / collection_name
        self._embeddings = embeddings
        self._store: Optional[FAISS] = None

    @property
    def is_ready(self) -> bool:
        return self._store is not None

    # ================================================================
    # Indexing
    # ================================================================

    def load_records(self) -> list[PolicySectionRecord]:
        """Parse the collection's JSON file into section records.

        Raises:
            FileNotFoundError: If the data file does not exist.
        """
        if not self.data_file.is_file():
            raise FileNotFoundError(f"Policy data file not found: {self.data_file}")

        raw = json.loads(self.data_file.read_text(encoding="utf-8"))
        documents = raw if isinstance(raw, list) else [raw]
        records: list[PolicySectionRecord] = []
        for doc in documents:
            records.extend(PolicyDocument.from_dict(doc).to_records())
        return records

    def initialize(self) -> int:
        """Build the index from the data file and persist it.

        Always re-reads the data file and replaces any saved index; use
        load() to open an existing index without rebuilding. Returns the
        number of indexed sections.

        Raises:
            FileNotFoundError: If the data file does not exist.
            VectorStoreError: If the data file holds no sections.
        """
        records = self.load_records()
        if not records:
            raise VectorStoreError(
                f"No sections found in {self.data_file} for '{self.collection_name}'"
            )

        logger.info(
            "Building vector index '%s' from %s (%d sections)",
            self.collection_name, self.data_file.name, len(records),
        )
        self._store = FAISS.from_texts(
            texts=[r.embedding_text for r in records],
            embedding=self._embeddings,
            metadatas=[r.to_metadata() for r in records],
            ids=[r.id for r in records],
            normalize_L2=True,
        )
        self.index_path.mkdir(parents=True, exist_ok=True)
        self._store.save_local(str(self.index_path))
        return len(records)

    def load(self) -> bool:
        """Open a persisted index. Returns False when none exists."""
        if not (self.index_path / "index.faiss").exists():
            return False
        self._store = FAISS.load_local(
            str(self.index_path),
            self._embeddings,
            allow_dangerous_deserialization=True,
            normalize_L2=True,
        )
        logger.info("Loaded vector index '%s' from %s", self.collection_name, self.index_path)
        return True

    # ================================================================
    # Search
    # ================================================================

    async def search(self, query: str, top_k: int = 3) -> list[PolicySearchResult]:
        """Cosine-similarity search; higher score means closer.

        Vectors are L2-normalized, so the squared L2 distance d returned
        by FAISS maps to cosine similarity as 1 - d / 2.
        """
        if self._store is None:
            logger.warning(
                "Vector index '%s' not initialized; returning no results",
                self.collection_name,
            )
            return []

        hits = await self._store.asimilarity_search_with_score(query, k=top_k)
        results = [
            PolicySearchResult(
                record=PolicySectionRecord.from_metadata(doc.metadata),
                score=1.0 - float(distance) / 2.0,
            )
            for doc, distance in hits
        ]
        logger.debug(
            "Search '%s' in '%s' returned %d result(s)",
            query[:60], self.collection_name, len(results),
        )
        return results

    async def search_formatted(self, query: str, top_k: int = 3) -> list[str]:
        return [r.format() for r in await self.search(query, top_k)]


def build_policy_stores(config: Settings, embeddings: Embeddings) -> dict[str, PolicyVectorStore]:
    """One PolicyVectorStore per configured collection, keyed like Settings.collections."""
    return {
        key: PolicyVectorStore(
            collection_name=coll.collection_name,
            data_file=config.vector_store_data_dir / coll.data_file,
            index_dir=config.vector_store_dir,
            embeddings=embeddings,
        )
        for key, coll in config.collections.items()
    }


async def initialize_vector_stores(
    config: Settings,
    stores: Mapping[str, PolicyVectorStore],
    *,
    force: bool = False,
) -> dict[str, int]:
    """Open or build every enabled collection.

    When VECTOR_STORE_INITIALIZE_ON_STARTUP is set (or *force* is True)
    every enabled collection is rebuilt from its JSON file, so edits land
    on the next startup. Otherwise existing indexes are just loaded.
    Failures propagate.
    """
    build = force or config.vector_store_initialize_on_startup
    loop = asyncio.get_running_loop()
    indexed: dict[str, int] = {}

    for key, store in stores.items():
        settings = config.collections.get(key)
        if settings is not None and not settings.enabled:
            logger.info("Vector collection '%s' disabled, skipping", store.collection_name)
            continue

        if build:
            count = await loop.run_in_executor(None, store.initialize)
            indexed[key] = count
            logger.info("Vector collection '%s' ready", store.collection_name)
        else:
            loaded = await loop.run_in_executor(None, store.load)
            if not loaded:
                logger.warning(
                    "No index for '%s'; run the 'index' command to build it",
                    store.collection_name,
                )
    return indexed
