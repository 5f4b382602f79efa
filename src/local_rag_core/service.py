"""
Retrieval orchestration: ingestion and querying over a chunk store and its
in-memory vector index.
"""

from __future__ import annotations

import logging
import threading
from typing import List

from .embedding import EmbeddingProvider, create_provider
from .errors import DimensionMismatchError, EmbeddingError, QueryError, StoreError
from .index import VectorIndex
from .ingest import Chunker, ChunkingConfig
from .models import IngestReport, ScoredChunk
from .store import ChunkStore, SQLiteChunkStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class RetrievalService:
    """
    Ties the chunker, embedding provider, chunk store and vector index
    together.

    Construction loads the index from the store; if that fails no service is
    created. Chunks written to the store become searchable only after the
    next `reload()`, which every write operation performs itself.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: ChunkStore,
        chunking: ChunkingConfig | None = None,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunker = Chunker(chunking)
        self.top_k = top_k
        self.index = VectorIndex(store, embedder)
        self._write_lock = threading.Lock()
        self.reload()

    @classmethod
    def from_config(cls, cfg) -> "RetrievalService":
        store = SQLiteChunkStore(cfg.db_path)
        return cls(
            embedder=create_provider(cfg),
            store=store,
            chunking=cfg.chunking(),
            top_k=cfg.top_k,
        )

    @property
    def index_size(self) -> int:
        return len(self.index)

    def count(self) -> int:
        return self.store.count()

    def reload(self) -> int:
        return self.index.reload()

    def chunk(self, text: str) -> List[str]:
        return self.chunker.chunk(text)

    def ingest_chunk(self, text: str) -> int:
        """Embed and store one chunk, then rebuild the index. Returns the new id."""
        vector = self.embedder.normalize(self.embedder.embed(text))

        with self._write_lock:
            expected = self.index.dimension
            if expected is not None and vector.shape[0] != expected:
                raise DimensionMismatchError(expected, int(vector.shape[0]))

            chunk_id = self.store.insert(text, vector)
            self.index.reload()

        logger.debug("Ingested chunk %d (%d chars)", chunk_id, len(text))
        return chunk_id

    def ingest_document(self, text: str) -> IngestReport:
        """
        Chunk a document and ingest the chunks one by one.

        A chunk that fails to embed or store is counted and logged; the
        remaining chunks are still ingested.
        """
        succeeded = 0
        failed = 0
        chunks = self.chunker.chunk(text)
        for position, chunk in enumerate(chunks, start=1):
            try:
                self.ingest_chunk(chunk)
            except (EmbeddingError, StoreError) as exc:
                failed += 1
                logger.warning(
                    "Failed to ingest chunk %d/%d: %s", position, len(chunks), exc
                )
            else:
                succeeded += 1

        logger.info(
            "Ingested document: %d chunks stored, %d failed", succeeded, failed
        )
        return IngestReport(succeeded=succeeded, failed=failed)

    def query(self, text: str, k: int | None = None) -> List[ScoredChunk]:
        """
        Return the stored chunks most similar to `text`.

        An embedding failure yields an empty list. Ids the index returns but
        the store can no longer resolve are skipped.
        """
        try:
            return self.search(text, k)
        except QueryError as exc:
            logger.warning("%s; returning no results", exc)
            return []

    def search(self, text: str, k: int | None = None) -> List[ScoredChunk]:
        """Like `query()`, but raises `QueryError` when the query cannot be embedded."""
        if k is None:
            k = self.top_k

        try:
            query_vector = self.embedder.embed(text)
        except EmbeddingError as exc:
            raise QueryError(f"Query embedding failed: {exc}") from exc

        results: List[ScoredChunk] = []
        for chunk_id, score in self.index.search(query_vector, k):
            try:
                chunk = self.store.fetch_by_id(chunk_id)
            except StoreError as exc:
                logger.warning("Could not fetch chunk %d: %s", chunk_id, exc)
                continue
            if chunk is None:
                logger.warning("Chunk %d is indexed but missing from the store", chunk_id)
                continue
            results.append(ScoredChunk(chunk=chunk, score=score))

        if not results:
            logger.info("No results for query (index holds %d entries)", self.index_size)
        return results

    def clear_all(self) -> None:
        with self._write_lock:
            self.store.delete_all()
            self.index.reload()
        logger.info("Cleared all chunks")

    def close(self) -> None:
        self.store.close()


__all__ = ["DEFAULT_TOP_K", "RetrievalService"]
