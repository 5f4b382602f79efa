from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import faiss
import numpy as np

from .errors import DimensionMismatchError
from .embedding import EmbeddingProvider
from .store import ChunkStore
from .vectors import VectorLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    index: faiss.IndexIDMap | None
    dimension: int | None
    # Sorted ascending; row i of `vectors` belongs to ids[i].
    ids: np.ndarray
    vectors: np.ndarray

    @property
    def size(self) -> int:
        return int(self.ids.shape[0])


_EMPTY = _Snapshot(
    index=None,
    dimension=None,
    ids=np.zeros(0, dtype=np.int64),
    vectors=np.zeros((0, 0), dtype=np.float64),
)


def _build_snapshot(
    rows: Sequence[Tuple[int, np.ndarray]],
    normalize: Callable[[VectorLike], np.ndarray],
) -> _Snapshot:
    if not rows:
        return _EMPTY

    rows = sorted(rows, key=lambda row: row[0])
    ids = np.fromiter((chunk_id for chunk_id, _ in rows), dtype=np.int64, count=len(rows))
    normalized = [normalize(vector) for _, vector in rows]

    dim = int(normalized[0].shape[0])
    for vector in normalized:
        if vector.shape[0] != dim:
            raise DimensionMismatchError(dim, int(vector.shape[0]))

    vectors = np.vstack(normalized).astype(np.float64)
    index = faiss.IndexIDMap(faiss.IndexFlatIP(dim))
    index.add_with_ids(np.ascontiguousarray(vectors, dtype=np.float32), ids)
    return _Snapshot(index=index, dimension=dim, ids=ids, vectors=vectors)


class VectorIndex:
    """
    In-memory index of normalized chunk embeddings.

    The index is only ever rebuilt as a whole by `reload()`. A rebuilt index
    is published with a single reference swap, so a concurrent `search()`
    sees either the old index or the new one. If the rebuild fails the old
    index stays in place. FAISS selects candidates in float32; the final
    ranking and the returned scores are computed in float64.
    """

    def __init__(self, store: ChunkStore, embedder: EmbeddingProvider) -> None:
        self.store = store
        self.embedder = embedder
        self._snapshot = _EMPTY
        self._reload_lock = threading.Lock()

    def __len__(self) -> int:
        return self._snapshot.size

    @property
    def dimension(self) -> int | None:
        return self._snapshot.dimension

    def ids(self) -> List[int]:
        return [int(i) for i in self._snapshot.ids]

    def reload(self) -> int:
        # Reloads run one at a time so a slow rebuild cannot publish an
        # older store read over a newer one.
        with self._reload_lock:
            rows = self.store.fetch_all()
            snapshot = _build_snapshot(rows, self.embedder.normalize)
            self._snapshot = snapshot
        logger.info("Loaded vector index with %d entries", snapshot.size)
        return snapshot.size

    def search(self, query_vector: VectorLike, k: int) -> List[Tuple[int, float]]:
        """
        Rank every indexed entry against `query_vector` by cosine similarity.

        Returns at most `k` `(id, score)` pairs ordered by descending score,
        ties broken by ascending id.
        """
        snapshot = self._snapshot
        if k <= 0 or snapshot.index is None:
            return []

        query = self.embedder.normalize(query_vector)
        if query.shape[0] != snapshot.dimension:
            raise DimensionMismatchError(snapshot.dimension, int(query.shape[0]))

        q = np.ascontiguousarray(query.reshape(1, -1), dtype=np.float32)
        _, found = snapshot.index.search(q, snapshot.size)
        ids = found[0]

        # FAISS scores in float32; re-score the candidates in float64 so
        # near-equal entries are not turned into ties.
        ids = ids[ids >= 0]
        rows = np.searchsorted(snapshot.ids, ids)
        scores = snapshot.vectors[rows] @ query

        order = np.lexsort((ids, -scores))[:k]
        results = [
            (int(ids[i]), float(np.clip(scores[i], -1.0, 1.0))) for i in order
        ]

        for rank, (chunk_id, score) in enumerate(results[:5], start=1):
            logger.debug("Top score %d: id=%d score=%.4f", rank, chunk_id, score)
        return results


__all__ = ["VectorIndex"]
