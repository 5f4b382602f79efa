import numpy as np
import pytest

from local_rag_core.embedding import EmbeddingProvider, HashingEmbeddingProvider
from local_rag_core.errors import InvalidInputError
from local_rag_core.ingest import ChunkingConfig
from local_rag_core.service import RetrievalService
from local_rag_core.store import SQLiteChunkStore


class FakeEmbedder(EmbeddingProvider):
    """Deterministic embeddings for tests; fails on texts containing a marker."""

    name = "fake"

    def __init__(self, dim=4, fail_marker="BAD"):
        self.dim = dim
        self.fail_marker = fail_marker
        self.calls = []

    @property
    def dimension(self):
        return self.dim

    def embed(self, text):
        self.calls.append(text)
        if self.fail_marker and self.fail_marker in text:
            raise InvalidInputError(f"refusing to embed {text!r}")
        vector = np.zeros(self.dim, dtype=np.float64)
        for pos, ch in enumerate(text):
            vector[(ord(ch) + pos) % self.dim] += 1.0
        return vector


@pytest.fixture
def store(tmp_path):
    s = SQLiteChunkStore(tmp_path / "chunks.sqlite")
    yield s
    s.close()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def service(store):
    svc = RetrievalService(
        embedder=HashingEmbeddingProvider(dimension=512),
        store=store,
        chunking=ChunkingConfig(target_size=120, overlap=20),
    )
    return svc
