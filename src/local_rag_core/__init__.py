"""
Local RAG retrieval core.

Splits documents into overlapping chunks, embeds them, persists them in SQLite
and ranks them against queries by cosine similarity.
"""

from .embedding import (
    EmbeddingProvider,
    HashingEmbeddingProvider,
    SentenceTransformerProvider,
)
from .errors import (
    DimensionMismatchError,
    EmbeddingError,
    InvalidInputError,
    ProviderUnavailableError,
    QueryError,
    RAGError,
    StoreConnectionError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from .index import VectorIndex
from .ingest import Chunker, ChunkingConfig, chunk_text
from .models import Chunk, IngestReport, ScoredChunk
from .service import RetrievalService
from .store import ChunkStore, SQLiteChunkStore
from .vectors import cosine_similarity, normalize

__all__ = [
    "Chunk",
    "ChunkStore",
    "Chunker",
    "ChunkingConfig",
    "DimensionMismatchError",
    "EmbeddingError",
    "EmbeddingProvider",
    "HashingEmbeddingProvider",
    "IngestReport",
    "InvalidInputError",
    "ProviderUnavailableError",
    "QueryError",
    "RAGError",
    "RetrievalService",
    "SQLiteChunkStore",
    "ScoredChunk",
    "SentenceTransformerProvider",
    "StoreConnectionError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "VectorIndex",
    "chunk_text",
    "cosine_similarity",
    "normalize",
]
