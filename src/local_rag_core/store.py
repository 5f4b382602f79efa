"""
Durable chunk storage.

Embeddings are stored as little-endian float64 blobs so they round-trip
exactly through the database.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Tuple

import numpy as np

from .errors import StoreConnectionError, StoreReadError, StoreWriteError
from .models import Chunk
from .vectors import VectorLike, as_vector

logger = logging.getLogger(__name__)

_EMBEDDING_DTYPE = np.dtype("<f8")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chunk (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    text TEXT NOT NULL,
    embedding BLOB NOT NULL
)
"""


def encode_embedding(vector: VectorLike) -> bytes:
    return as_vector(vector).astype(_EMBEDDING_DTYPE).tobytes()


def decode_embedding(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=_EMBEDDING_DTYPE).astype(np.float64)


class ChunkStore(ABC):
    @abstractmethod
    def insert(self, text: str, embedding: VectorLike) -> int:
        """Persist a chunk and return its newly assigned id."""

    @abstractmethod
    def fetch_by_id(self, chunk_id: int) -> Chunk | None:
        ...

    @abstractmethod
    def fetch_all(self) -> List[Tuple[int, np.ndarray]]:
        ...

    @abstractmethod
    def delete_all(self) -> None:
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    def close(self) -> None:
        pass


class SQLiteChunkStore(ChunkStore):
    """
    Chunk store backed by a single SQLite connection.

    Writes are serialized with a lock. `AUTOINCREMENT` guarantees ids are never
    reused, even after `delete_all()`.
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        self._lock = threading.RLock()
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            if self.path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            with self._conn:
                self._conn.execute(_SCHEMA)
        except (sqlite3.Error, OSError) as exc:
            raise StoreConnectionError(
                f"Failed to open chunk store at {self.path}: {exc}"
            ) from exc
        logger.debug("Opened chunk store at %s", self.path)

    def insert(self, text: str, embedding: VectorLike) -> int:
        blob = encode_embedding(embedding)
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        "INSERT INTO chunk (text, embedding) VALUES (?, ?)",
                        (text, blob),
                    )
            except sqlite3.Error as exc:
                raise StoreWriteError(f"Failed to insert chunk: {exc}") from exc
        return int(cursor.lastrowid)

    def fetch_by_id(self, chunk_id: int) -> Chunk | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT id, text, embedding FROM chunk WHERE id = ?",
                    (int(chunk_id),),
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreReadError(f"Failed to fetch chunk {chunk_id}: {exc}") from exc
        if row is None:
            return None
        return Chunk(id=int(row[0]), text=row[1], embedding=decode_embedding(row[2]))

    def fetch_all(self) -> List[Tuple[int, np.ndarray]]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT id, embedding FROM chunk ORDER BY id"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreReadError(f"Failed to read embeddings: {exc}") from exc
        return [(int(row[0]), decode_embedding(row[1])) for row in rows]

    def delete_all(self) -> None:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM chunk")
            except sqlite3.Error as exc:
                raise StoreWriteError(f"Failed to delete chunks: {exc}") from exc

    def count(self) -> int:
        with self._lock:
            try:
                row = self._conn.execute("SELECT COUNT(*) FROM chunk").fetchone()
            except sqlite3.Error as exc:
                raise StoreReadError(f"Failed to count chunks: {exc}") from exc
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = [
    "ChunkStore",
    "SQLiteChunkStore",
    "encode_embedding",
    "decode_embedding",
]
