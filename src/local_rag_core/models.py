from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np


@dataclass
class Chunk:
    text: str
    embedding: np.ndarray = field(repr=False)
    id: int | None = None

    @property
    def dimension(self) -> int:
        return int(self.embedding.shape[0])


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: float

    @property
    def id(self) -> int | None:
        return self.chunk.id

    @property
    def text(self) -> str:
        return self.chunk.text


class IngestReport(NamedTuple):
    succeeded: int
    failed: int

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


__all__ = ["Chunk", "ScoredChunk", "IngestReport"]
