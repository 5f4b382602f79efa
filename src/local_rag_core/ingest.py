from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS: Tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")
SUPPORTED_EXTENSIONS = {".md", ".markdown", ".txt"}


class ChunkingConfig(BaseModel):
    """Immutable chunking parameters. Sizes are measured in characters."""

    model_config = ConfigDict(frozen=True)

    target_size: int = Field(default=1000, gt=0)
    overlap: int = Field(default=200, ge=0)
    separators: Tuple[str, ...] = Field(default=DEFAULT_SEPARATORS)

    @field_validator("separators")
    @classmethod
    def _separators_not_empty(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("separators must contain at least one entry")
        return value

    @model_validator(mode="after")
    def _overlap_below_target(self) -> "ChunkingConfig":
        if self.overlap >= self.target_size:
            raise ValueError(
                f"overlap ({self.overlap}) must be smaller than target_size ({self.target_size})"
            )
        return self


class Chunker:
    """
    Recursive splitter that walks a separator hierarchy from coarse to fine.

    Text is split on the first separator that occurs in it and the pieces are
    packed into a buffer of at most `target_size` characters. When the buffer
    is flushed, its last `overlap` characters seed the next buffer. A piece
    that is too large on its own is split again with the finer separators.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk(self, text: str) -> List[str]:
        chunks = []
        for raw in self.split_raw(text):
            stripped = raw.strip()
            if stripped:
                chunks.append(stripped)

        if chunks:
            stats = chunk_stats(chunks)
            logger.debug(
                "Chunked %d characters into %d chunks (min=%d max=%d avg=%d)",
                len(text),
                stats["count"],
                stats["min"],
                stats["max"],
                stats["avg"],
            )
        return chunks

    def split_raw(self, text: str) -> List[str]:
        """Return the chunks before whitespace trimming."""
        if not text:
            return []
        return self._split(text, self.config.separators)

    def _split(self, text: str, separators: Sequence[str]) -> List[str]:
        size = self.config.target_size
        overlap = self.config.overlap

        separator, finer = _pick_separator(text, separators)
        if separator:
            pieces = text.split(separator)
            segments = [piece + separator for piece in pieces[:-1]]
            segments.append(pieces[-1])
        else:
            segments = list(text)

        chunks: List[str] = []
        buffer = ""
        for segment in segments:
            if not segment:
                continue

            if len(buffer) + len(segment) > size:
                if buffer:
                    chunks.append(buffer)
                    if overlap > 0 and len(buffer) > overlap:
                        buffer = buffer[-overlap:]
                    else:
                        buffer = ""

                if len(segment) > size and finer:
                    chunks.extend(self._split(segment, finer))
                    continue

            buffer += segment

        if buffer:
            chunks.append(buffer)
        return chunks


def _pick_separator(text: str, separators: Sequence[str]) -> Tuple[str, List[str]]:
    for idx, sep in enumerate(separators):
        if sep == "" or sep in text:
            return sep, list(separators[idx + 1 :])
    # No separator matched and there is no character-level fallback.
    return separators[-1], []


def chunk_text(text: str, config: ChunkingConfig | None = None) -> List[str]:
    return Chunker(config).chunk(text)


def chunk_stats(chunks: Sequence[str]) -> Dict[str, int]:
    if not chunks:
        return {"count": 0, "min": 0, "max": 0, "avg": 0}
    lengths = [len(c) for c in chunks]
    return {
        "count": len(lengths),
        "min": min(lengths),
        "max": max(lengths),
        "avg": sum(lengths) // len(lengths),
    }


def iter_files(data_dir: Path) -> Iterable[Path]:
    for path in sorted(data_dir.rglob("*")):
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
            yield path


def load_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="ignore").replace("\r\n", "\n")


__all__ = [
    "DEFAULT_SEPARATORS",
    "SUPPORTED_EXTENSIONS",
    "ChunkingConfig",
    "Chunker",
    "chunk_text",
    "chunk_stats",
    "iter_files",
    "load_text",
]
