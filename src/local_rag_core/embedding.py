"""
Embedding providers.

A provider turns text into a fixed-length vector. Model-backed providers load
their model lazily on first use; the load runs once even when several threads
call `embed()` at the same time.
"""

from __future__ import annotations

import hashlib
import logging
import re
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, TypeVar

import numpy as np

from .errors import (
    DimensionMismatchError,
    EmbeddingError,
    InvalidInputError,
    ProviderUnavailableError,
)
from .vectors import VectorLike, as_vector, normalize

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_INPUT_CHARS = 5000


@dataclass(frozen=True)
class EmbeddingModelSpec:
    name: str
    dimension: int | None = None
    prefix: str = ""


EMBEDDING_MODELS: Dict[str, EmbeddingModelSpec] = {
    "minilm": EmbeddingModelSpec(
        name="sentence-transformers/all-MiniLM-L6-v2", dimension=384
    ),
    "e5-small-v2": EmbeddingModelSpec(
        name="intfloat/e5-small-v2", dimension=384, prefix="query: "
    ),
}


def resolve_model(name: str) -> EmbeddingModelSpec:
    """Look up a catalog alias or full model name; unknown names pass through."""
    if name in EMBEDDING_MODELS:
        return EMBEDDING_MODELS[name]
    for spec in EMBEDDING_MODELS.values():
        if spec.name == name:
            return spec
    return EmbeddingModelSpec(name=name)


class SingleFlight(Generic[T]):
    """
    Run an initializer at most once at a time and cache its result.

    Callers that arrive while the initializer is running wait on the same
    future and see the same result or exception. After a failure the state is
    reset so that a later call can try again.
    """

    def __init__(self, initializer: Callable[[], T]) -> None:
        self._initializer = initializer
        self._lock = threading.Lock()
        self._pending: Future[T] | None = None
        self._value: T | None = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def get(self, timeout: float | None = None) -> T:
        with self._lock:
            if self._ready:
                return self._value  # type: ignore[return-value]
            pending = self._pending
            leader = pending is None
            if leader:
                pending = self._pending = Future()

        if not leader:
            return pending.result(timeout=timeout)

        try:
            value = self._initializer()
        except BaseException as exc:
            with self._lock:
                self._pending = None
            pending.set_exception(exc)
            raise

        with self._lock:
            self._value = value
            self._ready = True
            self._pending = None
        pending.set_result(value)
        return value


class EmbeddingProvider(ABC):
    """Turns text into vectors. Implementations differ only in the backend."""

    name: str = "base"

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Return the embedding of `text` as a 1-D float64 array."""

    @property
    def dimension(self) -> int | None:
        return None

    def normalize(self, vector: VectorLike) -> np.ndarray:
        return normalize(vector)


class SentenceTransformerProvider(EmbeddingProvider):
    name = "sentence-transformers"

    def __init__(
        self,
        model_name: str = "minilm",
        device: str = "cpu",
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        loader: Callable[[str, str], Any] | None = None,
    ) -> None:
        self.spec = resolve_model(model_name)
        self.device = device
        self.max_input_chars = max_input_chars
        self._loader = loader or _load_sentence_transformer
        self._model = SingleFlight(self._load)

    @property
    def dimension(self) -> int | None:
        return self.spec.dimension

    def _load(self) -> Any:
        logger.info("Loading embedding model %s on %s", self.spec.name, self.device)
        try:
            model = self._loader(self.spec.name, self.device)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise ProviderUnavailableError(
                f"Failed to load embedding model {self.spec.name}: {exc}"
            ) from exc
        logger.info("Embedding model %s ready", self.spec.name)
        return model

    def warm_up(self) -> None:
        self._model.get()

    def embed(self, text: str) -> np.ndarray:
        _check_input(text, self.max_input_chars)
        model = self._model.get()
        try:
            raw = model.encode(self.spec.prefix + text, convert_to_numpy=True)
        except Exception as exc:
            raise ProviderUnavailableError(f"Embedding failed: {exc}") from exc

        vector = as_vector(raw)
        if vector.size == 0:
            raise ProviderUnavailableError("Model returned an empty embedding")
        if self.spec.dimension is not None and vector.shape[0] != self.spec.dimension:
            raise DimensionMismatchError(self.spec.dimension, vector.shape[0])
        return vector


def _load_sentence_transformer(name: str, device: str) -> Any:
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError as exc:
        raise ProviderUnavailableError(
            "sentence-transformers is required for this embedding backend."
        ) from exc
    return SentenceTransformer(name, device=device)


_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class HashingEmbeddingProvider(EmbeddingProvider):
    """
    Model-free embeddings built by hashing lower-cased word unigrams and
    bigrams into a fixed number of buckets.

    Output is deterministic for identical input, which makes this provider
    useful offline and in tests.
    """

    name = "hashing"

    def __init__(
        self,
        dimension: int = 256,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension
        self.max_input_chars = max_input_chars

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> np.ndarray:
        _check_input(text, self.max_input_chars)
        tokens = _TOKEN_RE.findall(text.lower())
        features = tokens + [f"{a} {b}" for a, b in zip(tokens, tokens[1:])]

        vector = np.zeros(self._dimension, dtype=np.float64)
        for feature in features:
            digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        return vector


def _check_input(text: str, max_chars: int) -> None:
    if not text or not text.strip():
        raise InvalidInputError("Cannot embed empty text")
    if len(text) > max_chars:
        raise InvalidInputError(
            f"Text too long ({len(text)} characters). Maximum supported length is {max_chars} characters."
        )


def create_provider(cfg) -> EmbeddingProvider:
    """Build the provider selected by an `AppConfig`."""
    if cfg.embedding_backend == "hashing":
        return HashingEmbeddingProvider(
            dimension=cfg.hashing_dimension, max_input_chars=cfg.max_input_chars
        )
    return SentenceTransformerProvider(
        model_name=cfg.embedding_model_name,
        device=cfg.embedding_device,
        max_input_chars=cfg.max_input_chars,
    )


__all__ = [
    "DEFAULT_MAX_INPUT_CHARS",
    "EMBEDDING_MODELS",
    "EmbeddingModelSpec",
    "EmbeddingProvider",
    "HashingEmbeddingProvider",
    "SentenceTransformerProvider",
    "SingleFlight",
    "create_provider",
    "resolve_model",
]
