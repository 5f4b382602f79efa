from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .ingest import DEFAULT_SEPARATORS, ChunkingConfig

CONFIG_ENV_VAR = "LOCAL_RAG_CONFIG"


class AppConfig(BaseModel):
    data_dir: Path = Field(default=Path("data"))
    index_dir: Path = Field(default=Path("index"))
    db_filename: str | None = Field(default=None)

    embedding_backend: Literal["sentence-transformers", "hashing"] = Field(
        default="sentence-transformers"
    )
    embedding_model_name: str = Field(default="minilm")
    embedding_device: str = Field(default="cpu")
    hashing_dimension: int = Field(default=256, ge=1)
    max_input_chars: int = Field(default=5000, ge=1)

    top_k: int = Field(default=5, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    separators: List[str] = Field(default_factory=lambda: list(DEFAULT_SEPARATORS))

    log_level: str = Field(default="INFO")

    @property
    def data_dir_resolved(self) -> Path:
        return self.data_dir.resolve()

    @property
    def index_dir_resolved(self) -> Path:
        return self.index_dir.resolve()

    @property
    def db_path(self) -> Path:
        # One database per backend, so vectors from different models never mix.
        name = self.db_filename or f"chunks_{self.embedding_backend}.sqlite"
        return self.index_dir_resolved / name

    def chunking(self) -> ChunkingConfig:
        return ChunkingConfig(
            target_size=self.chunk_size,
            overlap=self.chunk_overlap,
            separators=tuple(self.separators),
        )


def load_config(path: Path | None = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    If `path` is None, the `LOCAL_RAG_CONFIG` environment variable is used,
    falling back to `config.yaml` in the current working directory.
    Also loads environment variables from a `.env` file if present.
    """
    load_dotenv()

    if path is None:
        path = Path(os.getenv(CONFIG_ENV_VAR, "config.yaml"))

    if not path.exists():
        # Fall back to defaults if no config file is present.
        return AppConfig()

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        cfg = AppConfig(**raw)
        cfg.chunking()
    except ValidationError as e:
        raise SystemExit(f"Invalid configuration in {path}:\n{e}") from e

    cfg.index_dir_resolved.mkdir(parents=True, exist_ok=True)
    return cfg


__all__ = ["AppConfig", "CONFIG_ENV_VAR", "load_config"]
