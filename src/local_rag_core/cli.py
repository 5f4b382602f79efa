from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List

import numpy as np
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress

from .config import AppConfig, load_config
from .embedding import create_provider
from .errors import EmbeddingError, RAGError
from .ingest import iter_files, load_text
from .query import render_results
from .service import RetrievalService

console = Console()

_PROBE_TEXTS = [
    "This is a test sentence.",
    "Another test with different content.",
]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _collect_paths(paths: List[str], cfg: AppConfig) -> List[Path]:
    if not paths:
        return list(iter_files(cfg.data_dir_resolved))

    collected: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            collected.extend(iter_files(path))
        else:
            collected.append(path)
    return collected


def _ingest(service: RetrievalService, paths: List[Path]) -> None:
    if not paths:
        console.print("[yellow]No .md or .txt files to ingest.[/yellow]")
        return

    before = service.count()
    succeeded = failed = 0
    with Progress(console=console) as progress:
        task = progress.add_task("Ingesting documents...", total=len(paths))
        for path in paths:
            progress.update(task, description=f"Processing {path.name}")
            try:
                text = load_text(path)
            except OSError as exc:
                console.print(f"[red]Failed to read {path}: {exc}[/red]")
                progress.update(task, advance=1)
                continue
            report = service.ingest_document(text)
            succeeded += report.succeeded
            failed += report.failed
            progress.update(task, advance=1)

    after = service.count()
    console.print(
        f"[green]Stored {succeeded} chunks[/green] ({failed} failed); "
        f"database holds {after} chunks (added {after - before})."
    )
    if after == before:
        console.print("[yellow]No new chunks were added.[/yellow]")


def _check_embedder(cfg: AppConfig) -> int:
    embedder = create_provider(cfg)
    console.print(f"[green]Checking embedder:[/green] {type(embedder).__name__}")
    for idx, text in enumerate(_PROBE_TEXTS, start=1):
        start = time.perf_counter()
        try:
            vector = embedder.embed(text)
        except EmbeddingError as exc:
            console.print(f"[red]Probe {idx} failed: {exc}[/red]")
            return 1
        elapsed = time.perf_counter() - start
        magnitude = float(np.linalg.norm(vector))
        head = ", ".join(f"{v:.4f}" for v in vector[:3])
        console.print(
            f"  Probe {idx}: {vector.shape[0]} dims in {elapsed:.2f}s, "
            f"magnitude={magnitude:.4f}, first values=[{head}]"
        )
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Local RAG retrieval core - ingest documents and search them by similarity."
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a config YAML file (default: $LOCAL_RAG_CONFIG or config.yaml).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Chunk, embed and store .md/.txt documents.",
    )
    ingest_parser.add_argument(
        "paths",
        nargs="*",
        help="Files or directories to ingest (default: the configured data_dir).",
    )

    add_parser = subparsers.add_parser("add", help="Store a single text chunk.")
    add_parser.add_argument("text", type=str)

    ask_parser = subparsers.add_parser("ask", help="Search stored chunks.")
    ask_parser.add_argument("query", type=str, help="Text to search for.")
    ask_parser.add_argument("-k", "--top-k", type=int, default=None)

    subparsers.add_parser("clear", help="Delete every stored chunk.")
    subparsers.add_parser("stats", help="Show chunk and index counts.")
    subparsers.add_parser("check-embedder", help="Embed probe sentences and report.")

    args = parser.parse_args(argv)

    cfg = load_config(Path(args.config) if args.config else None)
    _setup_logging(cfg.log_level)

    if args.command == "check-embedder":
        return _check_embedder(cfg)

    service = RetrievalService.from_config(cfg)
    try:
        if args.command == "ingest":
            _ingest(service, _collect_paths(args.paths, cfg))
        elif args.command == "add":
            chunk_id = service.ingest_chunk(args.text)
            console.print(f"[green]Stored chunk {chunk_id}.[/green]")
        elif args.command == "ask":
            results = service.query(args.query, k=args.top_k)
            render_results(args.query, results, out=console)
        elif args.command == "clear":
            service.clear_all()
            console.print("[green]All chunks removed.[/green]")
        elif args.command == "stats":
            console.print(f"Database: {cfg.db_path}")
            console.print(f"Stored chunks: {service.count()}")
            console.print(f"Indexed vectors: {service.index_size}")
        else:  # pragma: no cover - defensive
            parser.print_help()
    except RAGError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    finally:
        service.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
