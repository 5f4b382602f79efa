from __future__ import annotations

from textwrap import shorten
from typing import List

from rich.console import Console
from rich.panel import Panel

from .models import ScoredChunk

console = Console()


def preview(text: str, width: int = 180) -> str:
    return shorten(text.replace("\n", " "), width=width, placeholder="...")


def render_results(query: str, results: List[ScoredChunk], out: Console | None = None) -> None:
    out = out or console

    if not results:
        out.print("[yellow]No results found. Did you ingest any documents?[/yellow]")
        return

    out.rule(f"[bold blue]Results for[/bold blue] {query!r}")
    for rank, item in enumerate(results, start=1):
        out.print(
            Panel(
                preview(item.text),
                title=f"#{rank} chunk {item.id}",
                subtitle=f"score={item.score:.3f}",
                expand=False,
            )
        )


__all__ = ["preview", "render_results"]
