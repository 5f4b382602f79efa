import pytest

from local_rag_core.cli import main


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                f"data_dir: {tmp_path / 'data'}",
                f"index_dir: {tmp_path / 'index'}",
                "embedding_backend: hashing",
                "chunk_size: 200",
                "chunk_overlap: 20",
                "log_level: WARNING",
            ]
        ),
        encoding="utf-8",
    )
    return str(path)


def test_add_ask_stats_clear(config_file, capsys):
    assert main(["--config", config_file, "add", "Defrost the freezer monthly."]) == 0
    assert "Stored chunk" in capsys.readouterr().out

    assert main(["--config", config_file, "ask", "defrost freezer", "-k", "1"]) == 0
    out = capsys.readouterr().out
    assert "Defrost the freezer" in out
    assert "score=" in out

    assert main(["--config", config_file, "stats"]) == 0
    assert "Stored chunks: 1" in capsys.readouterr().out

    assert main(["--config", config_file, "clear"]) == 0
    capsys.readouterr()
    assert main(["--config", config_file, "ask", "defrost freezer"]) == 0
    assert "No results found" in capsys.readouterr().out


def test_ingest_directory(config_file, tmp_path, capsys):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "manual.md").write_text(
        "# Fridge\n\nKeep it cold.\n\nClean the coils yearly.", encoding="utf-8"
    )
    (docs / "ignored.pdf").write_bytes(b"%PDF-1.4")

    assert main(["--config", config_file, "ingest", str(docs)]) == 0
    out = capsys.readouterr().out
    assert "Stored 1 chunks" in out

    main(["--config", config_file, "stats"])
    assert "Stored chunks: 1" in capsys.readouterr().out


def test_add_reports_invalid_input(config_file, capsys):
    assert main(["--config", config_file, "add", "   "]) == 1
    assert "Cannot embed empty text" in capsys.readouterr().out


def test_check_embedder(config_file, capsys):
    assert main(["--config", config_file, "check-embedder"]) == 0
    out = capsys.readouterr().out
    assert "HashingEmbeddingProvider" in out
    assert "256 dims" in out
