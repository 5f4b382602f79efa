import numpy as np
import pytest

from local_rag_core.errors import StoreConnectionError
from local_rag_core.store import SQLiteChunkStore


def test_insert_assigns_distinct_increasing_ids(store):
    first = store.insert("alpha", [1.0, 0.0])
    second = store.insert("beta", [0.0, 1.0])
    assert second > first
    assert store.count() == 2


def test_embeddings_round_trip_exactly(store):
    vector = np.array([0.1, -1e-300, 3.141592653589793, 1e300, -0.0])
    chunk_id = store.insert("precise", vector)

    chunk = store.fetch_by_id(chunk_id)
    assert chunk is not None
    assert chunk.id == chunk_id
    assert chunk.text == "precise"
    assert np.array_equal(chunk.embedding, vector)


def test_fetch_missing_id_returns_none(store):
    assert store.fetch_by_id(12345) is None


def test_fetch_all_returns_ids_and_vectors_in_id_order(store):
    ids = [store.insert(f"t{i}", [float(i), 1.0]) for i in range(3)]
    rows = store.fetch_all()
    assert [row[0] for row in rows] == ids
    assert np.array_equal(rows[2][1], np.array([2.0, 1.0]))


def test_delete_all_empties_store_without_reusing_ids(store):
    old = store.insert("old", [1.0])
    store.delete_all()
    assert store.count() == 0
    assert store.fetch_all() == []

    new = store.insert("new", [1.0])
    assert new > old


def test_store_persists_across_connections(tmp_path):
    path = tmp_path / "nested" / "db.sqlite"
    first = SQLiteChunkStore(path)
    chunk_id = first.insert("kept", [0.5, 0.5])
    first.close()

    second = SQLiteChunkStore(path)
    try:
        assert second.count() == 1
        assert second.fetch_by_id(chunk_id).text == "kept"
    finally:
        second.close()


def test_unreachable_database_raises_connection_error(tmp_path):
    with pytest.raises(StoreConnectionError):
        SQLiteChunkStore(tmp_path)
