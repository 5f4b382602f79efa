import numpy as np
import pytest

from local_rag_core.vectors import cosine_similarity, normalize


@pytest.mark.parametrize(
    "vector",
    [
        [3.0, 4.0],
        [1e-8, -2e-8, 5e-9],
        [1e6, 2e6, -3e6, 4e6],
        list(np.linspace(-1.0, 1.0, 384)),
    ],
)
def test_normalize_yields_unit_norm(vector):
    unit = normalize(vector)
    assert abs(float(np.linalg.norm(unit)) - 1.0) < 1e-9


def test_normalize_leaves_zero_vector_unchanged():
    zero = np.zeros(8)
    result = normalize(zero)
    assert np.array_equal(result, zero)
    assert result is not zero


def test_self_similarity_of_normalized_vector_is_one():
    v = normalize([0.2, -1.5, 3.3, 0.0, 7.1])
    assert cosine_similarity(v, v) == pytest.approx(1.0, abs=1e-12)


def test_cosine_similarity_bounds():
    assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [-3.0, -3.0]) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


def test_cosine_similarity_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
