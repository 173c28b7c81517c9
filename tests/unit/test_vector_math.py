"""
Unit tests for vector primitives.
"""

import pytest

from compliance_drift.core.exceptions import DimensionMismatch
from compliance_drift.core.vector_math import cosine_similarity, dot, norm


class TestCosineSimilarity:
    """Test cosine similarity properties."""

    @pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [0.5, -0.25], [1e-3, 7.0, -2.0, 4.5]])
    def test_identical_vectors(self, vector):
        """A non-zero vector is fully similar to itself."""
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    @pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [0.5, -0.25]])
    def test_opposite_vectors(self, vector):
        """A vector and its negation are maximally dissimilar."""
        negated = [-v for v in vector]
        assert cosine_similarity(vector, negated) == pytest.approx(-1.0)

    def test_symmetry(self):
        """Similarity does not depend on argument order."""
        a = [0.3, -1.2, 4.0]
        b = [2.0, 0.1, -0.7]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_zero_vector_is_not_an_error(self):
        """A zero-magnitude vector ranks as dissimilar instead of failing."""
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_result_is_bounded(self):
        vector = [0.1] * 1536
        assert -1.0 <= cosine_similarity(vector, vector) <= 1.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 3

    def test_empty_vector_rejected(self):
        with pytest.raises(DimensionMismatch):
            cosine_similarity([], [])


class TestPrimitives:
    """Test dot product and norm."""

    def test_dot(self):
        assert dot([1, 2, 3], [4, 5, 6]) == pytest.approx(32.0)

    def test_dot_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            dot([1, 2], [1])

    def test_norm(self):
        assert norm([3, 4]) == pytest.approx(5.0)
