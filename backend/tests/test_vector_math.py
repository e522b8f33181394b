"""
Tests for vector math helpers

Tests cover:
- Cosine similarity bounds and zero vectors
- Dimension mismatches
- Weighted vector blends
- Similarity rescaling
"""

import pytest

from app.services.errors import DimensionMismatch
from app.services.vector_math import blend_vectors, clamp, cosine_similarity, similarity_to_score


class TestCosineSimilarity:
    """Test cosine similarity calculation."""

    def test_identical_vectors(self):
        """Identical vectors should have similarity 1.0."""
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        """Orthogonal vectors should have similarity 0."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        """Opposite vectors should have similarity -1."""
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_zero_vector_returns_zero(self):
        """A zero-norm vector should not divide by zero."""
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_result_never_exceeds_bounds(self):
        vec = [0.1] * 1536
        assert -1.0 <= cosine_similarity(vec, vec) <= 1.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc_info.value.left == 2
        assert exc_info.value.right == 3

    def test_dimension_mismatch_is_value_error(self):
        """Callers catching ValueError should also catch mismatches."""
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 2.0])


class TestBlendVectors:
    """Test weighted vector blending."""

    def test_blend_weights(self):
        assert blend_vectors([1.0, 0.0], [0.0, 1.0], 0.7) == pytest.approx([0.7, 0.3])

    def test_blend_full_weight_returns_first(self):
        assert blend_vectors([2.0, 4.0], [8.0, 8.0], 1.0) == pytest.approx([2.0, 4.0])

    def test_blend_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            blend_vectors([1.0], [1.0, 2.0], 0.5)


class TestSimilarityToScore:

    def test_rescales_range(self):
        assert similarity_to_score(-1.0) == 0.0
        assert similarity_to_score(0.0) == 50.0
        assert similarity_to_score(1.0) == 100.0

    def test_clamp(self):
        assert clamp(120) == 100
        assert clamp(-5) == 0
        assert clamp(7, 0, 5) == 5
