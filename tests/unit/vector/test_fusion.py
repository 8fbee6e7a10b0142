"""Tests for Reciprocal Rank Fusion."""

import pytest

from memento.vector.fusion import reciprocal_rank_fusion


class TestReciprocalRankFusion:
    def test_scores_sum_over_lists(self) -> None:
        fused = reciprocal_rank_fusion({"vector": ["a", "b"], "keyword": ["b", "c"]}, k=60)

        scores = {item.key: item.score for item in fused}
        assert scores["b"] == pytest.approx(1 / 62 + 1 / 61)
        assert scores["a"] == pytest.approx(1 / 61)
        assert scores["c"] == pytest.approx(1 / 62)
        assert [item.key for item in fused] == ["b", "a", "c"]

    def test_ranks_are_one_based(self) -> None:
        [item] = reciprocal_rank_fusion({"vector": ["only"]}, k=0)
        assert item.ranks == {"vector": 1}
        assert item.score == 1.0

    def test_ties_keep_first_seen_order(self) -> None:
        fused = reciprocal_rank_fusion({"vector": ["x"], "keyword": ["y"]})
        assert [item.key for item in fused] == ["x", "y"]

    def test_duplicates_within_a_list_ignored(self) -> None:
        fused = reciprocal_rank_fusion({"vector": ["a", "a", "b"]}, k=60)
        ranks = {item.key: item.ranks["vector"] for item in fused}
        assert ranks == {"a": 1, "b": 2}

    def test_limit(self) -> None:
        fused = reciprocal_rank_fusion({"vector": ["a", "b", "c"]}, limit=2)
        assert len(fused) == 2

    def test_empty(self) -> None:
        assert reciprocal_rank_fusion({"vector": [], "keyword": []}) == []

    def test_negative_k_rejected(self) -> None:
        with pytest.raises(ValueError):
            reciprocal_rank_fusion({"vector": ["a"]}, k=-1)
