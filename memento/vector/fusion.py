"""Reciprocal Rank Fusion.

Combines independently ranked lists by summing ``1 / (k + rank)`` for every
list an item appears in, with 1-based ranks. Ties keep first-seen order:
items are visited list by list, in list order, and Python's sort is stable.
"""

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

K = TypeVar("K", bound=Hashable)

DEFAULT_RRF_K = 60


@dataclass
class FusedItem:
    """An item's fused score and its 1-based rank in each input list."""

    key: Hashable
    score: float
    ranks: dict[str, int] = field(default_factory=dict)
    contributions: dict[str, float] = field(default_factory=dict)


def reciprocal_rank_fusion(
    rankings: dict[str, Sequence[K]],
    k: int = DEFAULT_RRF_K,
    limit: int | None = None,
) -> list[FusedItem]:
    """Fuse named rankings into one list ordered by descending RRF score.

    Args:
        rankings: List name to keys, best first; duplicates after the first
            occurrence within a list are ignored
        k: Rank offset; larger values flatten the contribution of top ranks
        limit: Truncate the fused list

    Raises:
        ValueError: If ``k`` is negative
    """
    if k < 0:
        raise ValueError(f"RRF constant must be non-negative, got {k}")

    fused: dict[Hashable, FusedItem] = {}
    for list_name, keys in rankings.items():
        seen: set[Hashable] = set()
        rank = 0
        for key in keys:
            if key in seen:
                continue
            seen.add(key)
            rank += 1
            contribution = 1.0 / (k + rank)
            item = fused.get(key)
            if item is None:
                item = fused[key] = FusedItem(key=key, score=0.0)
            item.score += contribution
            item.ranks[list_name] = rank
            item.contributions[list_name] = contribution

    ordered = sorted(fused.values(), key=lambda item: item.score, reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    return ordered
