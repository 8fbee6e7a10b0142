"""Numeric checks applied to query vectors before they reach an index."""

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class VectorStats:
    """Summary statistics of a vector, for diagnostics."""

    length: int
    minimum: float
    maximum: float
    mean: float
    norm: float
    finite: bool


def vector_stats(vector: list[float]) -> VectorStats:
    if not vector:
        return VectorStats(length=0, minimum=0.0, maximum=0.0, mean=0.0, norm=0.0, finite=True)
    array = np.asarray(vector, dtype=float)
    finite = bool(np.all(np.isfinite(array)))
    return VectorStats(
        length=len(vector),
        minimum=float(np.min(array)),
        maximum=float(np.max(array)),
        mean=float(np.mean(array)),
        norm=float(np.linalg.norm(array)) if finite else math.nan,
        finite=finite,
    )


def degenerate_reason(vector: list[float]) -> str | None:
    """Why ``vector`` must not be submitted to a vector index, or None if it may.

    A vector is degenerate when it is empty, any component is NaN or
    infinite, or its L2 norm is zero or overflows.
    """
    if not vector:
        return "empty_vector"
    array = np.asarray(vector, dtype=float)
    if not np.all(np.isfinite(array)):
        return "non_finite_component"
    with np.errstate(over="ignore"):
        norm = float(np.linalg.norm(array))
    if not math.isfinite(norm):
        return "non_finite_norm"
    if norm == 0.0:
        return "zero_norm"
    return None


def is_valid_query_vector(vector: list[float]) -> bool:
    return degenerate_reason(vector) is None
