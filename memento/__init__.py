"""Memento: embedding consistency and hybrid retrieval for a knowledge graph.

Keeps the vectors stored on graph entities consistent with the dimension
declared by the active vector index, migrates and reindexes entity
populations safely, and serves hybrid (vector + keyword) search fused with
Reciprocal Rank Fusion.
"""

__version__ = "0.1.0"
