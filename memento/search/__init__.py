"""Search result post-processing."""

from memento.search.reranking import RerankDocument, RerankedDocument, RerankingAdapter

__all__ = ["RerankDocument", "RerankedDocument", "RerankingAdapter"]
