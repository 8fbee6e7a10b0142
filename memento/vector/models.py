"""Vector search request and result models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SearchMethod(str, Enum):
    """Which path produced a search result."""

    VECTOR = "vector"
    HYBRID_RRF = "hybrid-rrf"
    FALLBACK = "fallback"
    VECTOR_RERANK = "vector+rerank"


class SearchOutcome(str, Enum):
    """Whether the primary search path answered the query."""

    OK = "ok"
    DEGENERATE_INPUT = "degenerate_input"
    FAILED = "failed"


class ResultMetadata(BaseModel):
    """Provenance of a search result. Extra keys are preserved."""

    model_config = ConfigDict(extra="allow")

    entity_type: str = Field(default="", description="Entity classifier")
    search_method: SearchMethod = Field(..., description="Path that produced the result")
    vector_score: float | None = Field(default=None, description="Nearest-neighbor score")
    bm25_score: float | None = Field(default=None, description="Keyword match score")
    rrf_score: float | None = Field(default=None, description="Fused RRF score")
    vector_rank: int | None = Field(default=None, description="1-based rank in the vector list")
    keyword_rank: int | None = Field(default=None, description="1-based rank in the keyword list")
    fallback_reason: str | None = Field(default=None, description="Why the fallback ran")
    fallback_source: str | None = Field(default=None, description="pattern or recency")
    original_similarity: float | None = Field(default=None, description="Score before reranking")
    rerank_score: float | None = Field(default=None, description="Reranker relevance score")
    rerank_index: int | None = Field(default=None, description="Position in the reranker input")


class VectorSearchResult(BaseModel):
    """A single ranked search result."""

    id: str = Field(..., description="Entity name")
    similarity: float = Field(..., description="Score used for ranking")
    metadata: ResultMetadata = Field(..., description="Provenance and component scores")


class SearchOptions(BaseModel):
    """Options for a vector search call."""

    limit: int = Field(default=5, gt=0, description="Maximum results")
    min_similarity: float = Field(
        default=0.0,
        description="Pure-vector threshold; ignored for hybrid results",
    )
    hybrid_search: bool = Field(default=True, description="Fuse with keyword search")
    query_text: str | None = Field(default=None, description="Text for keyword matching")
    rrf_k: int = Field(default=60, ge=0, description="RRF constant")


class SearchResponse(BaseModel):
    """Results together with how they were obtained."""

    results: list[VectorSearchResult] = Field(default_factory=list)
    outcome: SearchOutcome = Field(default=SearchOutcome.OK)
    reason: str | None = Field(default=None, description="Degenerate-input or failure cause")

    @property
    def search_method(self) -> SearchMethod | None:
        return self.results[0].metadata.search_method if self.results else None
