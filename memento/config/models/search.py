"""Search and reindex configuration models."""

from pydantic import BaseModel, Field


class SearchConfig(BaseModel):
    """Hybrid search configuration."""

    hybrid_enabled: bool = Field(
        default=True,
        description="Fuse vector and keyword rankings when query text is available",
    )
    rrf_k: int = Field(default=60, gt=0, description="Reciprocal Rank Fusion constant")
    default_limit: int = Field(default=5, gt=0, description="Default result count")
    min_similarity: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="Pure-vector similarity threshold",
    )


class ReindexConfig(BaseModel):
    """Batch reindex defaults."""

    batch_size: int = Field(default=10, ge=1, le=1000, description="Entities per batch")
    batch_delay: float = Field(
        default=1.0,
        ge=0,
        description="Seconds to sleep between batches",
    )
