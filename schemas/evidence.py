"""Search result and evidence schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SourcePlatform(str, Enum):
    """Platform a search result was published on."""
    WEB = "web"
    X = "x"
    INSTAGRAM = "instagram"
    REDDIT = "reddit"
    YOUTUBE = "youtube"


class RecencyWindow(str, Enum):
    """Coarse time-range filter exposed by search backends."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class SearchResult(BaseModel):
    """Result from a search backend."""
    title: str
    snippet: str = ""
    link: str
    platform: SourcePlatform = SourcePlatform.WEB


class EvidenceBundle(BaseModel):
    """Deduplicated, capped evidence for one reply."""
    query: str
    results: list[SearchResult] = Field(default_factory=list)
    candidates: list[SearchResult] = Field(
        default_factory=list,
        description="Deduplicated working set before the final cap"
    )
    recency: Optional[RecencyWindow] = None

    @property
    def is_empty(self) -> bool:
        return not self.results
