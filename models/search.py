# models/search.py
from __future__ import annotations
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

SearchDepth = Literal["basic", "advanced"]


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    search_depth: SearchDepth = "basic"
    max_results: int = 5
    include_domains: List[str] = Field(default_factory=list)
    exclude_domains: List[str] = Field(default_factory=list)
    include_answer: bool = True
    include_images: bool = False


class SearchResult(BaseModel):
    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0.0
    published_date: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SearchResponse(BaseModel):
    query: str
    answer: Optional[str] = None
    response_time: Optional[float] = None
    results: List[SearchResult] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
