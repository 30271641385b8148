# models/agent.py
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.profile import FavoriteKind, UserProfile


class SearchCategory(str, Enum):
    HOTELS = "hotels"
    FLIGHTS = "flights"
    RESTAURANTS = "restaurants"
    PRODUCTS = "products"
    GENERAL = "general"


class SearchParams(BaseModel):
    """Structured search request extracted from a user message."""

    query: str = Field(..., description="Main search term")
    category: Optional[SearchCategory] = Field(
        None, description="hotels, flights, restaurants, products, or general"
    )
    location: Optional[str] = Field(None, description="City/place for hotels/restaurants")
    origin: Optional[str] = Field(None, description="Departure city for flights")
    destination: Optional[str] = Field(None, description="Arrival city for flights or hotel location")
    date: Optional[str] = Field(None, description="Specific date mentioned")
    budget: Optional[str] = Field(None, description="Budget constraints mentioned")
    cuisine: Optional[str] = Field(None, description="Cuisine type for restaurants")

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v: Any) -> Any:
        # models sometimes answer "hotel" or "Food"; unknown values mean "general"
        if v is None:
            return None
        value = str(getattr(v, "value", v)).strip().lower()
        known = {c.value for c in SearchCategory}
        return value if value in known else None

    @field_validator("location", "origin", "destination", "date", "budget", "cuisine")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ProfileToolArgs(BaseModel):
    action: Literal["get", "update", "add_favorite"] = Field(..., description="Action to perform")
    updates: Optional[Dict[str, Any]] = Field(None, description="Profile updates")
    favorite_type: Optional[FavoriteKind] = Field(None, description="Type of favorite to add")
    favorite_item: Optional[str] = Field(None, description="Favorite item to add")


class AgentContext(BaseModel):
    """Per-message working context. Never persisted."""

    user_id: str
    user_message: str
    conversation_history: str = ""
    user_profile: Optional[UserProfile] = None


class AgentResponse(BaseModel):
    message: str
    tools_used: List[str] = Field(default_factory=list)
    confidence: float
