#models/profile.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime, timezone

MAX_HISTORY_ENTRIES = 50

FavoriteKind = Literal["restaurants", "hotels", "destinations"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe(items: List[str]) -> List[str]:
    seen, out = set(), []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class Preferences(BaseModel):
    cuisine: Optional[List[str]] = None
    hotel_type: Optional[str] = None
    travel_class: Optional[str] = None
    dietary: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @field_validator("cuisine", "dietary", mode="before")
    @classmethod
    def _listify(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class Favorites(BaseModel):
    restaurants: List[str] = Field(default_factory=list)
    hotels: List[str] = Field(default_factory=list)
    destinations: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("restaurants", "hotels", "destinations")
    @classmethod
    def _no_duplicates(cls, v: List[str]) -> List[str]:
        return _dedupe(v)

    def add(self, kind: FavoriteKind, item: str) -> bool:
        """Append item to the named list. Returns False when it was already there."""
        items: List[str] = getattr(self, kind)
        if item in items:
            return False
        items.append(item)
        return True


class ConversationEntry(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    user_message: str
    bot_response: str


class UserProfile(BaseModel):
    user_id: str = Field(..., min_length=1, frozen=True)
    name: Optional[str] = None
    city: Optional[str] = None
    budget: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    favorites: Favorites = Field(default_factory=Favorites)
    conversation_history: List[ConversationEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(extra="ignore")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @field_validator("conversation_history")
    @classmethod
    def _bounded_history(cls, v: List[ConversationEntry]) -> List[ConversationEntry]:
        return v[-MAX_HISTORY_ENTRIES:]

    def append_history(self, user_message: str, bot_response: str) -> None:
        self.conversation_history.append(
            ConversationEntry(user_message=user_message, bot_response=bot_response)
        )
        if len(self.conversation_history) > MAX_HISTORY_ENTRIES:
            # oldest first out
            self.conversation_history = self.conversation_history[-MAX_HISTORY_ENTRIES:]

    def touch(self) -> None:
        now = _utcnow()
        if now > self.updated_at:
            self.updated_at = now
