import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from models.profile import FavoriteKind, Favorites, Preferences, UserProfile
from store.profile_store import ProfileStore

logger = logging.getLogger(__name__)

TOP_LEVEL_FIELDS = ("name", "city", "budget")
PREFERENCE_FIELDS = tuple(Preferences.model_fields)
FAVORITE_KINDS = tuple(Favorites.model_fields)
IMMUTABLE_FIELDS = ("user_id", "id", "userId")


class _UserLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.RLock()


class ProfileService:
    """Profile reads and mutations on top of a ProfileStore.

    Each read-modify-write runs under a lock keyed by user id, so a mutation
    always starts from the latest saved record. Different users never contend.
    """

    def __init__(self, store: ProfileStore):
        self.store = store
        # entries vanish once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[str, _UserLock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, user_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = _UserLock()
                self._locks[user_id] = entry
        with entry.lock:
            yield

    # ---------------------------------------------------------------
    # read / write
    # ---------------------------------------------------------------
    def get_profile(self, user_id: str) -> UserProfile:
        with self._locked(user_id):
            profile = self.store.load(user_id)
            if profile is None:
                profile = self.create_profile(user_id)
            return profile

    def create_profile(self, user_id: str) -> UserProfile:
        profile = UserProfile(user_id=user_id)
        self.store.save(profile)
        logger.info("Created new profile for user %s", user_id)
        return profile

    def save_profile(self, profile: UserProfile) -> None:
        profile.touch()
        self.store.save(profile)

    # ---------------------------------------------------------------
    # mutations
    # ---------------------------------------------------------------
    def update_profile(self, user_id: str, updates: Optional[Dict[str, Any]]) -> UserProfile:
        with self._locked(user_id):
            profile = self.get_profile(user_id)
            for key, value in (updates or {}).items():
                if key in IMMUTABLE_FIELDS:
                    continue
                if key in TOP_LEVEL_FIELDS:
                    setattr(profile, key, None if value is None else str(value))
                elif key == "preferences" and isinstance(value, dict):
                    self._merge_preferences(profile, value)
                elif key in PREFERENCE_FIELDS:
                    self._merge_preferences(profile, {key: value})
                else:
                    logger.warning("Ignoring unknown profile field %r for user %s", key, user_id)
            self.save_profile(profile)
            return profile

    def update_preferences(self, user_id: str, preferences: Dict[str, Any]) -> UserProfile:
        with self._locked(user_id):
            profile = self.get_profile(user_id)
            self._merge_preferences(profile, preferences)
            self.save_profile(profile)
            return profile

    @staticmethod
    def _merge_preferences(profile: UserProfile, preferences: Dict[str, Any]) -> None:
        merged = profile.preferences.model_dump()
        merged.update({k: v for k, v in preferences.items() if k in PREFERENCE_FIELDS})
        profile.preferences = Preferences.model_validate(merged)

    def add_favorite(self, user_id: str, kind: FavoriteKind, item: str) -> bool:
        if kind not in FAVORITE_KINDS:
            raise ValueError(f"Unknown favorite type: {kind}")
        if not item or not item.strip():
            raise ValueError("Favorite item is required")
        with self._locked(user_id):
            profile = self.get_profile(user_id)
            added = profile.favorites.add(kind, item)
            self.save_profile(profile)
            return added

    def add_conversation_entry(self, user_id: str, user_message: str, bot_response: str) -> None:
        with self._locked(user_id):
            profile = self.get_profile(user_id)
            profile.append_history(user_message, bot_response)
            self.save_profile(profile)

    # ---------------------------------------------------------------
    # rendering
    # ---------------------------------------------------------------
    def get_conversation_context(self, user_id: str, max_entries: int = 5) -> str:
        profile = self.get_profile(user_id)
        return render_conversation_context(profile, max_entries)

    def get_user_summary(self, profile: UserProfile) -> str:
        return render_user_summary(profile)


def render_conversation_context(profile: UserProfile, max_entries: int = 5) -> str:
    recent = profile.conversation_history[-max_entries:] if max_entries > 0 else []
    if not recent:
        return "No previous conversation history."

    context = "\n\n".join(f"User: {e.user_message}\nBot: {e.bot_response}" for e in recent)
    return f"Recent conversation history:\n{context}"


def render_user_summary(profile: UserProfile) -> str:
    parts = []

    if profile.name:
        parts.append(f"Name: {profile.name}")
    if profile.city:
        parts.append(f"Location: {profile.city}")
    if profile.budget:
        parts.append(f"Budget: {profile.budget}")

    prefs = ", ".join(
        f"{key}: {', '.join(value) if isinstance(value, list) else value}"
        for key, value in profile.preferences.model_dump().items()
        if value
    )
    if prefs:
        parts.append(f"Preferences: {prefs}")

    favs = ", ".join(
        f"{key}: {', '.join(value)}"
        for key, value in profile.favorites.model_dump().items()
        if value
    )
    if favs:
        parts.append(f"Favorites: {favs}")

    return " | ".join(parts) if parts else "No user information available."
