import gc
import json
import os
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from models.profile import MAX_HISTORY_ENTRIES, Favorites, UserProfile
from shared.profile import render_conversation_context, render_user_summary
from store.profile_store import FirestoreProfileStore, ProfileStoreError, validate_user_id


# ---------------------------------------------------------------------------
# model invariants
# ---------------------------------------------------------------------------

def test_history_keeps_most_recent_fifty_in_order(profiles):
    for i in range(MAX_HISTORY_ENTRIES + 7):
        profiles.add_conversation_entry("254700000001", f"msg {i}", f"reply {i}")

    history = profiles.get_profile("254700000001").conversation_history
    assert len(history) == MAX_HISTORY_ENTRIES
    assert [e.user_message for e in history] == [f"msg {i}" for i in range(7, MAX_HISTORY_ENTRIES + 7)]


def test_history_cap_applies_on_load():
    entries = [{"user_message": str(i), "bot_response": "ok"} for i in range(60)]
    profile = UserProfile.model_validate({"user_id": "u1", "conversation_history": entries})
    assert len(profile.conversation_history) == MAX_HISTORY_ENTRIES
    assert profile.conversation_history[0].user_message == "10"


def test_adding_same_favorite_twice_keeps_one(profiles):
    assert profiles.add_favorite("u1", "restaurants", "Tamarind") is True
    assert profiles.add_favorite("u1", "restaurants", "Tamarind") is False
    assert profiles.add_favorite("u1", "restaurants", "tamarind") is True  # case-sensitive

    favorites = profiles.get_profile("u1").favorites
    assert favorites.restaurants == ["Tamarind", "tamarind"]


def test_favorites_dedupe_on_load():
    assert Favorites(hotels=["A", "B", "A"]).hotels == ["A", "B"]


def test_add_favorite_rejects_unknown_kind_and_blank_item(profiles):
    with pytest.raises(ValueError):
        profiles.add_favorite("u1", "cars", "Tesla")
    with pytest.raises(ValueError):
        profiles.add_favorite("u1", "hotels", "  ")


def test_user_id_is_immutable():
    profile = UserProfile(user_id="u1")
    with pytest.raises(ValueError):
        profile.user_id = "u2"


def test_updated_at_never_goes_backwards(profiles):
    future = datetime.now(timezone.utc) + timedelta(days=1)
    profile = UserProfile(user_id="u1", updated_at=future)
    profiles.save_profile(profile)
    assert profile.updated_at == future

    profiles.add_conversation_entry("u1", "hi", "hello")
    assert profiles.get_profile("u1").updated_at >= future


# ---------------------------------------------------------------------------
# service operations
# ---------------------------------------------------------------------------

def test_get_profile_creates_default_record(profiles, profile_store):
    assert profile_store.load("new-user") is None

    profile = profiles.get_profile("new-user")

    assert profile.user_id == "new-user"
    assert profile.conversation_history == []
    assert profile_store.load("new-user") is not None


def test_update_profile_merges_fields_and_preferences(profiles):
    profiles.update_preferences("u1", {"hotel_type": "boutique"})
    profile = profiles.update_profile(
        "u1",
        {
            "name": "Amina",
            "city": "Nairobi",
            "preferences": {"cuisine": ["Swahili", "Italian"]},
            "dietary": "vegetarian, halal",
            "user_id": "someone-else",
            "shoe_size": 42,
        },
    )

    assert profile.user_id == "u1"
    assert profile.name == "Amina"
    assert profile.city == "Nairobi"
    assert profile.preferences.cuisine == ["Swahili", "Italian"]
    assert profile.preferences.dietary == ["vegetarian", "halal"]
    assert profile.preferences.hotel_type == "boutique"


def test_summary_lists_only_populated_sections(profiles):
    assert render_user_summary(UserProfile(user_id="u1")) == "No user information available."

    profile = profiles.update_profile("u1", {"name": "Amina", "budget": "mid-range", "cuisine": ["Italian"]})
    profiles.add_favorite("u1", "hotels", "Serena")
    profile = profiles.get_profile("u1")

    assert profiles.get_user_summary(profile) == (
        "Name: Amina | Budget: mid-range | Preferences: cuisine: Italian | Favorites: hotels: Serena"
    )


def test_conversation_context_rendering(profiles):
    assert profiles.get_conversation_context("u1") == "No previous conversation history."

    for i in range(4):
        profiles.add_conversation_entry("u1", f"q{i}", f"a{i}")

    rendered = render_conversation_context(profiles.get_profile("u1"), 2)
    assert rendered == "Recent conversation history:\nUser: q2\nBot: a2\n\nUser: q3\nBot: a3"


# ---------------------------------------------------------------------------
# stores
# ---------------------------------------------------------------------------

def test_corrupt_record_raises_store_error(profiles, profile_store):
    with open(f"{profile_store.directory}/broken.json", "w", encoding="utf-8") as f:
        f.write("{not json")

    with pytest.raises(ProfileStoreError):
        profiles.get_profile("broken")


def test_malformed_record_raises_store_error(profile_store):
    with open(f"{profile_store.directory}/odd.json", "w", encoding="utf-8") as f:
        json.dump({"user_id": "odd", "conversation_history": "not-a-list"}, f)

    with pytest.raises(ProfileStoreError):
        profile_store.load("odd")


@pytest.mark.parametrize("bad", ["", ".", "..", "../etc/passwd", "a/b", "a b"])
def test_invalid_user_ids_rejected(bad):
    with pytest.raises(ProfileStoreError):
        validate_user_id(bad)


def test_json_store_round_trip(profile_store):
    profile = UserProfile(user_id="254711111111", name="Juma")
    profile.append_history("hi", "hello")
    profile_store.save(profile)

    loaded = profile_store.load("254711111111")
    assert loaded.name == "Juma"
    assert loaded.conversation_history[0].bot_response == "hello"


def test_failed_save_leaves_no_temp_file(profile_store, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("store.profile_store.os.replace", broken_replace)

    with pytest.raises(ProfileStoreError):
        profile_store.save(UserProfile(user_id="u1"))
    assert [n for n in os.listdir(profile_store.directory) if n.endswith(".tmp")] == []
    assert profile_store.load("u1") is None


def test_firestore_store_load_and_save():
    db = MagicMock()
    doc_ref = db.collection.return_value.document.return_value
    doc_ref.get.return_value.exists = True
    doc_ref.get.return_value.to_dict.return_value = {"user_id": "u1", "city": "Mombasa"}

    store = FirestoreProfileStore(db, "profiles")
    profile = store.load("u1")

    db.collection.assert_called_with("profiles")
    db.collection.return_value.document.assert_called_with("u1")
    assert profile.city == "Mombasa"

    store.save(profile)
    saved = doc_ref.set.call_args.args[0]
    assert saved["user_id"] == "u1"
    assert saved["city"] == "Mombasa"


def test_firestore_store_missing_document():
    db = MagicMock()
    db.collection.return_value.document.return_value.get.return_value.exists = False
    assert FirestoreProfileStore(db).load("u1") is None


# ---------------------------------------------------------------------------
# concurrency
# ---------------------------------------------------------------------------

def test_concurrent_updates_for_one_user_are_not_lost(profiles):
    def work(i):
        profiles.add_favorite("u1", "destinations", f"place {i}")
        profiles.add_conversation_entry("u1", f"msg {i}", f"reply {i}")

    threads = [threading.Thread(target=work, args=(i,)) for i in range(30)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    profile = profiles.get_profile("u1")
    assert sorted(profile.favorites.destinations) == sorted(f"place {i}" for i in range(30))
    assert len(profile.conversation_history) == 30


def test_user_locks_are_released_after_use(profiles):
    for i in range(200):
        profiles.add_conversation_entry(f"2547000{i:05d}", "hi", "hello")
    gc.collect()
    assert len(profiles._locks) == 0
