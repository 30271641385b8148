import contextlib
import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod

from pydantic import ValidationError

from models.profile import UserProfile

logger = logging.getLogger(__name__)

_USER_ID_RE = re.compile(r"[A-Za-z0-9_.@+-]+")


class ProfileStoreError(RuntimeError):
    pass


def validate_user_id(user_id: str) -> str:
    if not user_id or user_id in (".", "..") or not _USER_ID_RE.fullmatch(user_id):
        raise ProfileStoreError(f"Invalid user id: {user_id!r}")
    return user_id


class ProfileStore(ABC):
    @abstractmethod
    def load(self, user_id: str) -> UserProfile | None:
        """Return the stored profile, or None if the user was never seen."""

    @abstractmethod
    def save(self, profile: UserProfile) -> None:
        """Overwrite the full record."""


class JsonProfileStore(ProfileStore):
    """One pretty-printed <user_id>.json file per user."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, user_id: str) -> str:
        return os.path.join(self.directory, f"{validate_user_id(user_id)}.json")

    def load(self, user_id: str) -> UserProfile | None:
        path = self._path(user_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error reading profile for user %s: %s", user_id, e)
            raise ProfileStoreError(f"Failed to read user profile: {e}") from e

        try:
            return UserProfile.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed profile record for user %s", user_id)
            raise ProfileStoreError(f"Malformed profile record for {user_id}") from e

    def save(self, profile: UserProfile) -> None:
        path = self._path(profile.user_id)
        payload = profile.model_dump_json(indent=2)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
            logger.error("Error saving profile for user %s: %s", profile.user_id, e)
            raise ProfileStoreError(f"Failed to save user profile: {e}") from e
        logger.debug("Saved profile for user %s", profile.user_id)


class FirestoreProfileStore(ProfileStore):
    def __init__(self, db, collection: str = "profiles"):
        self.db = db
        self.collection = collection

    def _doc_ref(self, user_id: str):
        return self.db.collection(self.collection).document(validate_user_id(user_id))

    def load(self, user_id: str) -> UserProfile | None:
        doc = self._doc_ref(user_id).get()
        if not doc.exists:
            return None
        try:
            return UserProfile.model_validate(doc.to_dict())
        except ValidationError as e:
            logger.error("Malformed profile document for user %s", user_id)
            raise ProfileStoreError(f"Malformed profile record for {user_id}") from e

    def save(self, profile: UserProfile) -> None:
        self._doc_ref(profile.user_id).set(profile.model_dump(mode="json"))
