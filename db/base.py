import os
import firebase_admin
from firebase_admin import credentials, firestore

_db = None


def get_db():
    """Firestore client, initialized on first use from $SECRETS_DIR/firebase.json."""
    global _db
    if _db is None:
        secrets_dir = os.getenv("SECRETS_DIR", ".secrets")
        firebase_path = os.path.join(secrets_dir, "firebase.json")

        if not firebase_admin._apps:
            cred = credentials.Certificate(firebase_path)
            firebase_admin.initialize_app(cred)

        _db = firestore.client()
    return _db
