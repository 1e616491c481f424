"""
User profiles stored in the ``users`` collection.
"""
from typing import List, Optional

from firebase_admin import firestore

from salesdash.config import settings
from salesdash.config.permissions import DEFAULT_ROLE
from salesdash.services.access_service import UserProfile
from salesdash.services.observable import DocumentFeed


def _user_ref(db, uid: str):
    return db.collection(settings.USERS_COLLECTION).document(uid)


def get_profile_document(db, uid: str) -> Optional[dict]:
    snapshot = _user_ref(db, uid).get()
    return snapshot.to_dict() if snapshot.exists else None


def get_profile(db, uid: str) -> UserProfile:
    return UserProfile.from_document(uid, get_profile_document(db, uid))


def upsert_profile(db, uid: str, fields: dict, created: bool = False) -> None:
    """Merge ``fields`` into the profile, stamping updatedAt (and createdAt)."""
    payload = dict(fields)
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    if created:
        payload["createdAt"] = firestore.SERVER_TIMESTAMP
    _user_ref(db, uid).set(payload, merge=True)


def ensure_profile(db, uid: str, email: str) -> bool:
    """Create a default profile for ``uid`` if none exists. Returns True if created."""
    if get_profile_document(db, uid) is not None:
        return False
    upsert_profile(db, uid, {"email": email, "role": DEFAULT_ROLE}, created=True)
    return True


def list_profiles(db) -> List[dict]:
    users = []
    for snapshot in db.collection(settings.USERS_COLLECTION).stream():
        data = snapshot.to_dict() or {}
        profile = UserProfile.from_document(snapshot.id, data)
        users.append({
            "id": snapshot.id,
            "email": profile.email,
            "role": profile.role,
            "requirePasswordChange": profile.require_password_change,
        })
    return sorted(users, key=lambda u: u["email"])


def watch_profile(db, uid: str, claim_role: Optional[str] = None) -> DocumentFeed:
    return DocumentFeed(_user_ref(db, uid), lambda data: UserProfile.from_document(uid, data, claim_role))
