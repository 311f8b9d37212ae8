"""
User Service - Manage user accounts in Firestore.
"""

import hashlib
import logging
from typing import Dict, Iterable, Optional

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from hydrowatch.config.firebase import get_db
from hydrowatch.core.errors import ConflictError
from hydrowatch.utils.firestore_helpers import parse_timestamp, snapshot_to_dict, utcnow, where_filter

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
# One document per normalized email, keyed by its sha256; create() fails if taken
USER_EMAILS_COLLECTION = "user_emails"

_TIMESTAMP_FIELDS = ("created_at", "updated_at", "reset_password_expires")


class UserService:
    """
    Service for user management in Firestore.
    """

    def __init__(self):
        self.db = get_db()

    def _collection(self):
        return self.db.collection(USERS_COLLECTION)

    def get_user_by_id(self, user_id: str) -> Optional[Dict]:
        if not user_id:
            return None
        return self._convert_timestamps(snapshot_to_dict(self._collection().document(user_id).get()))

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        """
        Get user by email address (case-insensitive).

        Returns:
            User dict with converted timestamps or None if not found
        """
        query = where_filter(self._collection(), "email", "==", self._normalize_email(email)).limit(1)
        docs = list(query.stream())
        if not docs:
            return None
        return self._convert_timestamps(snapshot_to_dict(docs[0]))

    def get_user_by_field(self, field: str, value) -> Optional[Dict]:
        docs = list(where_filter(self._collection(), field, "==", value).limit(1).stream())
        if not docs:
            return None
        return self._convert_timestamps(snapshot_to_dict(docs[0]))

    def create_user(self, name: str, email: str, password_hash: str, role: str = "citizen") -> Dict:
        """
        Create a new user document.

        The email is claimed first with an atomic create() on its guard
        document, so two concurrent signups cannot both succeed.

        Raises:
            ConflictError: the email is already taken
        """
        now = utcnow()
        email = self._normalize_email(email)
        user_ref = self._collection().document()
        guard_ref = self._email_guard(email)
        try:
            guard_ref.create({"user_id": user_ref.id, "created_at": now})
        except AlreadyExists:
            logger.warning(f"Email already claimed: {email}")
            raise ConflictError("User already exists")

        user_data = {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "role": role,
            "stripe_customer_id": None,
            "payment_history": [],
            "reset_password_token_hash": None,
            "reset_password_expires": None,
            "created_at": now,
            "updated_at": now,
        }
        try:
            user_ref.set(user_data)
        except Exception:
            guard_ref.delete()
            raise
        logger.info(f"User created: {user_ref.id} (role={role})")

        user_data["id"] = user_ref.id
        return user_data

    def update_user(self, user_id: str, update_data: Dict) -> Dict:
        """
        Update user fields and return the refreshed document.
        """
        user_ref = self._collection().document(user_id)
        update_data = dict(update_data)
        update_data["updated_at"] = utcnow()
        user_ref.update(update_data)
        return self._convert_timestamps(snapshot_to_dict(user_ref.get()))

    def get_user_by_customer_id(self, stripe_customer_id: Optional[str]) -> Optional[Dict]:
        # Users without a customer store None, which must never match
        if not stripe_customer_id:
            return None
        return self.get_user_by_field("stripe_customer_id", stripe_customer_id)

    def append_payment(self, user_id: str, payment_intent_id: str) -> None:
        """Record a succeeded payment intent; redelivered intents are not duplicated."""
        self._collection().document(user_id).update({
            "payment_history": firestore.ArrayUnion([payment_intent_id]),
            "updated_at": utcnow(),
        })

    def get_summaries(self, user_ids: Iterable[Optional[str]]) -> Dict[str, Dict]:
        """
        Resolve user ids into {id: {id, name, email}} for display.
        Unknown ids are left out of the mapping.
        """
        summaries: Dict[str, Dict] = {}
        for user_id in {uid for uid in user_ids if uid}:
            user = self.get_user_by_id(user_id)
            if user:
                summaries[user_id] = self.to_summary(user)
        return summaries

    @staticmethod
    def to_summary(user: Dict) -> Dict:
        return {"id": user["id"], "name": user.get("name"), "email": user.get("email")}

    @staticmethod
    def to_profile(user: Dict) -> Dict:
        return {
            "id": user["id"],
            "name": user.get("name"),
            "email": user.get("email"),
            "role": user.get("role", "citizen"),
            "created_at": user.get("created_at"),
        }

    def _convert_timestamps(self, user_data: Optional[Dict]) -> Optional[Dict]:
        """
        Convert Firestore timestamps on a user dict to aware datetimes.
        """
        if not user_data:
            return user_data

        for field in _TIMESTAMP_FIELDS:
            if user_data.get(field) is not None:
                user_data[field] = parse_timestamp(user_data[field])

        return user_data

    def _email_guard(self, normalized_email: str):
        key = hashlib.sha256(normalized_email.encode("utf-8")).hexdigest()
        return self.db.collection(USER_EMAILS_COLLECTION).document(key)

    @staticmethod
    def _normalize_email(email: str) -> str:
        return (email or "").strip().lower()


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
