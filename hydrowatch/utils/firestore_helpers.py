"""
Firestore query and document helpers shared by the services.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Uses positional arguments, which work with both firebase_admin and the
    mock database.

    Usage:
        query = where_filter(collection, "status", "==", "reported")
    """
    return query.where(field_path, op_string, value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse various timestamp formats to a timezone-aware datetime (UTC).

    All datetimes leaving this module are timezone-aware so comparisons
    never mix naive and aware values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    # Firestore Timestamp interface
    if hasattr(value, "to_datetime"):
        return parse_timestamp(value.to_datetime())
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    return None


def snapshot_to_dict(doc) -> Optional[Dict]:
    """Convert a document snapshot to a dict that carries its id, or None if missing."""
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
