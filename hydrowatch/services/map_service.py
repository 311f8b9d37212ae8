"""
Map service - flatten water services and issues into map markers.

Marker shape (what the browser client expects):
    {id, title, kind, status, lat, lng}

kind is the water-service type or the issue category. Documents without a
usable location are skipped.
"""

import logging
from typing import Any, Dict, List, Optional

from hydrowatch.config.firebase import get_db
from hydrowatch.services.issue_service import ISSUES_COLLECTION
from hydrowatch.services.water_service_registry import WATER_SERVICES_COLLECTION
from hydrowatch.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)

MARKER_LIMIT = 500


def _marker(doc, title_field: str, kind_field: str, default_status: str) -> Optional[Dict[str, Any]]:
    data = doc.to_dict() or {}
    location = data.get("location") or {}
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None
    return {
        "id": doc.id,
        "title": data.get(title_field) or "",
        "kind": data.get(kind_field) or "",
        "status": data.get("status") or default_status,
        "lat": float(lat),
        "lng": float(lng),
    }


def get_water_service_markers() -> List[Dict[str, Any]]:
    docs = get_db().collection(WATER_SERVICES_COLLECTION).limit(MARKER_LIMIT).stream()
    markers = [m for m in (_marker(doc, "name", "type", "operational") for doc in docs) if m]
    markers.sort(key=lambda m: m["title"])
    return markers


def get_issue_markers(status: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Issue markers, optionally restricted to one status.
    """
    query = get_db().collection(ISSUES_COLLECTION)
    if status:
        query = where_filter(query, "status", "==", status)
    docs = query.limit(MARKER_LIMIT).stream()
    markers = [m for m in (_marker(doc, "title", "category", "reported") for doc in docs) if m]
    logger.debug(f"Issue markers: {len(markers)} (status={status or 'any'})")
    return markers
