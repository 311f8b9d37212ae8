"""
Water Service Registry - CRUD and proximity lookups for water infrastructure.

Firestore has no radius query, so find_nearby narrows candidates with a
latitude-band range query and then filters and orders them by haversine
distance in application code.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from firebase_admin import firestore

from hydrowatch.config.firebase import get_db
from hydrowatch.core.errors import NotFoundError
from hydrowatch.services.asset_health import default_next_maintenance, with_derived
from hydrowatch.utils.firestore_helpers import parse_timestamp, snapshot_to_dict, utcnow, where_filter
from hydrowatch.utils.geo import haversine_meters, latitude_band

logger = logging.getLogger(__name__)

WATER_SERVICES_COLLECTION = "water_services"

_TIMESTAMP_FIELDS = ("last_maintenance", "next_maintenance", "created_at", "updated_at")


class WaterServiceRegistry:
    """
    Service for the water_services collection.
    """

    def __init__(self):
        self.db = get_db()

    def _collection(self):
        return self.db.collection(WATER_SERVICES_COLLECTION)

    def _require(self, service_id: str):
        doc_ref = self._collection().document(service_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise NotFoundError("Water service not found")
        return doc_ref, doc

    def list_services(self) -> List[Dict]:
        services = [self._normalize(snapshot_to_dict(doc)) for doc in self._collection().stream()]
        services.sort(key=lambda s: s.get("name") or "")
        return [with_derived(s) for s in services]

    def get_service(self, service_id: str) -> Optional[Dict]:
        data = snapshot_to_dict(self._collection().document(service_id).get())
        if data is None:
            return None
        return with_derived(self._normalize(data))

    def create_service(self, data: Dict) -> Dict:
        """
        Store a new water service.

        Args:
            data: validated fields (name, location, type, description, capacity)
        """
        now = utcnow()
        doc_ref = self._collection().document()
        service = {
            "name": data["name"],
            "location": {"lat": data["location"]["lat"], "lng": data["location"]["lng"]},
            "type": data["type"],
            "description": data.get("description"),
            "capacity": data["capacity"],
            "current_usage": 0,
            "status": "operational",
            "last_maintenance": None,
            "next_maintenance": None,
            "maintenance_history": [],
            "issues": [],
            "created_at": now,
            "updated_at": now,
        }
        doc_ref.set(service)
        logger.info(f"Water service created: {doc_ref.id} ({service['name']})")

        service["id"] = doc_ref.id
        return with_derived(service)

    def update_service(self, service_id: str, data: Dict) -> Dict:
        doc_ref, _ = self._require(service_id)
        doc_ref.update({
            "name": data["name"],
            "location": {"lat": data["location"]["lat"], "lng": data["location"]["lng"]},
            "type": data["type"],
            "description": data.get("description"),
            "capacity": data["capacity"],
            "updated_at": utcnow(),
        })
        return self.get_service(service_id)

    def delete_service(self, service_id: str) -> None:
        doc_ref, _ = self._require(service_id)
        doc_ref.delete()
        logger.info(f"Water service deleted: {service_id}")

    def update_status(self, service_id: str, status: str, current_usage: Optional[float] = None) -> Dict:
        doc_ref, _ = self._require(service_id)
        update = {"status": status, "updated_at": utcnow()}
        if current_usage is not None:
            update["current_usage"] = current_usage
        doc_ref.update(update)
        return self.get_service(service_id)

    def log_maintenance(
        self,
        service_id: str,
        description: str,
        performed_by: str,
        performed_at: Optional[datetime] = None,
        next_maintenance: Optional[datetime] = None,
    ) -> Dict:
        """
        Append a maintenance history entry and move the maintenance dates forward.
        """
        doc_ref, doc = self._require(service_id)
        performed_at = parse_timestamp(performed_at) or utcnow()

        history = list(doc.to_dict().get("maintenance_history") or [])
        history.append({
            "date": performed_at,
            "description": description,
            "performed_by": performed_by,
        })
        doc_ref.update({
            "maintenance_history": history,
            "last_maintenance": performed_at,
            "next_maintenance": parse_timestamp(next_maintenance) or default_next_maintenance(performed_at),
            "updated_at": utcnow(),
        })
        logger.info(f"Maintenance logged on {service_id} by {performed_by}")
        return self.get_service(service_id)

    def find_nearby(self, latitude: float, longitude: float, radius_meters: float) -> List[Dict]:
        """
        Services within radius_meters of the point, closest first.
        Each result carries a distance_meters field.
        """
        lat_min, lat_max = latitude_band(latitude, radius_meters)
        query = where_filter(self._collection(), "location.lat", ">=", lat_min)
        query = where_filter(query, "location.lat", "<=", lat_max)

        matches = []
        for doc in query.stream():
            service = self._normalize(snapshot_to_dict(doc))
            location = service.get("location") or {}
            if location.get("lat") is None or location.get("lng") is None:
                continue
            distance = haversine_meters(latitude, longitude, location["lat"], location["lng"])
            if distance <= radius_meters:
                service["distance_meters"] = distance
                matches.append(service)

        matches.sort(key=lambda s: s["distance_meters"])
        return [with_derived(s) for s in matches]

    def find_nearest(self, latitude: float, longitude: float, radius_meters: float) -> Optional[Dict]:
        nearby = self.find_nearby(latitude, longitude, radius_meters)
        return nearby[0] if nearby else None

    def link_issue(self, service_id: str, issue_id: str) -> None:
        """Record issue_id in the service's issues back-reference list."""
        self._collection().document(service_id).update({
            "issues": firestore.ArrayUnion([issue_id]),
        })

    def get_summaries(self, service_ids: Iterable[Optional[str]]) -> Dict[str, Dict]:
        summaries = {}
        for service_id in {sid for sid in service_ids if sid}:
            data = snapshot_to_dict(self._collection().document(service_id).get())
            if data:
                summaries[service_id] = {"id": service_id, "name": data.get("name"), "type": data.get("type")}
        return summaries

    def _normalize(self, service: Dict) -> Dict:
        for field in _TIMESTAMP_FIELDS:
            if service.get(field) is not None:
                service[field] = parse_timestamp(service[field])
        for entry in service.get("maintenance_history") or []:
            entry["date"] = parse_timestamp(entry.get("date"))
        return service


_registry: Optional[WaterServiceRegistry] = None


def get_water_service_registry() -> WaterServiceRegistry:
    """Get or create the WaterServiceRegistry singleton."""
    global _registry
    if _registry is None:
        _registry = WaterServiceRegistry()
    return _registry
