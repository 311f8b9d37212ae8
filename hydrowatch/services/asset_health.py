"""
Derived values for water-service assets, computed on read and never stored.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from hydrowatch.utils.firestore_helpers import parse_timestamp, utcnow

MAINTENANCE_INTERVAL = timedelta(days=30)


def usage_percentage(service: Dict) -> Optional[float]:
    """
    current_usage / capacity as a percentage. Usage above capacity yields
    values over 100. None when capacity is zero or missing.
    """
    capacity = service.get("capacity") or 0
    if capacity <= 0:
        return None
    return (service.get("current_usage") or 0) / capacity * 100


def needs_maintenance(service: Dict, now: Optional[datetime] = None) -> bool:
    """True when never maintained, or when 30 days or more have passed since the last maintenance."""
    last = parse_timestamp(service.get("last_maintenance"))
    if last is None:
        return True
    return (parse_timestamp(now) or utcnow()) - last >= MAINTENANCE_INTERVAL


def default_next_maintenance(performed_at: datetime) -> datetime:
    return performed_at + MAINTENANCE_INTERVAL


def with_derived(service: Dict, now: Optional[datetime] = None) -> Dict:
    """Copy of a service dict with usage_percentage and needs_maintenance filled in."""
    result = dict(service)
    result["usage_percentage"] = usage_percentage(service)
    result["needs_maintenance"] = needs_maintenance(service, now)
    return result
