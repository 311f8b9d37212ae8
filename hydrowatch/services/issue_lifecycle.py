"""
Issue lifecycle rules.

Pure functions over plain issue dicts; nothing here touches storage, so the
rules can be tested without a database. Every function returns a new dict
and leaves its input unchanged.

STATUS MODEL:
- reported → assigned → in_progress → resolved → closed
- Permissive by default: any status may follow any other
- Strict mode enforces ALLOWED_TRANSITIONS
- Every change is appended to status_history
"""

import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional

from hydrowatch.core.errors import ValidationFailedError
from hydrowatch.models.issue import IssueStatus

logger = logging.getLogger(__name__)


class IssueWorkflow:
    """
    Status transition policy for issues.

    Rules (strict mode only):
    - No jumping from reported straight to resolved or closed
    - closed is terminal
    - Reopening goes resolved → in_progress
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[IssueStatus, List[IssueStatus]] = {
        IssueStatus.REPORTED: [IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS],
        IssueStatus.ASSIGNED: [IssueStatus.REPORTED, IssueStatus.IN_PROGRESS],
        IssueStatus.IN_PROGRESS: [IssueStatus.ASSIGNED, IssueStatus.RESOLVED],
        IssueStatus.RESOLVED: [IssueStatus.IN_PROGRESS, IssueStatus.CLOSED],
        IssueStatus.CLOSED: [],
    }

    def __init__(self, strict: bool = False):
        self.strict = strict

    def is_valid_transition(self, from_status: Optional[str], to_status: str) -> bool:
        """
        Check if a status transition is valid under this policy.

        Unknown status values are never valid. The same status is always
        valid (no-op).
        """
        try:
            to_enum = IssueStatus(to_status)
        except ValueError:
            return False

        if not self.strict:
            return True

        try:
            from_enum = IssueStatus(from_status)
        except ValueError:
            return False

        if from_enum == to_enum:
            return True
        return to_enum in self.ALLOWED_TRANSITIONS.get(from_enum, [])

    def get_allowed_transitions(self, current_status: str) -> List[str]:
        if not self.strict:
            return [s.value for s in IssueStatus if s.value != current_status]
        try:
            current_enum = IssueStatus(current_status)
        except ValueError:
            return []
        return [s.value for s in self.ALLOWED_TRANSITIONS.get(current_enum, [])]

    def validate(self, current_status: Optional[str], new_status: str) -> None:
        """
        Raises:
            ValidationFailedError: transition is not allowed
        """
        if not self.is_valid_transition(current_status, new_status):
            allowed = self.get_allowed_transitions(current_status)
            raise ValidationFailedError.single(
                "status",
                f"Invalid status transition: {current_status} → {new_status}. "
                f"Allowed transitions from {current_status}: {allowed}",
            )


def create_status_history_entry(
    from_status: Optional[str],
    to_status: str,
    changed_by: Optional[str],
    timestamp: datetime,
    note: Optional[str] = None,
) -> Dict:
    return {
        "from_status": from_status,
        "to_status": to_status,
        "changed_by": changed_by,
        "timestamp": timestamp,
        "note": note or "",
    }


def new_issue(
    data: Dict,
    reporter_id: str,
    now: datetime,
    water_service_id: Optional[str] = None,
    photos: Optional[List[Dict]] = None,
) -> Dict:
    """
    Build the stored form of a freshly reported issue.

    Args:
        data: validated title/description/category/priority/location
        reporter_id: authenticated caller, the only source of reported_by
    """
    initial_status = IssueStatus.REPORTED.value
    return {
        "title": data["title"],
        "description": data["description"],
        "category": data["category"],
        "priority": data.get("priority") or "medium",
        "status": initial_status,
        "location": {"lat": data["location"]["lat"], "lng": data["location"]["lng"]},
        "reported_by": reporter_id,
        "assigned_to": None,
        "water_service": water_service_id,
        "photos": list(photos or []),
        "comments": [],
        "resolution": None,
        "status_history": [
            create_status_history_entry(None, initial_status, reporter_id, now, note="Issue reported"),
        ],
        "created_at": now,
        "updated_at": now,
    }


def _transition(issue: Dict, new_status: str, actor_id: str, now: datetime, note: Optional[str]) -> Dict:
    updated = copy.deepcopy(issue)
    previous = updated.get("status")
    updated["status"] = new_status
    updated.setdefault("status_history", []).append(
        create_status_history_entry(previous, new_status, actor_id, now, note=note)
    )
    updated["updated_at"] = now
    return updated


def apply_status_change(
    issue: Dict,
    new_status: str,
    actor_id: str,
    now: datetime,
    resolution_description: Optional[str] = None,
    workflow: Optional[IssueWorkflow] = None,
) -> Dict:
    """
    Set a new status.

    Only a change to resolved stamps the resolution record
    {description, resolved_by, resolved_at}. A resolution description sent
    with any other status is ignored. An existing resolution is kept when an
    issue moves on (e.g. resolved → closed).
    """
    (workflow or IssueWorkflow()).validate(issue.get("status"), new_status)

    updated = _transition(issue, new_status, actor_id, now, note=None)
    if new_status == IssueStatus.RESOLVED.value:
        updated["resolution"] = {
            "description": resolution_description or None,
            "resolved_by": actor_id,
            "resolved_at": now,
        }
    return updated


def apply_assignment(
    issue: Dict,
    assignee_id: str,
    actor_id: str,
    now: datetime,
    workflow: Optional[IssueWorkflow] = None,
) -> Dict:
    """
    Set the assignee and force status to assigned, whatever it was before
    (including resolved and closed) unless a strict workflow forbids it.
    """
    (workflow or IssueWorkflow()).validate(issue.get("status"), IssueStatus.ASSIGNED.value)

    updated = _transition(issue, IssueStatus.ASSIGNED.value, actor_id, now, note=f"Assigned to {assignee_id}")
    updated["assigned_to"] = assignee_id
    return updated


def append_comment(issue: Dict, author_id: str, text: str, now: datetime) -> Dict:
    """Append a comment. Status is never touched."""
    updated = copy.deepcopy(issue)
    updated.setdefault("comments", []).append({
        "text": text,
        "author": author_id,
        "created_at": now,
    })
    updated["updated_at"] = now
    return updated
