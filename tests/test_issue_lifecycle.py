from datetime import datetime, timedelta, timezone

import pytest

from hydrowatch.core.errors import ValidationFailedError
from hydrowatch.services.issue_lifecycle import (
    IssueWorkflow,
    append_comment,
    apply_assignment,
    apply_status_change,
    new_issue,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _issue():
    data = {
        "title": "Low pressure",
        "description": "Tap barely runs",
        "category": "pressure",
        "location": {"lat": 1.0, "lng": 2.0},
    }
    return new_issue(data, reporter_id="u-reporter", now=T0)


def test_new_issue_defaults():
    issue = _issue()
    assert issue["status"] == "reported"
    assert issue["priority"] == "medium"
    assert issue["reported_by"] == "u-reporter"
    assert issue["comments"] == []
    assert issue["resolution"] is None
    assert issue["water_service"] is None
    assert len(issue["status_history"]) == 1
    assert issue["status_history"][0]["to_status"] == "reported"


@pytest.mark.parametrize("status", ["assigned", "in_progress", "closed", "reported"])
def test_resolution_only_stamped_for_resolved(status):
    updated = apply_status_change(_issue(), status, "u-admin", T0, resolution_description="fixed")
    assert updated["status"] == status
    assert updated["resolution"] is None


def test_resolving_stamps_resolution_record():
    later = T0 + timedelta(hours=3)
    updated = apply_status_change(_issue(), "resolved", "u-admin", later, resolution_description="fixed")
    assert updated["resolution"] == {"description": "fixed", "resolved_by": "u-admin", "resolved_at": later}
    assert updated["updated_at"] == later
    assert updated["status_history"][-1] == {
        "from_status": "reported",
        "to_status": "resolved",
        "changed_by": "u-admin",
        "timestamp": later,
        "note": "",
    }


def test_resolution_description_optional():
    updated = apply_status_change(_issue(), "resolved", "u-admin", T0)
    assert updated["resolution"]["description"] is None
    assert updated["resolution"]["resolved_by"] == "u-admin"


def test_closing_keeps_resolution():
    resolved = apply_status_change(_issue(), "resolved", "u-admin", T0, resolution_description="fixed")
    closed = apply_status_change(resolved, "closed", "u-admin", T0 + timedelta(days=1))
    assert closed["status"] == "closed"
    assert closed["resolution"]["description"] == "fixed"


def test_inputs_are_not_mutated():
    issue = _issue()
    apply_status_change(issue, "resolved", "u-admin", T0, resolution_description="fixed")
    append_comment(issue, "u-1", "hello", T0)
    assert issue["status"] == "reported"
    assert issue["resolution"] is None
    assert issue["comments"] == []
    assert len(issue["status_history"]) == 1


def test_assignment_forces_assigned_from_any_status():
    closed = apply_status_change(_issue(), "closed", "u-admin", T0)
    assigned = apply_assignment(closed, "u-tech", "u-admin", T0)
    assert assigned["status"] == "assigned"
    assert assigned["assigned_to"] == "u-tech"
    assert assigned["status_history"][-1]["from_status"] == "closed"


def test_comment_leaves_status_alone():
    issue = apply_status_change(_issue(), "in_progress", "u-admin", T0)
    commented = append_comment(issue, "u-1", "Crew on site", T0)
    assert commented["status"] == "in_progress"
    assert commented["comments"] == [{"text": "Crew on site", "author": "u-1", "created_at": T0}]


def test_permissive_workflow_allows_any_known_status():
    workflow = IssueWorkflow()
    assert workflow.is_valid_transition("reported", "closed")
    assert workflow.is_valid_transition("closed", "reported")
    assert not workflow.is_valid_transition("reported", "bogus")


def test_strict_workflow_enforces_table():
    workflow = IssueWorkflow(strict=True)
    assert workflow.is_valid_transition("reported", "assigned")
    assert workflow.is_valid_transition("resolved", "closed")
    assert workflow.is_valid_transition("in_progress", "in_progress")
    assert not workflow.is_valid_transition("reported", "resolved")
    assert not workflow.is_valid_transition("closed", "assigned")
    assert workflow.get_allowed_transitions("closed") == []


def test_strict_workflow_rejects_invalid_change():
    with pytest.raises(ValidationFailedError) as exc_info:
        apply_status_change(_issue(), "resolved", "u-admin", T0, workflow=IssueWorkflow(strict=True))
    assert exc_info.value.errors[0]["field"] == "status"


def test_strict_workflow_rejects_assigning_closed_issue():
    closed = apply_status_change(_issue(), "closed", "u-admin", T0)
    with pytest.raises(ValidationFailedError):
        apply_assignment(closed, "u-tech", "u-admin", T0, workflow=IssueWorkflow(strict=True))
