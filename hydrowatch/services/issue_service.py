"""
Issue Service - Firestore persistence for citizen-reported issues.

The lifecycle rules live in issue_lifecycle; this module loads an issue,
applies a rule, and writes the whole document back. Two concurrent updates
to the same issue are not coordinated: the last write wins.
"""

import logging
from typing import Dict, List, Optional

from google.api_core.exceptions import NotFound

from hydrowatch.config.firebase import get_db
from hydrowatch.core.errors import NotFoundError
from hydrowatch.core.settings import settings
from hydrowatch.services import issue_lifecycle
from hydrowatch.services.user_service import get_user_service
from hydrowatch.services.water_service_registry import get_water_service_registry
from hydrowatch.utils.firestore_helpers import parse_timestamp, snapshot_to_dict, utcnow, where_filter

logger = logging.getLogger(__name__)

ISSUES_COLLECTION = "issues"


class IssueService:
    """
    Service for the issues collection.
    """

    def __init__(self):
        self.db = get_db()
        self.users = get_user_service()
        self.registry = get_water_service_registry()

    @property
    def workflow(self) -> issue_lifecycle.IssueWorkflow:
        return issue_lifecycle.IssueWorkflow(strict=settings.ISSUE_STRICT_TRANSITIONS)

    def _collection(self):
        return self.db.collection(ISSUES_COLLECTION)

    def _load(self, issue_id: str):
        doc_ref = self._collection().document(issue_id)
        data = snapshot_to_dict(doc_ref.get())
        if data is None:
            raise NotFoundError("Issue not found")
        return doc_ref, self._normalize(data)

    def _save(self, doc_ref, issue: Dict) -> Dict:
        stored = {key: value for key, value in issue.items() if key != "id"}
        doc_ref.set(stored)
        stored["id"] = doc_ref.id
        return stored

    def create_issue(self, data: Dict, reporter_id: str, photos: Optional[List[Dict]] = None) -> Dict:
        """
        Store a new issue and link it to the nearest water service.

        The nearest service within NEAREST_SERVICE_RADIUS_METERS is attached;
        when there is none the issue is stored without one.
        """
        location = data["location"]
        nearest = self.registry.find_nearest(
            location["lat"], location["lng"], settings.NEAREST_SERVICE_RADIUS_METERS
        )
        water_service_id = nearest["id"] if nearest else None

        issue = issue_lifecycle.new_issue(
            data,
            reporter_id=reporter_id,
            now=utcnow(),
            water_service_id=water_service_id,
            photos=photos,
        )
        created = self._save(self._collection().document(), issue)
        logger.info(f"Issue created: {created['id']} (water_service={water_service_id})")

        if water_service_id:
            try:
                self.registry.link_issue(water_service_id, created["id"])
            except NotFound:
                # Service deleted between lookup and link
                logger.warning(f"Water service {water_service_id} vanished before linking issue {created['id']}")

        return created

    def get_issue(self, issue_id: str) -> Dict:
        """Fetch one issue with every reference expanded, including comment authors."""
        _, issue = self._load(issue_id)
        return self._expand([issue], include_comments=True)[0]

    def list_issues(self) -> List[Dict]:
        return self._query_sorted(self._collection())

    def list_by_status(self, status: str) -> List[Dict]:
        return self._query_sorted(where_filter(self._collection(), "status", "==", status))

    def list_by_priority(self, priority: str) -> List[Dict]:
        return self._query_sorted(where_filter(self._collection(), "priority", "==", priority))

    def list_by_category(self, category: str) -> List[Dict]:
        return self._query_sorted(where_filter(self._collection(), "category", "==", category))

    def update_status(
        self,
        issue_id: str,
        new_status: str,
        actor_id: str,
        resolution_description: Optional[str] = None,
    ) -> Dict:
        doc_ref, issue = self._load(issue_id)
        updated = issue_lifecycle.apply_status_change(
            issue,
            new_status,
            actor_id=actor_id,
            now=utcnow(),
            resolution_description=resolution_description,
            workflow=self.workflow,
        )
        logger.info(f"Issue {issue_id} status {issue.get('status')} → {new_status} by {actor_id}")
        return self._save(doc_ref, updated)

    def add_comment(self, issue_id: str, author_id: str, text: str) -> Dict:
        doc_ref, issue = self._load(issue_id)
        updated = issue_lifecycle.append_comment(issue, author_id=author_id, text=text, now=utcnow())
        return self._save(doc_ref, updated)

    def assign(self, issue_id: str, assignee_id: str, actor_id: str) -> Dict:
        """
        Raises:
            NotFoundError: issue or assignee does not exist
        """
        doc_ref, issue = self._load(issue_id)
        if not self.users.get_user_by_id(assignee_id):
            raise NotFoundError("User not found")

        updated = issue_lifecycle.apply_assignment(
            issue, assignee_id=assignee_id, actor_id=actor_id, now=utcnow(), workflow=self.workflow
        )
        logger.info(f"Issue {issue_id} assigned to {assignee_id} by {actor_id}")
        return self._save(doc_ref, updated)

    def _query_sorted(self, query) -> List[Dict]:
        # Sorted here rather than with order_by so equality filters need no composite index
        issues = [self._normalize(snapshot_to_dict(doc)) for doc in query.stream()]
        issues.sort(key=lambda i: i.get("created_at") or utcnow(), reverse=True)
        return self._expand(issues, include_comments=False)

    def _expand(self, issues: List[Dict], include_comments: bool) -> List[Dict]:
        """
        Replace user and service ids with display summaries.
        Ids that no longer resolve are left as plain ids.
        """
        user_ids = set()
        service_ids = set()
        for issue in issues:
            user_ids.update([issue.get("reported_by"), issue.get("assigned_to")])
            if issue.get("resolution"):
                user_ids.add(issue["resolution"].get("resolved_by"))
            if include_comments:
                user_ids.update(c.get("author") for c in issue.get("comments") or [])
            service_ids.add(issue.get("water_service"))

        users = self.users.get_summaries(user_ids)
        services = self.registry.get_summaries(service_ids)

        expanded = []
        for issue in issues:
            issue = dict(issue)
            issue["reported_by"] = users.get(issue.get("reported_by"), issue.get("reported_by"))
            if issue.get("assigned_to"):
                issue["assigned_to"] = users.get(issue["assigned_to"], issue["assigned_to"])
            if issue.get("water_service"):
                issue["water_service"] = services.get(issue["water_service"], issue["water_service"])
            if issue.get("resolution") and issue["resolution"].get("resolved_by"):
                resolution = dict(issue["resolution"])
                resolution["resolved_by"] = users.get(resolution["resolved_by"], resolution["resolved_by"])
                issue["resolution"] = resolution
            if include_comments:
                issue["comments"] = [
                    dict(c, author=users.get(c.get("author"), c.get("author")))
                    for c in issue.get("comments") or []
                ]
            expanded.append(issue)
        return expanded

    def _normalize(self, issue: Dict) -> Dict:
        for field in ("created_at", "updated_at"):
            issue[field] = parse_timestamp(issue.get(field))
        for photo in issue.get("photos") or []:
            photo["uploaded_at"] = parse_timestamp(photo.get("uploaded_at"))
        for comment in issue.get("comments") or []:
            comment["created_at"] = parse_timestamp(comment.get("created_at"))
        for entry in issue.get("status_history") or []:
            entry["timestamp"] = parse_timestamp(entry.get("timestamp"))
        if issue.get("resolution"):
            issue["resolution"]["resolved_at"] = parse_timestamp(issue["resolution"].get("resolved_at"))
        return issue


_issue_service: Optional[IssueService] = None


def get_issue_service() -> IssueService:
    """Get or create IssueService singleton."""
    global _issue_service
    if _issue_service is None:
        _issue_service = IssueService()
    return _issue_service
