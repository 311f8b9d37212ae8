"""
Issue endpoints - report, browse and work citizen-reported issues.

Every endpoint requires a bearer token. Issue creation accepts a JSON body
or form data; multipart/form-data may carry up to MAX_PHOTOS_PER_ISSUE files in
the "photos" field.
"""

import json
import logging
from typing import Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from hydrowatch.core.errors import AppError, ValidationFailedError, errors_from_pydantic
from hydrowatch.core.settings import settings
from hydrowatch.models.issue import (
    CommentCreate,
    IssueAssignRequest,
    IssueCategory,
    IssueCreate,
    IssuePriority,
    IssueResponse,
    IssueStatus,
    IssueStatusUpdate,
)
from hydrowatch.services.issue_service import get_issue_service
from hydrowatch.services.upload_service import (
    delete_photos,
    photo_count_error,
    photo_size_error,
    save_photos,
    validate_photos,
)
from hydrowatch.utils.concurrency import run_sync
from hydrowatch.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["Issues"])

_LOCATION_KEYS = ("lat", "lng", "latitude", "longitude")


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


def _form_location(form) -> Dict:
    """
    Collect a location from flat form fields.

    Accepts lat/lng, latitude/longitude, location.lat, location[lat], or a
    JSON object in a single "location" field.
    """
    raw = form.get("location")
    if isinstance(raw, str) and raw.strip():
        try:
            location = json.loads(raw)
        except ValueError:
            raise ValidationFailedError.single("location", "Location must be a JSON object")
        if not isinstance(location, dict):
            raise ValidationFailedError.single("location", "Location must be a JSON object")
        return location

    location = {}
    for key in _LOCATION_KEYS:
        for name in (key, f"location.{key}", f"location[{key}]"):
            value = form.get(name)
            if isinstance(value, str) and value != "":
                location[key] = value
                break
    return location


async def _read_issue_request(request: Request) -> Tuple[Dict, List[Dict]]:
    """Return (issue fields, photo uploads) from a JSON or multipart request."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        uploads = [item for item in form.getlist("photos") if isinstance(item, UploadFile)]
        if len(uploads) > settings.MAX_PHOTOS_PER_ISSUE:
            raise ValidationFailedError([photo_count_error()], message="Invalid photo upload")

        photos = []
        for index, item in enumerate(uploads):
            # One byte past the limit is enough to reject the file
            content = await item.read(settings.MAX_PHOTO_BYTES + 1)
            if len(content) > settings.MAX_PHOTO_BYTES:
                raise ValidationFailedError([photo_size_error(index)], message="Invalid photo upload")
            photos.append({
                "filename": item.filename or "",
                "content_type": item.content_type or "",
                "content": content,
            })
        payload = {
            key: value for key, value in form.items()
            if isinstance(value, str) and not key.startswith("location") and key not in _LOCATION_KEYS
        }
        payload["location"] = _form_location(form)
        return payload, photos

    try:
        payload = await request.json()
    except ValueError:
        raise ValidationFailedError.single("body", "Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationFailedError.single("body", "Request body must be a JSON object")
    return payload, []


@router.get("", response_model=List[IssueResponse])
async def list_issues(user: Dict = Depends(get_current_user)):
    """All issues, newest first."""
    try:
        return await run_sync(get_issue_service().list_issues)
    except Exception as e:
        raise _server_error("list issues", e)


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(request: Request, user: Dict = Depends(get_current_user)):
    """
    Report a new issue.

    The reporter is the authenticated caller; a reportedBy field in the body
    is ignored. The nearest water service within range is linked
    automatically, if there is one.
    """
    payload, photos = await _read_issue_request(request)

    errors = []
    issue = None
    try:
        issue = IssueCreate.model_validate(payload)
    except ValidationError as e:
        errors.extend(errors_from_pydantic(e.errors()))
    try:
        validate_photos(photos)
    except ValidationFailedError as e:
        errors.extend(e.errors)
    if errors:
        raise ValidationFailedError(errors)

    stored_photos = []
    try:
        stored_photos = await run_sync(save_photos, photos)
        created = await run_sync(
            get_issue_service().create_issue,
            issue.model_dump(mode="json"),
            user["id"],
            stored_photos,
        )
    except AppError:
        await run_sync(delete_photos, stored_photos)
        raise
    except Exception as e:
        await run_sync(delete_photos, stored_photos)
        raise _server_error("create issue", e)

    try:
        return await run_sync(get_issue_service().get_issue, created["id"])
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"fetch issue {created['id']}", e)


# Filter routes are declared before /{issue_id}
@router.get("/status/{issue_status}", response_model=List[IssueResponse])
async def list_issues_by_status(issue_status: IssueStatus, user: Dict = Depends(get_current_user)):
    try:
        return await run_sync(get_issue_service().list_by_status, issue_status.value)
    except Exception as e:
        raise _server_error(f"list issues with status {issue_status.value}", e)


@router.get("/priority/{priority}", response_model=List[IssueResponse])
async def list_issues_by_priority(priority: IssuePriority, user: Dict = Depends(get_current_user)):
    try:
        return await run_sync(get_issue_service().list_by_priority, priority.value)
    except Exception as e:
        raise _server_error(f"list issues with priority {priority.value}", e)


@router.get("/category/{category}", response_model=List[IssueResponse])
async def list_issues_by_category(category: IssueCategory, user: Dict = Depends(get_current_user)):
    try:
        return await run_sync(get_issue_service().list_by_category, category.value)
    except Exception as e:
        raise _server_error(f"list issues in category {category.value}", e)


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(issue_id: str, user: Dict = Depends(get_current_user)):
    try:
        return await run_sync(get_issue_service().get_issue, issue_id)
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"fetch issue {issue_id}", e)


@router.patch("/{issue_id}/status", response_model=IssueResponse)
async def update_issue_status(
    issue_id: str,
    request: IssueStatusUpdate,
    user: Dict = Depends(get_current_user),
):
    """
    Change an issue's status.

    Moving to resolved records who resolved it, when, and the optional
    resolutionDescription. The description is ignored for other statuses.
    """
    service = get_issue_service()
    try:
        await run_sync(
            service.update_status,
            issue_id,
            request.status.value,
            user["id"],
            request.resolution_description,
        )
        return await run_sync(service.get_issue, issue_id)
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"update status of issue {issue_id}", e)


@router.post("/{issue_id}/comments", response_model=IssueResponse)
async def add_comment(issue_id: str, request: CommentCreate, user: Dict = Depends(get_current_user)):
    service = get_issue_service()
    try:
        await run_sync(service.add_comment, issue_id, user["id"], request.text)
        return await run_sync(service.get_issue, issue_id)
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"comment on issue {issue_id}", e)


@router.patch("/{issue_id}/assign", response_model=IssueResponse)
async def assign_issue(
    issue_id: str,
    request: IssueAssignRequest,
    user: Dict = Depends(get_current_user),
):
    """Assign an issue to a user. The status becomes assigned."""
    service = get_issue_service()
    try:
        await run_sync(service.assign, issue_id, request.assigned_to, user["id"])
        return await run_sync(service.get_issue, issue_id)
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"assign issue {issue_id}", e)
