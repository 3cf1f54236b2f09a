"""
BNDY Issues Lambda Handler
Bug reports, feature requests and development issues.

Routes:
    GET    /issues              list, ?status=&type=&priority=&limit=
    POST   /issues              create
    POST   /issues/batch        update many issues with the same fields
    GET    /issues/{id}
    PUT    /issues/{id}
    DELETE /issues/{id}
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from botocore.exceptions import ClientError
from dateutil import parser as dateparser

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, ValidationError, check_enum, check_required
from common.request import pick
from common.response import no_content, ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

ISSUE_TYPES = ["bug", "unfinished", "enhancement", "new"]
ISSUE_PRIORITIES = ["critical", "high", "medium", "low"]
ISSUE_STATUSES = ["new", "in-progress", "resolved", "wont-fix"]

ENUM_FIELDS = {
    "type": ISSUE_TYPES,
    "priority": ISSUE_PRIORITIES,
    "status": ISSUE_STATUSES,
}

# request key -> stored attribute
ISSUE_FIELDS = {
    "title": "title",
    "description": "description",
    "type": "type",
    "location": "location",
    "priority": "priority",
    "status": "status",
    "screenshotUrl": "screenshot_url",
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created(issue: dict) -> datetime:
    try:
        parsed = dateparser.isoparse(issue.get("created_at", ""))
    except (ValueError, TypeError):
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def validate_issue_fields(fields: dict) -> dict:
    """Check enum values and that text fields are not blanked. Returns fields."""
    for name, allowed in ENUM_FIELDS.items():
        if name in fields:
            check_enum(fields[name], allowed, name)
    blank = [f for f in ("title", "description") if f in fields and not fields[f]]
    if blank:
        raise ValidationError("Missing required fields", fields=blank)
    return fields


def _parse_limit(raw) -> int | None:
    if raw in (None, ""):
        return None
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid limit", field="limit")
    if limit < 1:
        raise ValidationError("Invalid limit", field="limit")
    return limit


@dataclass
class IssuesApi:
    settings: Settings
    issues: object

    def route(self, request):
        parts = request.parts
        if not parts or parts[0] != "issues" or len(parts) > 2:
            return None
        sub = parts[1] if len(parts) == 2 else None
        method = request.method

        if method == "GET" and sub is None:
            return self.list_issues(request)
        if method == "POST" and sub is None:
            return self.create_issue(request)
        if method == "POST" and sub == "batch":
            return self.batch_update(request)
        if method == "GET" and sub:
            return self.get_issue(request, sub)
        if method == "PUT" and sub:
            return self.update_issue(request, sub)
        if method == "DELETE" and sub:
            return self.delete_issue(request, sub)
        return None

    def list_issues(self, request):
        require_session(request, self.settings)
        qs = request.query
        filters = {}
        for name, allowed in ENUM_FIELDS.items():
            if qs.get(name):
                filters[name] = check_enum(qs[name], allowed, name)
        limit = _parse_limit(qs.get("limit"))

        items = store.scan_all(self.issues, filters=filters)
        items.sort(key=_created, reverse=True)
        if limit is not None:
            items = items[:limit]
        logger.info("Listed %d issues (filters=%s, limit=%s)", len(items), filters, limit)
        return ok({"issues": items, "count": len(items)})

    def get_issue(self, request, issue_id):
        require_session(request, self.settings)
        item = store.get_item(self.issues, {"issue_id": issue_id})
        if not item:
            raise NotFoundError("Issue not found")
        return ok({"issue": item})

    def create_issue(self, request):
        session = require_session(request, self.settings)
        data = request.json()
        check_required(data, ["title", "description", "type"])
        fields = validate_issue_fields(pick(data, ISSUE_FIELDS))

        now = store.now_iso()
        item = {
            "location": "Unknown",
            "priority": "medium",
            "screenshot_url": None,
            **{k: v for k, v in fields.items() if v is not None},
            "issue_id": store.new_id(),
            "status": "new",
            "reported_by": session.user_id,
            "created_at": now,
            "updated_at": now,
        }
        store.create_item(self.issues, item, "issue_id")
        logger.info("Created issue %s type=%s priority=%s", item["issue_id"], item["type"], item["priority"])
        return ok({"issue": item, "message": "Issue created successfully"}, 201)

    def update_issue(self, request, issue_id):
        require_session(request, self.settings)
        fields = validate_issue_fields(pick(request.json(), ISSUE_FIELDS))
        if not fields:
            raise ValidationError("No fields to update")
        fields["updated_at"] = store.now_iso()

        item = store.update_fields(self.issues, {"issue_id": issue_id}, fields)
        if item is None:
            raise NotFoundError("Issue not found")
        logger.info("Updated issue %s status=%s", issue_id, item.get("status"))
        return ok({"issue": item, "message": "Issue updated successfully"})

    def delete_issue(self, request, issue_id):
        require_session(request, self.settings)
        if not store.delete_existing(self.issues, {"issue_id": issue_id}):
            raise NotFoundError("Issue not found")
        logger.info("Deleted issue %s", issue_id)
        return no_content()

    def batch_update(self, request):
        require_session(request, self.settings)
        data = request.json()
        issue_ids = data.get("issueIds")
        updates = data.get("updates")
        if not isinstance(issue_ids, list) or not issue_ids:
            raise ValidationError("Issue IDs array required", field="issueIds")
        if not isinstance(updates, dict) or not updates:
            raise ValidationError("Updates object required", field="updates")
        unknown = sorted(set(updates) - set(ISSUE_FIELDS))
        if unknown:
            raise ValidationError("Unknown update fields", fields=unknown, allowed=list(ISSUE_FIELDS))
        fields = validate_issue_fields(pick(updates, ISSUE_FIELDS))

        updated, errors = [], []
        for issue_id in issue_ids:
            if not isinstance(issue_id, str) or not issue_id:
                errors.append({"issueId": issue_id, "error": "Invalid issue id"})
                continue
            try:
                item = store.update_fields(
                    self.issues, {"issue_id": issue_id},
                    {**fields, "updated_at": store.now_iso()},
                )
            except ClientError as exc:
                logger.exception("Batch update failed for issue %s", issue_id)
                errors.append({"issueId": issue_id, "error": exc.response.get("Error", {}).get("Code", "UpdateFailed")})
                continue
            if item is None:
                errors.append({"issueId": issue_id, "error": "Issue not found"})
            else:
                updated.append(item)

        logger.info("Batch update completed: %d updated, %d failed", len(updated), len(errors))
        return ok({
            "updated": updated,
            "errors": errors,
            "message": f"Updated {len(updated)} issues, {len(errors)} failed",
        })


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = IssuesApi(settings, dynamodb.Table(settings.issues_table))
    return lambda_entry("issues", settings, api.route)


handler = make_handler(load_settings())
