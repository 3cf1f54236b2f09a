"""
BNDY Memberships Lambda Handler
Artist membership management with profile inheritance from the user record.

Routes:
    GET    /api/artists/{id}/members
    POST   /api/artists/{id}/members
    GET    /api/memberships/me
    GET    /api/memberships/{membershipId}
    PUT    /api/memberships/{membershipId}
    DELETE /api/memberships/{membershipId}
"""

import logging
from dataclasses import dataclass

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, ValidationError, check_required
from common.memberships import (
    ARTIST_INDEX,
    add_membership,
    build_membership,
    memberships_for_user,
    remove_membership,
    resolve_all,
)
from common.request import pick
from common.response import no_content, ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# request key -> stored attribute
MEMBERSHIP_FIELDS = {
    "role": "role",
    "displayName": "display_name",
    "avatarUrl": "avatar_url",
    "instrument": "instrument",
    "bio": "bio",
    "icon": "icon",
    "color": "color",
    "permissions": "permissions",
    "status": "status",
}


def _check_permissions(value):
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ValidationError("Invalid permissions", field="permissions")


@dataclass
class MembershipsApi:
    settings: Settings
    memberships: object
    artists: object
    users: object

    def route(self, request):
        parts = request.parts
        method = request.method

        if len(parts) == 4 and parts[:2] == ["api", "artists"] and parts[3] == "members":
            if method == "GET":
                return self.list_artist_members(request, parts[2])
            if method == "POST":
                return self.add_member(request, parts[2])
            return None

        if len(parts) == 3 and parts[:2] == ["api", "memberships"]:
            if parts[2] == "me" and method == "GET":
                return self.my_memberships(request)
            if method == "GET":
                return self.get_membership(request, parts[2])
            if method == "PUT":
                return self.update_membership(request, parts[2])
            if method == "DELETE":
                return self.delete_membership(request, parts[2])
        return None

    def _get_membership(self, membership_id):
        item = store.get_item(self.memberships, {"membership_id": membership_id})
        if not item:
            raise NotFoundError("Membership not found")
        return item

    def list_artist_members(self, request, artist_id):
        require_session(request, self.settings)
        items = store.query_index(self.memberships, ARTIST_INDEX, "artist_id", artist_id)
        members = resolve_all(self.users, items)
        logger.info("Retrieved %d members for artist %s", len(members), artist_id)
        return ok({"members": members, "count": len(members)})

    def add_member(self, request, artist_id):
        session = require_session(request, self.settings)
        data = request.json()
        check_required(data, ["userId"])
        user_id = data["userId"]
        if not isinstance(user_id, str):
            raise ValidationError("Invalid userId", field="userId")
        permissions = data.get("permissions", [])
        _check_permissions(permissions)

        if not store.get_item(self.artists, {"id": artist_id}):
            raise NotFoundError("Artist not found")
        existing = store.query_index(self.memberships, ARTIST_INDEX, "artist_id", artist_id,
                                     filters={"user_id": user_id})
        if existing:
            raise ValidationError("User is already a member of this artist", field="userId")

        membership = build_membership(
            user_id, artist_id, store.now_iso(),
            role=data.get("role") or "member",
            membership_type=data.get("membershipType") or "performer",
            display_name=data.get("displayName"),
            avatar_url=data.get("avatarUrl"),
            instrument=data.get("instrument"),
            icon=data.get("icon") or "fa-music",
            color=data.get("color") or "#708090",
            permissions=permissions,
            invited_by=session.user_id,
        )
        add_membership(self.memberships, self.settings, membership)
        logger.info("Added user %s... to artist %s", user_id[:8], artist_id)
        return ok({
            "membership": resolve_all(self.users, [membership])[0],
            "message": "Member added successfully",
        }, 201)

    def my_memberships(self, request):
        session = require_session(request, self.settings)
        artists = memberships_for_user(self.memberships, self.artists, self.users, session.user_id)
        logger.info("Found %d memberships for %s...", len(artists), session.user_id[:8])
        return ok({"user": {"id": session.user_id}, "artists": artists})

    def get_membership(self, request, membership_id):
        require_session(request, self.settings)
        item = self._get_membership(membership_id)
        return ok({"membership": resolve_all(self.users, [item])[0]})

    def update_membership(self, request, membership_id):
        require_session(request, self.settings)
        # An explicit null clears an override and restores inheritance.
        fields = pick(request.json(), MEMBERSHIP_FIELDS)
        if "permissions" in fields:
            _check_permissions(fields["permissions"])
        for name in ("role", "status"):
            if name in fields and not fields[name]:
                raise ValidationError(f"Invalid {name}", field=name)
        fields["updated_at"] = store.now_iso()

        item = store.update_fields(self.memberships, {"membership_id": membership_id}, fields)
        if item is None:
            raise NotFoundError("Membership not found")
        logger.info("Updated membership %s", membership_id)
        return ok({
            "membership": resolve_all(self.users, [item])[0],
            "message": "Membership updated successfully",
        })

    def delete_membership(self, request, membership_id):
        require_session(request, self.settings)
        membership = self._get_membership(membership_id)
        remove_membership(self.memberships, self.settings, membership)
        logger.info("Deleted membership %s", membership_id)
        return no_content()


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = MembershipsApi(
        settings,
        memberships=dynamodb.Table(settings.memberships_table),
        artists=dynamodb.Table(settings.artists_table),
        users=dynamodb.Table(settings.users_table),
    )
    return lambda_entry("memberships", settings, api.route)


handler = make_handler(load_settings())
