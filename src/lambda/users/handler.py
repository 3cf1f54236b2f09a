"""
BNDY Users Lambda Handler
Profile completion and updates for the signed-in user.

Routes:
    GET /users/profile
    PUT /users/profile
    GET /users
"""

import logging
from dataclasses import dataclass

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError
from common.request import pick
from common.response import ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# request key -> stored attribute
PROFILE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "displayName": "display_name",
    "avatarUrl": "avatar_url",
    "instrument": "instrument",
    "hometown": "hometown",
}
COMPLETION_FIELDS = ("first_name", "last_name", "display_name")


def format_user(item: dict) -> dict:
    return {
        "id": item.get("user_id"),
        "cognitoId": item.get("cognito_id"),
        "email": item.get("email"),
        "username": item.get("username"),
        "firstName": item.get("first_name"),
        "lastName": item.get("last_name"),
        "displayName": item.get("display_name"),
        "avatarUrl": item.get("avatar_url"),
        "instrument": item.get("instrument"),
        "hometown": item.get("hometown"),
        "profileCompleted": bool(item.get("profile_complete")),
        "createdAt": item.get("created_at"),
        "updatedAt": item.get("updated_at"),
    }


def is_profile_complete(item: dict) -> bool:
    return all(item.get(f) for f in COMPLETION_FIELDS)


@dataclass
class UsersApi:
    settings: Settings
    users: object

    def route(self, request):
        parts = request.parts
        if parts == ["users", "profile"]:
            if request.method == "GET":
                return self.get_profile(request)
            if request.method == "PUT":
                return self.update_profile(request)
        if parts == ["users"] and request.method == "GET":
            return self.list_users(request)
        return None

    def get_profile(self, request):
        session = require_session(request, self.settings)
        item = store.get_item(self.users, {"cognito_id": session.user_id})
        if not item:
            logger.error("User %s... not found", session.user_id[:8])
            raise NotFoundError("User not found")
        return ok({"user": format_user(item)})

    def update_profile(self, request):
        session = require_session(request, self.settings)
        # Empty strings clear a field.
        fields = {k: (v if v != "" else None) for k, v in pick(request.json(), PROFILE_FIELDS).items()}

        key = {"cognito_id": session.user_id}
        existing = store.get_item(self.users, key)
        if not existing:
            logger.error("User %s... not found for profile update", session.user_id[:8])
            raise NotFoundError("User not found")

        complete = is_profile_complete({**existing, **fields})
        item = store.update_fields(self.users, key, {
            **fields,
            "profile_complete": complete,
            "updated_at": store.now_iso(),
        })
        if item is None:
            raise NotFoundError("User not found")
        logger.info("Profile updated for %s... complete=%s", session.user_id[:8], complete)
        return ok({
            "user": format_user(item),
            "message": "Profile completed successfully!" if complete else "Profile updated successfully!",
        })

    def list_users(self, request):
        require_session(request, self.settings)
        users = [
            {
                "id": u.get("user_id"),
                "cognitoId": u.get("cognito_id"),
                "email": u.get("email"),
                "username": u.get("username"),
                "displayName": u.get("display_name"),
                "profileCompleted": bool(u.get("profile_complete")),
                "createdAt": u.get("created_at"),
            }
            for u in store.scan_all(self.users)
        ]
        logger.info("Listed %d users", len(users))
        return ok({"users": users, "count": len(users)})


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = UsersApi(settings, dynamodb.Table(settings.users_table))
    return lambda_entry("users", settings, api.route)


handler = make_handler(load_settings())
