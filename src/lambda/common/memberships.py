"""
Membership records: construction, the transactional writes that keep
Artist.member_count in step with the membership table, and read-time joins
against users (profile resolution) and artists.
"""

from botocore.exceptions import ClientError

from common import store
from common.errors import NotFoundError
from common.profile import resolve_membership_profile

USER_INDEX = "user_id-index"
ARTIST_INDEX = "artist_id-index"

OWNER_PERMISSIONS = [
    "manage_members",
    "manage_gigs",
    "manage_songs",
    "manage_finances",
    "manage_settings",
]


def build_membership(user_id: str, artist_id: str, now: str, *, role="member",
                     membership_type="performer", display_name=None, avatar_url=None,
                     instrument=None, icon="fa-music", color="#708090",
                     permissions=None, invited_by=None) -> dict:
    """New membership record. Null profile fields inherit from the user profile."""
    return {
        "membership_id": store.new_id(),
        "user_id": user_id,
        "artist_id": artist_id,
        "membership_type": membership_type,
        "role": role,
        "display_name": display_name,
        "avatar_url": avatar_url,
        "instrument": instrument,
        "bio": None,
        "icon": icon,
        "color": color,
        "permissions": list(permissions or []),
        "joined_at": now,
        "invited_at": now if invited_by else None,
        "invited_by_user_id": invited_by,
        "status": "active",
        "created_at": now,
        "updated_at": now,
    }


def _adjust_count(settings, artist_id: str, delta: int) -> dict:
    return {
        "Update": {
            "TableName": settings.artists_table,
            "Key": {"id": artist_id},
            "UpdateExpression": "ADD member_count :delta SET updated_at = :now",
            "ConditionExpression": "attribute_exists(id)",
            "ExpressionAttributeValues": {":delta": delta, ":now": store.now_iso()},
        }
    }


def create_artist_with_owner(table, settings, artist: dict, membership: dict):
    """Write a new artist and its owner membership together, or neither."""
    store.transact_write(table, [
        {"Put": {
            "TableName": settings.artists_table,
            "Item": artist,
            "ConditionExpression": "attribute_not_exists(id)",
        }},
        {"Put": {
            "TableName": settings.memberships_table,
            "Item": membership,
            "ConditionExpression": "attribute_not_exists(membership_id)",
        }},
    ])


def add_membership(table, settings, membership: dict):
    """Put a membership and bump member_count. The artist must still exist."""
    try:
        store.transact_write(table, [
            {"Put": {
                "TableName": settings.memberships_table,
                "Item": membership,
                "ConditionExpression": "attribute_not_exists(membership_id)",
            }},
            _adjust_count(settings, membership["artist_id"], 1),
        ])
    except ClientError as exc:
        if store.is_condition_failure(exc):
            raise NotFoundError("Artist not found")
        raise


def remove_membership(table, settings, membership: dict):
    """Delete a membership and decrement member_count in one transaction."""
    operations = [{
        "Delete": {
            "TableName": settings.memberships_table,
            "Key": {"membership_id": membership["membership_id"]},
            "ConditionExpression": "attribute_exists(membership_id)",
        }
    }]
    artist_id = membership.get("artist_id")
    if artist_id:
        operations.append(_adjust_count(settings, artist_id, -1))
    try:
        store.transact_write(table, operations)
    except ClientError as exc:
        if not store.is_condition_failure(exc):
            raise
        reasons = exc.response.get("CancellationReasons") or []
        # The artist is gone; the membership still has to go.
        if len(reasons) == 2 and reasons[0].get("Code") != "ConditionalCheckFailed":
            if not store.delete_existing(table, {"membership_id": membership["membership_id"]}):
                raise NotFoundError("Membership not found")
            return
        raise NotFoundError("Membership not found")


def format_artist_summary(artist: dict) -> dict:
    return {
        "id": artist.get("id"),
        "name": artist.get("name"),
        "artistType": artist.get("artist_type") or "band",
        "bio": artist.get("bio"),
        "location": artist.get("location"),
        "genres": artist.get("genres") or [],
        "profileImageUrl": artist.get("profileImageUrl"),
        "isVerified": artist.get("isVerified") or False,
        "memberCount": artist.get("member_count") or 0,
        "createdAt": artist.get("created_at", artist.get("createdAt")),
    }


def resolve_all(users_table, memberships: list[dict]) -> list[dict]:
    """Resolve each membership against its user, with one batch read for all users."""
    if not memberships:
        return []
    users = store.batch_get(users_table, "cognito_id", [m.get("user_id") for m in memberships])
    by_id = {u["cognito_id"]: u for u in users}
    return [resolve_membership_profile(m, by_id.get(m.get("user_id"))) for m in memberships]


def with_artists(artists_table, users_table, memberships: list[dict]) -> list[dict]:
    """Resolved memberships joined with their artist details."""
    if not memberships:
        return []
    artists = store.batch_get(artists_table, "id", [m.get("artist_id") for m in memberships])
    by_id = {a["id"]: a for a in artists}
    result = []
    for membership in resolve_all(users_table, memberships):
        artist = by_id.get(membership.get("artist_id"))
        membership["name"] = artist.get("name") if artist else "Unknown Artist"
        membership["artist"] = format_artist_summary(artist) if artist else None
        result.append(membership)
    return result


def memberships_for_user(memberships_table, artists_table, users_table, user_id: str) -> list[dict]:
    items = store.query_index(memberships_table, USER_INDEX, "user_id", user_id)
    return with_artists(artists_table, users_table, items)
