"""
BNDY Artists Lambda Handler
Routes: /api/artists, /api/artists/{id}
Creating an artist also makes the creator its owner member.
"""

import logging
from dataclasses import dataclass

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, ValidationError, check_required
from common.memberships import OWNER_PERMISSIONS, build_membership, create_artist_with_owner
from common.request import pick
from common.response import no_content, ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

ARTIST_TYPES = ["band", "solo", "duo", "group", "dj", "collective"]

# request key -> stored attribute
ARTIST_FIELDS = {
    "name": "name",
    "bio": "bio",
    "location": "location",
    "genres": "genres",
    "artistType": "artist_type",
    "facebookUrl": "facebookUrl",
    "instagramUrl": "instagramUrl",
    "websiteUrl": "websiteUrl",
    "socialMediaUrls": "socialMediaUrls",
    "profileImageUrl": "profileImageUrl",
}
UPDATABLE_FIELDS = {**ARTIST_FIELDS, "isVerified": "isVerified"}


def format_artist(item: dict) -> dict:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "artistType": item.get("artist_type") or "band",
        "bio": item.get("bio") or "",
        "location": item.get("location") or "",
        "genres": item.get("genres") or [],
        "facebookUrl": item.get("facebookUrl") or "",
        "instagramUrl": item.get("instagramUrl") or "",
        "websiteUrl": item.get("websiteUrl") or "",
        "socialMediaUrls": item.get("socialMediaUrls") or [],
        "profileImageUrl": item.get("profileImageUrl") or "",
        "isVerified": item.get("isVerified") or False,
        "followerCount": item.get("followerCount") or 0,
        "ownerUserId": item.get("owner_user_id"),
        "memberCount": item.get("member_count") or 0,
        # Legacy claim marker; not kept in sync with ownerUserId.
        "claimedByUserId": item.get("claimedByUserId"),
        "createdAt": item.get("created_at", item.get("createdAt")),
        "updatedAt": item.get("updated_at", item.get("updatedAt")),
    }


def _normalize(data: dict) -> dict:
    """Accept the older snake_case/avatarUrl spellings the frontend still sends."""
    data = dict(data)
    if "artistType" not in data and "artist_type" in data:
        data["artistType"] = data["artist_type"]
    if "profileImageUrl" not in data and "avatarUrl" in data:
        data["profileImageUrl"] = data["avatarUrl"]
    if "artistType" in data and data["artistType"] not in ARTIST_TYPES:
        raise ValidationError("Invalid artistType", field="artistType", allowed=ARTIST_TYPES)
    return data


@dataclass
class ArtistsApi:
    settings: Settings
    artists: object

    def route(self, request):
        parts = request.parts
        if parts[:2] != ["api", "artists"] or len(parts) > 3:
            return None
        artist_id = parts[2] if len(parts) == 3 else None
        method = request.method

        if method == "GET" and artist_id is None:
            return self.list_artists()
        if method == "GET":
            return self.get_artist(artist_id)
        if method == "POST" and artist_id is None:
            return self.create_artist(request)
        if method == "PUT" and artist_id:
            return self.update_artist(request, artist_id)
        if method == "DELETE" and artist_id:
            return self.delete_artist(request, artist_id)
        return None

    def list_artists(self):
        artists = [format_artist(a) for a in store.scan_all(self.artists)]
        logger.info("Served %d artists", len(artists))
        return ok(artists)

    def get_artist(self, artist_id):
        item = store.get_item(self.artists, {"id": artist_id})
        if not item:
            raise NotFoundError("Artist not found")
        return ok(format_artist(item))

    def create_artist(self, request):
        session = require_session(request, self.settings)
        data = _normalize(request.json())
        check_required(data, ["name"])

        now = store.now_iso()
        artist = {
            "bio": "",
            "location": "",
            "genres": [],
            "artist_type": "band",
            "facebookUrl": "",
            "instagramUrl": "",
            "websiteUrl": "",
            "socialMediaUrls": [],
            "profileImageUrl": "",
            **pick(data, ARTIST_FIELDS),
            "id": store.new_id(),
            "owner_user_id": session.user_id,
            "member_count": 1,
            "isVerified": False,
            "followerCount": 0,
            "claimedByUserId": None,
            "created_at": now,
            "updated_at": now,
        }
        membership = build_membership(
            session.user_id, artist["id"], now,
            role="owner",
            display_name=data.get("memberDisplayName"),
            instrument=data.get("memberInstrument"),
            icon=data.get("memberIcon") or "fa-music",
            color=data.get("memberColor") or "#708090",
            permissions=OWNER_PERMISSIONS,
        )
        create_artist_with_owner(self.artists, self.settings, artist, membership)
        logger.info("Created artist %s with owner membership %s",
                    artist["id"], membership["membership_id"])
        return ok({
            "artist": format_artist(artist),
            "membership": membership,
            "message": "Artist created successfully",
        }, 201)

    def update_artist(self, request, artist_id):
        require_session(request, self.settings)
        fields = pick(_normalize(request.json()), UPDATABLE_FIELDS)
        if "name" in fields and not fields["name"]:
            raise ValidationError("Missing required fields", fields=["name"])
        fields["updated_at"] = store.now_iso()
        item = store.update_fields(self.artists, {"id": artist_id}, fields)
        if item is None:
            raise NotFoundError("Artist not found")
        return ok(format_artist(item))

    def delete_artist(self, request, artist_id):
        require_session(request, self.settings)
        # Memberships are left in place; they resolve to "Unknown Artist".
        if not store.delete_existing(self.artists, {"id": artist_id}):
            raise NotFoundError("Artist not found")
        logger.info("Deleted artist %s", artist_id)
        return no_content()


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = ArtistsApi(settings, dynamodb.Table(settings.artists_table))
    return lambda_entry("artists", settings, api.route)


handler = make_handler(load_settings())
