"""
BNDY Venues Lambda Handler
Routes: /api/venues, /api/venues/{id}
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, ValidationError, check_required
from common.request import pick
from common.response import no_content, ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# request key -> stored attribute
VENUE_FIELDS = {
    "name": "name",
    "address": "address",
    "latitude": "latitude",
    "longitude": "longitude",
    "location": "location_object",
    "googlePlaceId": "google_place_id",
    "validated": "validated",
    "nameVariants": "name_variants",
    "phone": "phone",
    "postcode": "postcode",
    "profileImageUrl": "profile_image_url",
    "facilities": "facilities",
    "socialMediaURLs": "social_media_urls",
    "standardTicketed": "standard_ticketed",
    "standardTicketInformation": "standard_ticket_information",
    "standardTicketUrl": "standard_ticket_url",
}

VENUE_DEFAULTS = {
    "address": "",
    "latitude": 0,
    "longitude": 0,
    "google_place_id": None,
    "validated": False,
    "name_variants": [],
    "phone": "",
    "postcode": "",
    "profile_image_url": None,
    "facilities": [],
    "social_media_urls": [],
    "standard_ticketed": False,
    "standard_ticket_information": "",
    "standard_ticket_url": "",
}


def has_coordinates(item: dict) -> bool:
    """Venues without a real position (absent or 0) never reach the map."""
    lat, lng = item.get("latitude"), item.get("longitude")
    return bool(lat) and bool(lng)


def _location(item: dict) -> dict:
    return item.get("location_object") or {"lat": item.get("latitude"), "lng": item.get("longitude")}


def format_venue_summary(item: dict) -> dict:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "address": item.get("address"),
        "location": _location(item),
        "googlePlaceId": item.get("google_place_id"),
        "validated": item.get("validated", False),
        "profileImageUrl": item.get("profile_image_url"),
    }


def format_venue(item: dict) -> dict:
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "address": item.get("address"),
        "latitude": item.get("latitude"),
        "longitude": item.get("longitude"),
        "location": _location(item),
        "googlePlaceId": item.get("google_place_id"),
        "validated": item.get("validated", False),
        "nameVariants": item.get("name_variants", []),
        "phone": item.get("phone", ""),
        "postcode": item.get("postcode", ""),
        "profileImageUrl": item.get("profile_image_url"),
        "facilities": item.get("facilities", []),
        "socialMediaURLs": item.get("social_media_urls", []),
        "standardTicketed": item.get("standard_ticketed", False),
        "standardTicketInformation": item.get("standard_ticket_information", ""),
        "standardTicketUrl": item.get("standard_ticket_url", ""),
        "createdAt": item.get("created_at"),
        "updatedAt": item.get("updated_at"),
    }


def _check_coordinates(fields: dict):
    for name in ("latitude", "longitude"):
        if name in fields:
            value = fields[name]
            if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
                raise ValidationError(f"Invalid {name}", field=name)


@dataclass
class VenuesApi:
    settings: Settings
    venues: object

    def route(self, request):
        parts = request.parts
        if parts[:2] != ["api", "venues"] or len(parts) > 3:
            return None
        venue_id = parts[2] if len(parts) == 3 else None
        method = request.method

        if method == "GET" and venue_id is None:
            return self.list_venues()
        if method == "GET":
            return self.get_venue(venue_id)
        if method == "POST" and venue_id is None:
            return self.create_venue(request)
        if method == "PUT" and venue_id:
            return self.update_venue(request, venue_id)
        if method == "DELETE" and venue_id:
            return self.delete_venue(request, venue_id)
        return None

    def list_venues(self):
        items = store.scan_all(self.venues)
        valid = [format_venue_summary(v) for v in items if has_coordinates(v)]
        logger.info("Served %d venues (%d total in table)", len(valid), len(items))
        return ok(valid)

    def get_venue(self, venue_id):
        item = store.get_item(self.venues, {"id": venue_id})
        if not item:
            raise NotFoundError("Venue not found")
        return ok(format_venue(item))

    def create_venue(self, request):
        require_session(request, self.settings)
        data = request.json()
        check_required(data, ["name"])
        fields = pick(data, VENUE_FIELDS)
        _check_coordinates(fields)

        now = store.now_iso()
        item = {**VENUE_DEFAULTS, **fields, "id": store.new_id(), "created_at": now, "updated_at": now}
        item.setdefault("location_object", {"lat": item["latitude"], "lng": item["longitude"]})
        store.create_item(self.venues, item, "id")
        logger.info("Created venue %s", item["id"])
        return ok(format_venue(item), 201)

    def update_venue(self, request, venue_id):
        require_session(request, self.settings)
        fields = pick(request.json(), VENUE_FIELDS)
        _check_coordinates(fields)
        if "name" in fields and not fields["name"]:
            raise ValidationError("Missing required fields", fields=["name"])
        if ("latitude" in fields or "longitude" in fields) and "location_object" not in fields:
            existing = store.get_item(self.venues, {"id": venue_id})
            if not existing:
                raise NotFoundError("Venue not found")
            fields["location_object"] = {
                "lat": fields.get("latitude", existing.get("latitude")),
                "lng": fields.get("longitude", existing.get("longitude")),
            }
        fields["updated_at"] = store.now_iso()

        item = store.update_fields(self.venues, {"id": venue_id}, fields)
        if item is None:
            raise NotFoundError("Venue not found")
        return ok(format_venue(item))

    def delete_venue(self, request, venue_id):
        require_session(request, self.settings)
        if not store.delete_existing(self.venues, {"id": venue_id}):
            raise NotFoundError("Venue not found")
        logger.info("Deleted venue %s", venue_id)
        return no_content()


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = VenuesApi(settings, dynamodb.Table(settings.venues_table))
    return lambda_entry("venues", settings, api.route)


handler = make_handler(load_settings())
