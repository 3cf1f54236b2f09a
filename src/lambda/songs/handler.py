"""
BNDY Songs Lambda Handler
Routes: /api/songs, /api/songs/{id}
"""

import logging
from dataclasses import dataclass

from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, ValidationError, check_required
from common.request import pick
from common.response import no_content, ok
from common.router import lambda_entry
from common.session import require_session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Song attributes keep the camelCase names the imported catalogue already uses.
SONG_DEFAULTS = {
    "artistName": "",
    "duration": None,
    "genre": "",
    "releaseDate": None,
    "album": None,
    "spotifyUrl": "",
    "appleMusicUrl": "",
    "youtubeUrl": "",
    "audioFileUrl": "",
    "isFeatured": False,
    "tags": [],
}
SONG_FIELDS = {name: name for name in ["title", *SONG_DEFAULTS]}


def format_song(item: dict) -> dict:
    song = {"id": item.get("id"), "title": item.get("title")}
    for name, default in SONG_DEFAULTS.items():
        value = item.get(name)
        song[name] = default if value is None else value
    song["createdAt"] = item.get("created_at", item.get("createdAt"))
    song["updatedAt"] = item.get("updated_at", item.get("updatedAt"))
    return song


@dataclass
class SongsApi:
    settings: Settings
    songs: object

    def route(self, request):
        parts = request.parts
        if parts[:2] != ["api", "songs"] or len(parts) > 3:
            return None
        song_id = parts[2] if len(parts) == 3 else None
        method = request.method

        if method == "GET" and song_id is None:
            return self.list_songs()
        if method == "GET":
            return self.get_song(song_id)
        if method == "POST" and song_id is None:
            return self.create_song(request)
        if method == "PUT" and song_id:
            return self.update_song(request, song_id)
        if method == "DELETE" and song_id:
            return self.delete_song(request, song_id)
        return None

    def list_songs(self):
        songs = [format_song(s) for s in store.scan_all(self.songs)]
        logger.info("Served %d songs", len(songs))
        return ok(songs)

    def get_song(self, song_id):
        item = store.get_item(self.songs, {"id": song_id})
        if not item:
            raise NotFoundError("Song not found")
        return ok(format_song(item))

    def create_song(self, request):
        require_session(request, self.settings)
        data = request.json()
        check_required(data, ["title"])
        now = store.now_iso()
        item = {
            **SONG_DEFAULTS,
            **pick(data, SONG_FIELDS),
            "id": store.new_id(),
            "created_at": now,
            "updated_at": now,
        }
        store.create_item(self.songs, item, "id")
        logger.info("Created song %s", item["id"])
        return ok(format_song(item), 201)

    def update_song(self, request, song_id):
        require_session(request, self.settings)
        fields = pick(request.json(), SONG_FIELDS)
        if "title" in fields and not fields["title"]:
            raise ValidationError("Missing required fields", fields=["title"])
        fields["updated_at"] = store.now_iso()
        item = store.update_fields(self.songs, {"id": song_id}, fields)
        if item is None:
            raise NotFoundError("Song not found")
        return ok(format_song(item))

    def delete_song(self, request, song_id):
        require_session(request, self.settings)
        if not store.delete_existing(self.songs, {"id": song_id}):
            raise NotFoundError("Song not found")
        logger.info("Deleted song %s", song_id)
        return no_content()


def make_handler(settings: Settings, dynamodb=None):
    dynamodb = dynamodb or store.connect(settings)
    api = SongsApi(settings, dynamodb.Table(settings.songs_table))
    return lambda_entry("songs", settings, api.route)


handler = make_handler(load_settings())
