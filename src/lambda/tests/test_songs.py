"""
Songs Lambda handler tests.
"""

import pytest

from songs.handler import make_handler


@pytest.fixture
def handler(settings, dynamodb):
    return make_handler(settings, dynamodb=dynamodb)


@pytest.fixture
def songs_table(tables, settings):
    return tables[settings.songs_table]


class TestSongs:
    def test_list_applies_defaults(self, handler, songs_table, make_event, parse):
        songs_table.scan.return_value = {"Items": [
            {"id": "s1", "title": "Wipe Out", "artistName": "The Surfaris", "createdAt": "2024-01-01T00:00:00Z"},
        ]}
        status, body = parse(handler(make_event("GET", "/api/songs"), None))
        assert status == 200
        assert body[0]["title"] == "Wipe Out"
        assert body[0]["tags"] == []
        assert body[0]["isFeatured"] is False
        assert body[0]["createdAt"] == "2024-01-01T00:00:00Z"

    def test_get_missing(self, handler, make_event, parse):
        status, body = parse(handler(make_event("GET", "/api/songs/nope"), None))
        assert status == 404
        assert body["error"] == "Song not found"

    def test_create(self, handler, songs_table, make_event, parse):
        event = make_event("POST", "/api/songs", body={"title": "Misirlou", "duration": 135}, auth=True)
        status, body = parse(handler(event, None))
        assert status == 201
        assert body["title"] == "Misirlou"
        assert body["duration"] == 135
        assert body["genre"] == ""
        assert songs_table.put_item.call_args.kwargs["Item"]["title"] == "Misirlou"

    def test_create_without_title(self, handler, make_event, parse):
        status, body = parse(handler(make_event("POST", "/api/songs", body={"genre": "surf"}, auth=True), None))
        assert status == 400
        assert body["fields"] == ["title"]

    def test_create_unauthenticated(self, handler, make_event, parse):
        status, _ = parse(handler(make_event("POST", "/api/songs", body={"title": "X"}), None))
        assert status == 401

    def test_update_merges(self, handler, songs_table, make_event, parse):
        songs_table.update_item.return_value = {"Attributes": {"id": "s1", "title": "Misirlou", "genre": "surf"}}
        status, body = parse(handler(make_event("PUT", "/api/songs/s1", body={"genre": "surf"}, auth=True), None))
        assert status == 200
        assert body["genre"] == "surf"
        names = songs_table.update_item.call_args.kwargs["ExpressionAttributeNames"].values()
        assert "title" not in names

    def test_delete(self, handler, make_event, parse):
        status, _ = parse(handler(make_event("DELETE", "/api/songs/s1", auth=True), None))
        assert status == 204

    def test_each_create_gets_a_fresh_id(self, handler, songs_table, make_event, parse):
        ids = set()
        for _ in range(3):
            _, body = parse(handler(make_event("POST", "/api/songs", body={"title": "Pipeline"}, auth=True), None))
            ids.add(body["id"])
        assert len(ids) == 3
        condition = songs_table.put_item.call_args.kwargs["ConditionExpression"]
        assert condition == "attribute_not_exists(#pk)"

    def test_update_always_refreshes_updated_at(self, handler, songs_table, make_event, parse):
        songs_table.update_item.return_value = {"Attributes": {"id": "s1", "title": "Pipeline"}}
        handler(make_event("PUT", "/api/songs/s1", body={}, auth=True), None)
        names = songs_table.update_item.call_args.kwargs["ExpressionAttributeNames"].values()
        assert list(names) == ["updated_at", "id"]
