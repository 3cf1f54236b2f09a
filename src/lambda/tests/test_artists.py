"""
Artists Lambda handler tests.
"""

import pytest

from artists.handler import make_handler


@pytest.fixture
def handler(settings, dynamodb):
    return make_handler(settings, dynamodb=dynamodb)


@pytest.fixture
def artists_table(tables, settings):
    return tables[settings.artists_table]


class TestCreateArtist:
    def test_writes_artist_and_owner_membership_together(self, handler, artists_table, settings,
                                                          make_event, parse, user_id):
        event = make_event("POST", "/api/artists", body={
            "name": "The Breakers",
            "artistType": "band",
            "genres": ["surf"],
            "memberInstrument": "Drums",
        }, auth=True)

        status, body = parse(handler(event, None))

        assert status == 201
        assert body["message"] == "Artist created successfully"
        assert body["artist"]["ownerUserId"] == user_id
        assert body["artist"]["memberCount"] == 1
        assert body["artist"]["claimedByUserId"] is None
        assert body["membership"]["role"] == "owner"
        assert body["membership"]["instrument"] == "Drums"
        assert "manage_members" in body["membership"]["permissions"]

        ops = artists_table.meta.client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(ops) == 2
        artist_put, membership_put = ops[0]["Put"], ops[1]["Put"]
        assert artist_put["TableName"] == settings.artists_table
        assert membership_put["TableName"] == settings.memberships_table
        assert membership_put["Item"]["artist_id"] == artist_put["Item"]["id"]
        assert membership_put["Item"]["user_id"] == user_id
        artists_table.put_item.assert_not_called()

    def test_rejects_unknown_artist_type(self, handler, artists_table, make_event, parse):
        event = make_event("POST", "/api/artists", body={"name": "X", "artistType": "orchestra"}, auth=True)
        status, body = parse(handler(event, None))
        assert status == 400
        assert body["field"] == "artistType"
        assert "collective" in body["allowed"]
        artists_table.meta.client.transact_write_items.assert_not_called()

    def test_accepts_legacy_spellings(self, handler, artists_table, make_event, parse):
        event = make_event("POST", "/api/artists", body={
            "name": "DJ Wave", "artist_type": "dj", "avatarUrl": "https://img/x.png",
        }, auth=True)
        status, body = parse(handler(event, None))
        assert status == 201
        assert body["artist"]["artistType"] == "dj"
        assert body["artist"]["profileImageUrl"] == "https://img/x.png"

    def test_requires_name(self, handler, make_event, parse):
        status, body = parse(handler(make_event("POST", "/api/artists", body={"bio": "x"}, auth=True), None))
        assert status == 400
        assert body["fields"] == ["name"]

    def test_requires_session(self, handler, make_event, parse):
        status, _ = parse(handler(make_event("POST", "/api/artists", body={"name": "X"}), None))
        assert status == 401

    def test_transaction_failure_is_a_500(self, handler, artists_table, make_event, parse, client_error):
        artists_table.meta.client.transact_write_items.side_effect = client_error(
            "InternalServerError", "TransactWriteItems")
        status, body = parse(handler(make_event("POST", "/api/artists", body={"name": "X"}, auth=True), None))
        assert status == 500
        assert body == {"error": "Internal server error"}


class TestReadArtists:
    def test_list(self, handler, artists_table, make_event, parse):
        artists_table.scan.return_value = {"Items": [
            {"id": "a1", "name": "The Breakers", "member_count": 3, "owner_user_id": "u1"},
        ]}
        status, body = parse(handler(make_event("GET", "/api/artists"), None))
        assert status == 200
        assert body[0]["memberCount"] == 3
        assert body[0]["artistType"] == "band"

    def test_get_missing(self, handler, make_event, parse):
        status, body = parse(handler(make_event("GET", "/api/artists/nope"), None))
        assert status == 404
        assert body["error"] == "Artist not found"


class TestUpdateArtist:
    def test_update_does_not_touch_claim(self, handler, artists_table, make_event, parse):
        artists_table.update_item.return_value = {"Attributes": {
            "id": "a1", "name": "Renamed", "owner_user_id": "u1", "claimedByUserId": "legacy-u",
        }}
        event = make_event("PUT", "/api/artists/a1", body={"name": "Renamed", "isVerified": True}, auth=True)
        status, body = parse(handler(event, None))
        assert status == 200
        assert body["claimedByUserId"] == "legacy-u"
        assert body["ownerUserId"] == "u1"
        names = artists_table.update_item.call_args.kwargs["ExpressionAttributeNames"].values()
        assert "isVerified" in names
        assert "claimedByUserId" not in names

    def test_update_missing(self, handler, artists_table, make_event, parse, client_error):
        artists_table.update_item.side_effect = client_error()
        status, _ = parse(handler(make_event("PUT", "/api/artists/nope", body={"bio": "x"}, auth=True), None))
        assert status == 404


class TestDeleteArtist:
    def test_delete_leaves_memberships(self, handler, artists_table, tables, settings, make_event, parse):
        status, _ = parse(handler(make_event("DELETE", "/api/artists/a1", auth=True), None))
        assert status == 204
        artists_table.delete_item.assert_called_once()
        tables[settings.memberships_table].delete_item.assert_not_called()
