"""
Shared Lambda boundary tests: preflight, CORS, unmatched routes, error
conversion, and the 501 placeholder functions.
"""

import pytest

from bands.handler import make_handler as make_bands_handler
from common.config import load_settings
from common.response import for_payload, ok, redirect
from events.handler import make_handler as make_events_handler
from venues.handler import make_handler as make_venues_handler

CORS_HEADERS = {
    "Access-Control-Allow-Origin",
    "Access-Control-Allow-Headers",
    "Access-Control-Allow-Methods",
    "Access-Control-Allow-Credentials",
}


@pytest.fixture
def venues(settings, dynamodb):
    return make_venues_handler(settings, dynamodb=dynamodb)


class TestBoundary:
    def test_options_preflight(self, venues, make_event):
        response = venues(make_event("OPTIONS", "/api/venues/v1"), None)
        assert response["statusCode"] == 200
        assert response["body"] == ""
        assert CORS_HEADERS <= set(response["headers"])
        assert response["headers"]["Access-Control-Allow-Origin"] == "https://backstage.bndy.co.uk"

    def test_unknown_route(self, venues, make_event, parse):
        response = venues(make_event("PATCH", "/api/venues/v1"), None)
        status, body = parse(response)
        assert status == 404
        assert body == {"error": "Route not found", "path": "/api/venues/v1", "method": "PATCH"}
        assert CORS_HEADERS <= set(response["headers"])

    def test_unexpected_exception_is_generic_500(self, venues, tables, settings, make_event, parse):
        tables[settings.venues_table].get_item.side_effect = RuntimeError("secret internals")
        response = venues(make_event("GET", "/api/venues/v1"), None)
        status, body = parse(response)
        assert status == 500
        assert body == {"error": "Internal server error"}
        assert "Access-Control-Allow-Origin" in response["headers"]

    def test_dynamodb_failure_is_generic_500(self, venues, tables, settings, make_event, parse, client_error):
        tables[settings.venues_table].scan.side_effect = client_error("InternalServerError", "Scan")
        status, body = parse(venues(make_event("GET", "/api/venues"), None))
        assert status == 500
        assert body == {"error": "Internal server error"}

    def test_wrong_content_type(self, venues, make_event, parse):
        event = make_event("POST", "/api/venues", body={"name": "X"}, auth=True,
                           headers={"content-type": "text/plain"})
        status, body = parse(venues(event, None))
        assert status == 400
        assert body["field"] == "Content-Type"

    def test_invalid_json(self, venues, make_event, parse):
        event = make_event("POST", "/api/venues", auth=True)
        event["body"] = "{not json"
        event["headers"]["content-type"] = "application/json"
        status, body = parse(venues(event, None))
        assert status == 400

    def test_malformed_event(self, venues, parse):
        event = {"requestContext": {"http": {"method": "POST", "path": "/api/venues"}},
                 "body": "abc", "isBase64Encoded": True}
        status, body = parse(venues(event, None))
        assert status == 400
        assert body["error"] == "Malformed request"

    def test_rest_api_event(self, venues, parse):
        event = {"httpMethod": "GET", "path": "/api/venues", "headers": {}, "queryStringParameters": None}
        status, body = parse(venues(event, None))
        assert status == 200
        assert body == []


@pytest.mark.parametrize("factory,name", [
    (make_bands_handler, "Bands"),
    (make_events_handler, "Events"),
])
class TestPlaceholderFunctions:
    def test_every_route_is_501(self, factory, name, settings, make_event, parse):
        handler = factory(settings)
        response = handler(make_event("GET", "/api/anything"), None)
        status, body = parse(response)
        assert status == 501
        assert body == {"error": f"{name} Lambda not yet implemented", "path": "/api/anything"}
        assert "Access-Control-Allow-Origin" in response["headers"]

    def test_preflight_still_answered(self, factory, name, settings, make_event):
        response = factory(settings)(make_event("OPTIONS", "/api/anything"), None)
        assert response["statusCode"] == 200


class TestSettings:
    def test_environment_overrides(self):
        settings = load_settings({
            "JWT_SECRET": "s",
            "FRONTEND_URL": "http://localhost:3000/",
            "VENUES_TABLE": "venues-dev",
            "SESSION_TTL_SECONDS": "60",
        })
        assert settings.frontend_url == "http://localhost:3000"
        assert settings.redirect_uri == "http://localhost:3000/auth/callback"
        assert settings.cors["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert settings.venues_table == "venues-dev"
        assert settings.session_ttl_seconds == 60
        assert settings.users_table == "bndy-users"

    def test_defaults(self):
        settings = load_settings({})
        assert settings.cookie_domain == ".bndy.co.uk"
        assert settings.session_cookie == "bndy_session"
        assert settings.session_ttl_seconds == 7 * 24 * 60 * 60


class TestCookieResponses:
    def test_builders_emit_cookie_once(self):
        response = ok({}, cookies=["bndy_session=tok; Path=/"])
        assert response["cookies"] == ["bndy_session=tok; Path=/"]
        assert "Set-Cookie" not in response["headers"]

    def test_rest_payload_moves_cookies_to_multi_value_headers(self):
        response = for_payload(redirect("/x", cookies=["a=1", "b=2"]), "1.0")
        assert "cookies" not in response
        assert response["multiValueHeaders"] == {"Set-Cookie": ["a=1", "b=2"]}

    def test_http_api_payload_untouched(self):
        response = for_payload(ok({}, cookies=["a=1"]), "2.0")
        assert response["cookies"] == ["a=1"]
        assert "multiValueHeaders" not in response
