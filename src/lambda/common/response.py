import json
from decimal import Decimal


class DecimalEncoder(json.JSONEncoder):
    """Handle DynamoDB Decimal types in JSON responses."""

    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o == int(o) else float(o)
        return super().default(o)


def _with_cookies(response, cookies):
    # HTTP API (payload 2.0) shape; for_payload() rewrites it for REST APIs.
    if cookies:
        response["cookies"] = list(cookies)
    return response


def ok(body, status=200, cookies=None):
    response = {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, cls=DecimalEncoder),
    }
    return _with_cookies(response, cookies)


def error(message, status=400, **extra):
    return ok({"error": message, **extra}, status)


def no_content():
    return {"statusCode": 204, "headers": {}, "body": ""}


def preflight():
    return {"statusCode": 200, "headers": {}, "body": ""}


def redirect(location, cookies=None):
    response = {"statusCode": 302, "headers": {"Location": location}, "body": ""}
    return _with_cookies(response, cookies)


def for_payload(response, version):
    """
    REST APIs (payload 1.0) ignore the cookies list, so move it into
    multiValueHeaders there. Each cookie is sent exactly once either way.
    """
    cookies = response.get("cookies")
    if cookies and version == "1.0":
        del response["cookies"]
        response.setdefault("multiValueHeaders", {})["Set-Cookie"] = cookies
    return response


def with_cors(response, cors):
    """Attach the CORS header set to a response built by any helper above."""
    response.setdefault("headers", {}).update(cors)
    return response
