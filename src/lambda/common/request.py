"""
Normalized view of an API Gateway event.
Handles both REST API (payload 1.0) and HTTP API (payload 2.0) shapes so the
route handlers never look at the raw event.
"""

import base64
import json
from dataclasses import dataclass, field
from decimal import Decimal

from common.errors import ValidationError


def parse_cookie_header(header: str) -> dict:
    """Parse a raw Cookie header into a name -> value dict."""
    cookies = {}
    for part in (header or "").split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            cookies[name] = value
    return cookies


def pick(data: dict, field_map: dict) -> dict:
    """Map the request keys present in data to their stored attribute names."""
    return {stored: data[key] for key, stored in field_map.items() if key in data}


@dataclass
class Request:
    method: str = "GET"
    path: str = "/"
    headers: dict = field(default_factory=dict)
    cookies: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)
    raw_body: str = ""
    payload_version: str = "2.0"

    @classmethod
    def from_event(cls, event: dict) -> "Request":
        http = (event.get("requestContext") or {}).get("http") or {}
        method = http.get("method") or event.get("httpMethod") or "GET"
        path = http.get("path") or event.get("rawPath") or event.get("path") or "/"
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}

        # HTTP API v2 moves cookies out of the header into a list
        cookies = parse_cookie_header(headers.get("cookie", ""))
        for raw in event.get("cookies") or []:
            cookies.update(parse_cookie_header(raw))

        raw_body = event.get("body") or ""
        if raw_body and event.get("isBase64Encoded"):
            raw_body = base64.b64decode(raw_body).decode("utf-8")

        return cls(
            method=method.upper(),
            path=path,
            headers=headers,
            cookies=cookies,
            query=event.get("queryStringParameters") or {},
            raw_body=raw_body,
            payload_version=event.get("version") or ("2.0" if http else "1.0"),
        )

    @property
    def parts(self) -> list[str]:
        """Return path segments, e.g. /api/venues/123 -> ['api', 'venues', '123']."""
        return [p for p in self.path.strip("/").split("/") if p]

    def json(self) -> dict:
        """
        Parse the JSON object body. Empty bodies parse to {}.
        Floats come back as Decimal, which is what DynamoDB accepts.
        """
        if not self.raw_body:
            return {}
        content_type = self.headers.get("content-type", "")
        if not content_type.lower().startswith("application/json"):
            raise ValidationError("Content-Type must be application/json", field="Content-Type")
        try:
            data = json.loads(self.raw_body, parse_float=Decimal)
        except (json.JSONDecodeError, TypeError):
            raise ValidationError("Request body is not valid JSON", field="body")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", field="body")
        return data
