"""
Error taxonomy for the BNDY API.
Each error knows its HTTP status and the JSON body the client sees.
"""


class ApiError(Exception):
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.message}


class ValidationError(ApiError):
    """Bad, missing or out-of-range request field."""

    status = 400

    def __init__(self, message: str, field: str | None = None,
                 fields: list[str] | None = None, allowed: list[str] | None = None):
        super().__init__(message)
        self.field = field
        self.fields = fields
        self.allowed = allowed

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.field:
            body["field"] = self.field
        if self.fields:
            body["fields"] = self.fields
        if self.allowed:
            body["allowed"] = self.allowed
        return body


class AuthError(ApiError):
    status = 401


class NotFoundError(ApiError):
    status = 404


class UpstreamError(ApiError):
    """A data store or identity provider call failed. Detail is logged, never returned."""

    status = 500

    def __init__(self, detail: str):
        super().__init__("Internal server error")
        self.detail = detail


def check_enum(value, allowed: list[str], field: str):
    """Raise ValidationError unless value is one of allowed."""
    if value not in allowed:
        raise ValidationError(f"Invalid {field}", field=field, allowed=list(allowed))
    return value


def check_required(data: dict, fields: list[str]):
    """Raise ValidationError naming every required field that is missing or empty."""
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError("Missing required fields", fields=missing)
