"""
Cognito hosted-UI OAuth helpers: CSRF state storage, code exchange, ID token
decoding and the user upsert that runs on every login.
"""

import logging
import secrets
import time
from urllib.parse import urlencode

import jwt
import requests
from botocore.exceptions import ClientError

from common import store
from common.errors import UpstreamError

logger = logging.getLogger()

TOKEN_TIMEOUT = 10  # seconds
SCOPES = "email openid profile phone"

# user attribute -> ID token claim, filled only while the attribute is null
CLAIM_FIELDS = {
    "first_name": "given_name",
    "last_name": "family_name",
    "display_name": "name",
}


class StateStore:
    """
    Pending OAuth states in a DynamoDB table with a TTL on expires_at.
    TTL deletion is lazy, so consume() checks the expiry itself as well.
    """

    def __init__(self, table, ttl_seconds: int):
        self.table = table
        self.ttl_seconds = ttl_seconds

    def issue(self, now: float | None = None) -> str:
        now = time.time() if now is None else now
        state = secrets.token_hex(32)
        store.put_item(self.table, {
            "state": state,
            "created_at": int(now),
            "expires_at": int(now) + self.ttl_seconds,
        })
        return state

    def consume(self, state: str | None, now: float | None = None) -> bool:
        """Delete the state and report whether it was pending and unexpired."""
        if not state:
            return False
        now = time.time() if now is None else now
        item = store.pop_item(self.table, {"state": state})
        if not item:
            return False
        return int(item.get("expires_at", 0)) >= now


def authorize_url(settings, state: str) -> str:
    params = {
        "response_type": "code",
        "client_id": settings.cognito_client_id,
        "redirect_uri": settings.redirect_uri,
        "scope": SCOPES,
        "state": state,
        "identity_provider": "Google",
    }
    return f"{settings.cognito_domain}/oauth2/authorize?{urlencode(params)}"


def exchange_code(settings, code: str, http=requests) -> dict:
    """Trade an authorization code for tokens. Raises UpstreamError on any failure."""
    try:
        resp = http.post(
            f"{settings.cognito_domain}/oauth2/token",
            data={
                "grant_type": "authorization_code",
                "client_id": settings.cognito_client_id,
                "client_secret": settings.cognito_client_secret,
                "code": code,
                "redirect_uri": settings.redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=TOKEN_TIMEOUT,
        )
        resp.raise_for_status()
        tokens = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise UpstreamError(f"token exchange failed: {exc}")
    if not isinstance(tokens, dict) or not tokens.get("id_token"):
        raise UpstreamError("token exchange returned no id_token")
    return tokens


def decode_id_token(id_token: str) -> dict:
    """
    Read the identity claims. The token came straight from the token endpoint
    over TLS, so the signature is not checked again here.
    """
    try:
        claims = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise UpstreamError(f"undecodable id_token: {exc}")
    if not claims.get("sub"):
        raise UpstreamError("id_token has no sub claim")
    return claims


def upsert_user(table, claims: dict) -> dict:
    """
    Create the user on first login; on later logins refresh provider data and
    fill only the profile fields that are still null. User edits always win.
    """
    cognito_id = claims["sub"]
    key = {"cognito_id": cognito_id}
    now = store.now_iso()
    existing = store.get_item(table, key)

    if existing is None:
        item = {
            "cognito_id": cognito_id,
            "user_id": store.new_id(),
            "email": claims.get("email"),
            "username": claims.get("cognito:username"),
            "first_name": claims.get("given_name"),
            "last_name": claims.get("family_name"),
            "display_name": claims.get("name"),
            "avatar_url": None,
            "oauth_profile_picture": claims.get("picture"),
            "instrument": None,
            "profile_complete": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            store.create_item(table, item, "cognito_id")
            logger.info("Created user %s...", cognito_id[:8])
            return item
        except ClientError as exc:
            if not store.is_condition_failure(exc):
                raise
            # A concurrent login created the record first.
            existing = store.get_item(table, key) or {}

    fields = {
        "email": claims.get("email"),
        "username": claims.get("cognito:username"),
        "updated_at": now,
    }
    if claims.get("picture"):
        fields["oauth_profile_picture"] = claims["picture"]
    for attr, claim in CLAIM_FIELDS.items():
        if existing.get(attr) is None and claims.get(claim):
            fields[attr] = claims[claim]
    logger.info("Updating user %s... (%s)", cognito_id[:8], ", ".join(sorted(fields)))
    return store.update_fields(table, key, fields) or {**existing, **fields}
