"""
Session cookie issue and verification.
The session lives entirely inside an HS256-signed JWT; there is no server-side store.
"""

import logging
import time
from dataclasses import dataclass

import jwt

from common.errors import AuthError
from common.request import parse_cookie_header

logger = logging.getLogger()

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Session:
    user_id: str
    username: str | None
    email: str | None
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class SessionCheck:
    session: Session | None = None
    reason: str | None = None  # "absent" or "invalid"

    @property
    def ok(self) -> bool:
        return self.session is not None


def extract_token(cookies, name: str) -> str | None:
    """Find the named cookie in a raw Cookie header, a v2 cookie list, or a parsed dict."""
    if not cookies:
        return None
    if isinstance(cookies, str):
        cookies = parse_cookie_header(cookies)
    elif isinstance(cookies, (list, tuple)):
        merged = {}
        for raw in cookies:
            merged.update(parse_cookie_header(raw))
        cookies = merged
    return cookies.get(name) or None


def issue_session(user_id: str, username, email, secret: str, ttl_seconds: int,
                  now: float | None = None) -> str:
    now = time.time() if now is None else now
    payload = {
        "userId": user_id,
        "username": username,
        "email": email,
        "issuedAt": int(now * 1000),
        "iat": int(now),
        "exp": int(now) + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_session(token: str | None, secret: str) -> SessionCheck:
    """Verify signature and expiry. Never raises."""
    if not token:
        return SessionCheck(reason="absent")
    if not secret:
        logger.error("verify_session: no JWT secret configured")
        return SessionCheck(reason="invalid")
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM],
                            options={"require": ["exp"]})
    except jwt.ExpiredSignatureError:
        logger.info("verify_session: session expired")
        return SessionCheck(reason="invalid")
    except jwt.PyJWTError as exc:
        logger.warning("verify_session: invalid session token: %s", exc)
        return SessionCheck(reason="invalid")

    user_id = claims.get("userId")
    if not user_id:
        logger.warning("verify_session: token has no userId claim")
        return SessionCheck(reason="invalid")
    return SessionCheck(session=Session(
        user_id=user_id,
        username=claims.get("username"),
        email=claims.get("email"),
        issued_at=claims.get("issuedAt", claims.get("iat", 0) * 1000),
        expires_at=claims["exp"],
    ))


def require_session(request, settings) -> Session:
    """Return the caller's Session or raise AuthError."""
    token = extract_token(request.cookies, settings.session_cookie)
    check = verify_session(token, settings.jwt_secret)
    if not check.ok:
        if check.reason == "absent":
            logger.info("require_session: no session token found")
            raise AuthError("Not authenticated")
        raise AuthError("Invalid session")
    logger.info("require_session: user authenticated %s...", check.session.user_id[:8])
    return check.session


def session_cookie(token: str, settings) -> str:
    return (
        f"{settings.session_cookie}={token}; HttpOnly; Secure; SameSite=None; "
        f"Max-Age={settings.session_ttl_seconds}; Path=/; Domain={settings.cookie_domain}"
    )


def clear_session_cookie(settings) -> str:
    return (
        f"{settings.session_cookie}=; HttpOnly; Secure; SameSite=None; "
        f"Max-Age=0; Path=/; Domain={settings.cookie_domain}"
    )
