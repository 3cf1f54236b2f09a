"""
BNDY Auth Lambda Handler
Cognito OAuth (Google) login, session cookie and current-user lookup.

Routes:
    GET  /auth/google     start the OAuth flow
    GET  /auth/callback   finish it, set the session cookie
    GET  /api/me          current user, memberships and session times
    POST /auth/logout     clear the session cookie
"""

import logging
from dataclasses import dataclass
from urllib.parse import quote

import requests

from auth import oauth
from common import store
from common.config import Settings, load_settings
from common.errors import NotFoundError, UpstreamError
from common.memberships import memberships_for_user
from common.response import ok, redirect
from common.router import lambda_entry
from common.session import clear_session_cookie, issue_session, require_session, session_cookie

logger = logging.getLogger()
logger.setLevel(logging.INFO)


@dataclass
class AuthApi:
    settings: Settings
    users: object
    memberships: object
    artists: object
    states: oauth.StateStore
    http: object = requests

    def route(self, request):
        parts = request.parts
        method = request.method
        if parts == ["auth", "google"] and method == "GET":
            return self.start_login()
        if parts == ["auth", "callback"] and method == "GET":
            return self.callback(request)
        if parts == ["api", "me"] and method == "GET":
            return self.me(request)
        if parts == ["auth", "logout"] and method == "POST":
            return self.logout()
        return None

    def _login_error(self, reason: str):
        return redirect(f"{self.settings.frontend_url}/login?error={quote(reason, safe='')}")

    def start_login(self):
        state = self.states.issue()
        logger.info("Starting Google OAuth flow, state %s...", state[:8])
        return redirect(oauth.authorize_url(self.settings, state))

    def callback(self, request):
        qs = request.query
        code, state, provider_error = qs.get("code"), qs.get("state"), qs.get("error")
        logger.info("OAuth callback: code=%s state=%s error=%s", bool(code), bool(state), provider_error)

        try:
            if not self.states.consume(state):
                logger.warning("OAuth callback: invalid or expired state")
                return self._login_error("invalid_state")
            if provider_error:
                logger.warning("OAuth callback: provider error %s", provider_error)
                return self._login_error(provider_error)
            if not code:
                logger.warning("OAuth callback: no authorization code")
                return self._login_error("no_code")

            tokens = oauth.exchange_code(self.settings, code, http=self.http)
            claims = oauth.decode_id_token(tokens["id_token"])
            oauth.upsert_user(self.users, claims)
        except UpstreamError as exc:
            logger.error("OAuth callback: %s", exc.detail)
            return self._login_error("token_exchange_failed")
        except Exception:
            logger.exception("OAuth callback failed")
            return self._login_error("token_exchange_failed")

        token = issue_session(
            claims["sub"], claims.get("cognito:username"), claims.get("email"),
            self.settings.jwt_secret, self.settings.session_ttl_seconds,
        )
        logger.info("OAuth callback: session created for %s...", claims["sub"][:8])
        return redirect(
            f"{self.settings.frontend_url}/auth-success",
            cookies=[session_cookie(token, self.settings)],
        )

    def me(self, request):
        session = require_session(request, self.settings)
        user = store.get_item(self.users, {"cognito_id": session.user_id})
        if not user:
            logger.error("/api/me: user %s... not found", session.user_id[:8])
            raise NotFoundError("User not found")
        bands = memberships_for_user(self.memberships, self.artists, self.users, session.user_id)
        return ok({
            "user": {
                "id": user.get("user_id"),
                "cognitoId": user.get("cognito_id"),
                "username": user.get("username") or session.username,
                "email": user.get("email") or session.email,
                "firstName": user.get("first_name"),
                "lastName": user.get("last_name"),
                "displayName": user.get("display_name"),
                "avatarUrl": user.get("avatar_url") or user.get("oauth_profile_picture"),
                "instrument": user.get("instrument"),
                "profileCompleted": bool(user.get("profile_complete")),
                "createdAt": user.get("created_at"),
            },
            "bands": bands,
            "session": {
                "issuedAt": session.issued_at,
                "expiresAt": session.expires_at * 1000,
            },
        })

    def logout(self):
        logger.info("User logging out")
        return ok({"success": True}, cookies=[clear_session_cookie(self.settings)])


def make_handler(settings: Settings, dynamodb=None, http=None):
    dynamodb = dynamodb or store.connect(settings)
    api = AuthApi(
        settings,
        users=dynamodb.Table(settings.users_table),
        memberships=dynamodb.Table(settings.memberships_table),
        artists=dynamodb.Table(settings.artists_table),
        states=oauth.StateStore(dynamodb.Table(settings.oauth_states_table),
                                settings.oauth_state_ttl_seconds),
        http=http or requests,
    )
    return lambda_entry("auth", settings, api.route)


handler = make_handler(load_settings())
