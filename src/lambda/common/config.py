"""
Settings shared by every BNDY Lambda function.
Read once per cold start and handed to each handler factory.
"""

import os
from dataclasses import dataclass, field

ALLOWED_METHODS = "GET,POST,PUT,DELETE,OPTIONS"
ALLOWED_HEADERS = "Content-Type,Authorization,Cookie"

SESSION_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days
OAUTH_STATE_TTL_SECONDS = 300  # 5 minutes


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = ""
    frontend_url: str = "https://backstage.bndy.co.uk"
    cookie_domain: str = ".bndy.co.uk"
    session_cookie: str = "bndy_session"
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    cognito_domain: str = "https://eu-west-2lqtkkhs1p.auth.eu-west-2.amazoncognito.com"
    cognito_client_id: str = ""
    cognito_client_secret: str = ""
    oauth_state_ttl_seconds: int = OAUTH_STATE_TTL_SECONDS
    region: str = "eu-west-2"
    users_table: str = "bndy-users"
    artists_table: str = "bndy-artists"
    memberships_table: str = "bndy-artist-memberships"
    venues_table: str = "bndy-venues"
    songs_table: str = "bndy-songs"
    issues_table: str = "bndy-issues"
    oauth_states_table: str = "bndy-oauth-states"
    cors: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "cors", {
            "Access-Control-Allow-Origin": self.frontend_url,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Credentials": "true",
        })

    @property
    def redirect_uri(self) -> str:
        return f"{self.frontend_url}/auth/callback"


def load_settings(environ=None) -> Settings:
    """Build Settings from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    defaults = Settings()

    def get(name, default):
        return env.get(name, default)

    return Settings(
        jwt_secret=get("JWT_SECRET", defaults.jwt_secret),
        frontend_url=get("FRONTEND_URL", defaults.frontend_url).rstrip("/"),
        cookie_domain=get("COOKIE_DOMAIN", defaults.cookie_domain),
        session_cookie=get("SESSION_COOKIE_NAME", defaults.session_cookie),
        session_ttl_seconds=int(get("SESSION_TTL_SECONDS", defaults.session_ttl_seconds)),
        cognito_domain=get("COGNITO_DOMAIN", defaults.cognito_domain).rstrip("/"),
        cognito_client_id=get("COGNITO_USER_POOL_CLIENT_ID", defaults.cognito_client_id),
        cognito_client_secret=get("COGNITO_USER_POOL_CLIENT_SECRET", defaults.cognito_client_secret),
        oauth_state_ttl_seconds=int(get("OAUTH_STATE_TTL_SECONDS", defaults.oauth_state_ttl_seconds)),
        region=get("AWS_REGION", defaults.region),
        users_table=get("USERS_TABLE", defaults.users_table),
        artists_table=get("ARTISTS_TABLE", defaults.artists_table),
        memberships_table=get("MEMBERSHIPS_TABLE", defaults.memberships_table),
        venues_table=get("VENUES_TABLE", defaults.venues_table),
        songs_table=get("SONGS_TABLE", defaults.songs_table),
        issues_table=get("ISSUES_TABLE", defaults.issues_table),
        oauth_states_table=get("OAUTH_STATES_TABLE", defaults.oauth_states_table),
    )
