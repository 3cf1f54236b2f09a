"""
Membership profile resolution.

A membership may override the member's display name, avatar and instrument for
one artist. Anything it leaves null is inherited from the user's own profile,
so edits to the user record show up in every membership on the next read.
Nothing here is cached or written back.
"""


def _first(*values):
    for v in values:
        if v is not None and v != "":
            return v
    return None


def resolve_membership_profile(membership: dict, user: dict | None) -> dict:
    """Return a copy of membership with resolved_* values and has_custom_* flags."""
    user = user or {}
    resolved = dict(membership)
    resolved["resolved_display_name"] = _first(
        membership.get("display_name"), user.get("display_name"), user.get("username"),
    )
    resolved["resolved_avatar_url"] = _first(
        membership.get("avatar_url"), user.get("avatar_url"), user.get("oauth_profile_picture"),
    )
    resolved["resolved_instrument"] = _first(
        membership.get("instrument"), user.get("instrument"),
    )
    resolved["has_custom_display_name"] = membership.get("display_name") is not None
    resolved["has_custom_avatar"] = membership.get("avatar_url") is not None
    resolved["has_custom_instrument"] = membership.get("instrument") is not None
    return resolved
