"""Requester identity for FastAPI routes.

Session tokens are verified by the identity provider in front of this
service, which forwards the resolved profile as headers. Routes only read
those headers.
"""

from fastapi import Header, HTTPException, Request

from editorial_ai.domain.profiles import Profile, Role


async def require_profile(
    request: Request,
    x_profile_id: str | None = Header(default=None),
    x_profile_email: str = Header(default=""),
    x_profile_role: str = Header(default=Role.STAGIAIRE.value),
) -> Profile:
    """FastAPI dependency: the calling profile, or 401 when none was forwarded."""
    if not x_profile_id or not x_profile_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        role = Role(x_profile_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_profile_role}") from None

    profile = Profile(id=x_profile_id.strip(), email=x_profile_email, role=role)
    request.state.user_id = profile.id
    return profile
