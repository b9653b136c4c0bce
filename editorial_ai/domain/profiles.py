"""Profile identities as seen by the suggestion pipeline.

Profiles are owned by the surrounding dashboard; this module only reads them.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from redis.asyncio import Redis

if TYPE_CHECKING:
    from editorial_ai.domain.visibility import VisibilityResolver


class Role(StrEnum):
    """Dashboard roles."""

    ADMIN = "admin"
    STAGIAIRE = "stagiaire"


@dataclass(frozen=True)
class Profile:
    """A dashboard profile: opaque id, contact email, role."""

    id: str
    email: str
    role: Role = Role.STAGIAIRE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ProfileDirectory:
    """Read-only lookups against the contact index the dashboard maintains.

    ``profiles:by_contact:{normalized email}`` is a set of profile ids.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    async def ids_for_contact(self, normalized_contact: str) -> set[str]:
        """Profile ids registered under one normalized contact identifier."""
        return set(await self.redis.smembers(f"profiles:by_contact:{normalized_contact}"))

    async def access_profile_ids(self, requester: Profile, resolver: "VisibilityResolver") -> set[str]:
        """Requester id plus every profile sharing its contact, when that contact is shared."""
        ids = {requester.id}
        if resolver.is_shared_contact(requester.email):
            ids |= await self.ids_for_contact(resolver.normalize(requester.email))
        return ids
