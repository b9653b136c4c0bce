"""Co-visibility of profile identities.

Pure domain functions, no I/O. Two profiles share one visibility scope when
their contact identifiers normalize (trim + casefold) to the same value and
that value is one of the configured shared identifiers. Everyone else only
sees themselves.
"""

from collections.abc import Iterable

from editorial_ai.domain.profiles import Profile, Role


def normalize_contact_identifier(value: str | None) -> str:
    """Trim and casefold a contact identifier; None becomes ''."""
    if not isinstance(value, str):
        return ""
    return value.strip().casefold()


class VisibilityResolver:
    """Expands a requesting identity to the set of co-visible identities."""

    normalize = staticmethod(normalize_contact_identifier)

    def __init__(self, shared_contact_identifiers: Iterable[str] = ()):
        self.shared_contact_identifiers = frozenset(
            normalized
            for normalized in (normalize_contact_identifier(v) for v in shared_contact_identifiers)
            if normalized
        )

    def is_shared_contact(self, email: str | None) -> bool:
        return normalize_contact_identifier(email) in self.shared_contact_identifiers

    def scope_key(self, profile: Profile) -> str:
        """Identity that visibility is keyed on: the shared contact, or the profile id."""
        normalized = normalize_contact_identifier(profile.email)
        if normalized in self.shared_contact_identifiers:
            return f"contact:{normalized}"
        return f"profile:{profile.id}"

    def are_co_visible(self, a: Profile, b: Profile) -> bool:
        return a.id == b.id or self.scope_key(a) == self.scope_key(b)

    def co_visible(self, requester: Profile, candidates: Iterable[Profile]) -> list[Profile]:
        """Subset of ``candidates`` in the requester's visibility scope, order kept."""
        return [candidate for candidate in candidates if self.are_co_visible(requester, candidate)]


def has_profile_access(
    role: Role,
    access_profile_ids: Iterable[str],
    assignee_id: str,
    assignee_ids: Iterable[str] | None = None,
) -> bool:
    """Admins see everything; others need the assignee inside their scope."""
    if role == Role.ADMIN:
        return True
    allowed = set(access_profile_ids)
    if assignee_id in allowed:
        return True
    return any(pid in allowed for pid in assignee_ids or ())


def visible_creator_id(viewer: Profile, access_profile_ids: Iterable[str], creator_id: str) -> str | None:
    """Creator id as shown to ``viewer``: hidden unless admin or inside the viewer's scope."""
    if has_profile_access(viewer.role, access_profile_ids, creator_id):
        return creator_id
    return None
