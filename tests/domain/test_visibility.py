"""Tests for co-visibility of profile identities.

Pure functions, no I/O except ProfileDirectory (fakeredis).
"""

import pytest

from editorial_ai.domain.profiles import Profile, ProfileDirectory, Role
from editorial_ai.domain.visibility import (
    VisibilityResolver,
    has_profile_access,
    normalize_contact_identifier,
    visible_creator_id,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def resolver():
    return VisibilityResolver(["  Studio@Example.com", "", "Label@Example.com "])


@pytest.mark.parametrize(
    "value, expected",
    [(None, ""), ("", ""), ("  A@B.com ", "a@b.com"), ("STRASSE@x.de", "strasse@x.de"), ("Straße@x.de", "strasse@x.de")],
)
def test_normalize_contact_identifier(value, expected):
    assert normalize_contact_identifier(value) == expected


def test_configured_identifiers_are_normalized_and_blanks_dropped(resolver):
    assert resolver.shared_contact_identifiers == frozenset({"studio@example.com", "label@example.com"})


def test_profiles_sharing_a_configured_contact_are_co_visible(resolver, owner, teammate):
    assert resolver.are_co_visible(owner, teammate)
    assert resolver.scope_key(owner) == resolver.scope_key(teammate) == "contact:studio@example.com"


def test_same_unconfigured_contact_is_not_enough(resolver):
    a = Profile(id="A", email="same@example.com")
    b = Profile(id="B", email="SAME@example.com")

    assert not resolver.are_co_visible(a, b)
    assert resolver.scope_key(a) == "profile:A"


def test_profile_is_always_co_visible_with_itself(resolver, outsider):
    assert resolver.are_co_visible(outsider, outsider)


def test_co_visible_filters_candidates_in_order(resolver, owner, teammate, outsider):
    label = Profile(id="L1", email="label@example.com")

    assert resolver.co_visible(owner, [outsider, teammate, label, owner]) == [teammate, owner]
    assert resolver.co_visible(outsider, [owner, outsider]) == [outsider]


def test_no_configured_identifiers_means_everyone_sees_only_themselves(owner, teammate):
    resolver = VisibilityResolver()

    assert not resolver.is_shared_contact(owner.email)
    assert resolver.co_visible(owner, [owner, teammate]) == [owner]


def test_has_profile_access_rules():
    assert has_profile_access(Role.ADMIN, [], "anyone")
    assert has_profile_access(Role.STAGIAIRE, ["P1", "P2"], "P2")
    assert not has_profile_access(Role.STAGIAIRE, ["P1"], "P2")
    assert has_profile_access(Role.STAGIAIRE, ["P1"], "P2", assignee_ids=["P3", "P1"])


def test_visible_creator_id(admin, outsider):
    assert visible_creator_id(admin, {admin.id}, "P1") == "P1"
    assert visible_creator_id(outsider, {outsider.id, "P1"}, "P1") == "P1"
    assert visible_creator_id(outsider, {outsider.id}, "P1") is None


async def test_access_profile_ids_expand_shared_contact(redis_client, register_contact, resolver, owner):
    await register_contact("studio@example.com", "P1", "P2", "P3")
    directory = ProfileDirectory(redis_client)

    assert await directory.access_profile_ids(owner, resolver) == {"P1", "P2", "P3"}


async def test_access_profile_ids_for_unshared_contact_is_self(redis_client, register_contact, resolver, outsider):
    await register_contact("someone@else.com", "P9", "P10")
    directory = ProfileDirectory(redis_client)

    assert await directory.access_profile_ids(outsider, resolver) == {"P9"}
