"""Unit tests for resolving an identity to a family member.

resolve_member is called directly against the in-memory store.
"""

import pytest

from libs.db.store import StoreError
from services.members_service.models import FAMILY_MEMBERS_TABLE
from services.members_service.services.resolution import (
    AutoLinked,
    Failed,
    Linked,
    Unauthorized,
    UnauthorizedReason,
    outcome_member,
    resolve_member,
)
from tests.factories import IdentityFactory, MemberFactory


# ---------------------------------------------------------------------------
# user_id match
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_linked_member_found_without_writes(store):
    row = store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(user_id="u1"))
    identity = IdentityFactory.create(id="u1")

    outcome = await resolve_member(store, identity, allow_link=True)

    assert isinstance(outcome, Linked)
    assert outcome.member.id == row["id"]
    assert store.updates == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_user_id_match_wins_over_email(store):
    store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(email="a@test.com", user_id=None))
    linked = store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(user_id="u1"))

    outcome = await resolve_member(
        store, IdentityFactory.create(id="u1", email="a@test.com"), allow_link=True
    )

    assert isinstance(outcome, Linked)
    assert outcome.member.id == linked["id"]
    assert store.updates == []


# ---------------------------------------------------------------------------
# Email auto-link
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_email_match_links_member(store, registered_member):
    identity = IdentityFactory.create(id="g1", email="m1@test.com")

    outcome = await resolve_member(store, identity, allow_link=True)

    assert isinstance(outcome, AutoLinked)
    assert outcome.member.user_id == "g1"
    assert store.updates == [(FAMILY_MEMBERS_TABLE, registered_member["id"], {"user_id": "g1"})]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_email_match_relinks_member_linked_elsewhere(store):
    row = store.seed(
        FAMILY_MEMBERS_TABLE, MemberFactory.create(email="m1@test.com", user_id="old")
    )

    outcome = await resolve_member(
        store, IdentityFactory.create(id="new", email="m1@test.com"), allow_link=True
    )

    assert isinstance(outcome, AutoLinked)
    assert outcome.member.id == row["id"]
    assert outcome.member.user_id == "new"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_email_link_without_allow_link(store, registered_member):
    outcome = await resolve_member(
        store, IdentityFactory.create(id="g1", email="m1@test.com"), allow_link=False
    )

    assert outcome == Unauthorized(UnauthorizedReason.NOT_LINKED)
    assert store.updates == []


# ---------------------------------------------------------------------------
# Unauthorized
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_email_is_unregistered(store, registered_member):
    outcome = await resolve_member(
        store, IdentityFactory.create(id="x", email="stranger@test.com"), allow_link=True
    )

    assert outcome == Unauthorized(UnauthorizedReason.UNREGISTERED)
    assert outcome_member(outcome) is None
    assert store.updates == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_email_is_reported(store, registered_member):
    outcome = await resolve_member(
        store, IdentityFactory.create(id="x", email=None), allow_link=True
    )

    assert outcome == Unauthorized(UnauthorizedReason.MISSING_EMAIL)
    assert store.updates == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_store_error_becomes_failed(store):
    error = StoreError("connection refused", table=FAMILY_MEMBERS_TABLE)
    store.fail_with = error

    outcome = await resolve_member(store, IdentityFactory.create(), allow_link=True)

    assert isinstance(outcome, Failed)
    assert outcome.error is error
    assert outcome_member(outcome) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_user_id_rows_fail(store):
    store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(user_id="dup"))
    store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(user_id="dup"))

    outcome = await resolve_member(store, IdentityFactory.create(id="dup"), allow_link=True)

    assert isinstance(outcome, Failed)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserved_domain_email_links(store):
    row = store.seed(
        FAMILY_MEMBERS_TABLE, MemberFactory.create(email="kid@family.local", user_id=None)
    )

    outcome = await resolve_member(
        store, IdentityFactory.create(id="k1", email="kid@family.local"), allow_link=True
    )

    assert isinstance(outcome, AutoLinked)
    assert outcome.member.id == row["id"]
