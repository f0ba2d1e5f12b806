from __future__ import annotations

from typing import Any, Optional, Sequence

import pytest

from src.domain.errors import AuthenticationError, ValidationError
from src.repositories.gateway import TableGateway
from src.repositories.sqlite.store_sqlite import RecordStoreSqlite
from src.repositories.store import ExecResult, RecordStore, Statement
from src.repositories.tables import GROUPS, MEMBERSHIPS, ORDERS, RECIPES, USERS, TAGS
from src.repositories.visibility import GroupVisibilityResolver


@pytest.fixture
def world(store: RecordStoreSqlite) -> RecordStoreSqlite:
    """ann and bob share g1 and g2; bob and cat share g3; dan is alone."""
    TableGateway(store, USERS).create_many([{"id": u} for u in ("ann", "bob", "cat", "dan")])
    TableGateway(store, GROUPS).create_many([{"id": g, "group_type": "family"} for g in ("g1", "g2", "g3")])
    TableGateway(store, MEMBERSHIPS).create_many(
        [
            {"group_id": "g1", "user_id": "ann", "role": "owner", "can_manage": 1},
            {"group_id": "g1", "user_id": "bob", "role": "member", "can_manage": 0},
            {"group_id": "g2", "user_id": "bob", "role": "owner", "can_manage": 1},
            {"group_id": "g2", "user_id": "ann", "role": "member", "can_manage": 0},
            {"group_id": "g3", "user_id": "cat", "role": "owner", "can_manage": 1},
            {"group_id": "g3", "user_id": "bob", "role": "member", "can_manage": 0},
        ]
    )
    TableGateway(store, RECIPES).create_many(
        [
            {"id": f"{owner}-{kind}", "user_id": owner, "name": kind, "step_type": "custom", "is_public": flag}
            for owner in ("ann", "bob", "cat", "dan")
            for kind, flag in (("pub", 1), ("priv", 0))
        ]
    )
    return store


class _NoQueryStore(RecordStore):
    def query(self, stmt: Statement) -> list[dict[str, Any]]:
        raise AssertionError(f"unexpected query: {stmt.sql}")

    def query_one(self, stmt: Statement) -> Optional[dict[str, Any]]:
        raise AssertionError(f"unexpected query: {stmt.sql}")

    def execute(self, stmt: Statement) -> ExecResult:
        raise AssertionError(f"unexpected write: {stmt.sql}")

    def execute_batch(self, stmts: Sequence[Statement]) -> list[ExecResult]:
        raise AssertionError("unexpected batch")


def test_can_access_self_without_query() -> None:
    resolver = GroupVisibilityResolver(_NoQueryStore())
    assert resolver.can_access("dan", "dan")
    assert resolver.can_access("nobody", "nobody")
    with pytest.raises(AssertionError):
        resolver.can_access("dan", "ann")


def test_can_access_is_one_hop_and_symmetric(world: RecordStoreSqlite) -> None:
    resolver = GroupVisibilityResolver(world)
    assert resolver.can_access("ann", "bob") and resolver.can_access("bob", "ann")
    assert resolver.can_access("bob", "cat") and resolver.can_access("cat", "bob")
    assert not resolver.can_access("ann", "cat")
    assert not resolver.can_access("cat", "ann")
    assert not resolver.can_access("dan", "ann")


def test_visibility_fragment_shape() -> None:
    frag = GroupVisibilityResolver(_NoQueryStore()).visibility_fragment("me", ORDERS)
    assert frag.params == ("me", "me", "me")
    assert frag.sql.startswith("(user_id = ? OR user_id IN (SELECT m2.user_id FROM")
    assert " JOIN " in frag.sql and "IN (SELECT" in frag.sql


def test_visibility_fragment_owner_column_must_belong_to_table() -> None:
    resolver = GroupVisibilityResolver(_NoQueryStore())
    with pytest.raises(ValidationError):
        resolver.visibility_fragment("me", RECIPES, "user_id = 1 OR 1")
    with pytest.raises(ValidationError):
        resolver.visibility_fragment("me", TAGS)


def test_listing_counts_each_row_once(world: RecordStoreSqlite) -> None:
    # ann and bob share two groups; bob's rows must not repeat.
    resolver = GroupVisibilityResolver(world)
    rows = TableGateway(world, RECIPES).find_many(extra=resolver.visibility_fragment("ann", RECIPES))
    ids = sorted(r["id"] for r in rows)
    assert ids == ["ann-priv", "ann-pub", "bob-priv", "bob-pub"]


def test_listing_fragment_for_public_table(world: RecordStoreSqlite) -> None:
    resolver = GroupVisibilityResolver(world)
    recipes = TableGateway(world, RECIPES)

    anon = {r["id"] for r in recipes.find_many(extra=resolver.listing_fragment(RECIPES, None))}
    assert anon == {"ann-pub", "bob-pub", "cat-pub", "dan-pub"}

    as_ann = {r["id"] for r in recipes.find_many(extra=resolver.listing_fragment(RECIPES, "ann"))}
    assert as_ann == anon | {"ann-priv", "bob-priv"}

    as_bob = recipes.count(extra=resolver.listing_fragment(RECIPES, "bob"))
    assert as_bob == 4 + 3


def test_listing_fragment_without_public_column(world: RecordStoreSqlite) -> None:
    resolver = GroupVisibilityResolver(world)
    with pytest.raises(AuthenticationError):
        resolver.listing_fragment(ORDERS, None)
    frag = resolver.listing_fragment(ORDERS, "ann")
    assert frag.params == ("ann", "ann", "ann")
    with pytest.raises(ValidationError):
        resolver.listing_fragment(TAGS, "ann")


def test_can_view_matches_listing(world: RecordStoreSqlite) -> None:
    resolver = GroupVisibilityResolver(world)
    recipes = TableGateway(world, RECIPES)
    for requester in ("ann", "bob", "cat", "dan", None):
        listed = {r["id"] for r in recipes.find_many(extra=resolver.listing_fragment(RECIPES, requester))}
        for row in recipes.find_many():
            assert resolver.can_view(RECIPES, row, requester) == (row["id"] in listed)


def test_membership_change_takes_effect_immediately(world: RecordStoreSqlite) -> None:
    resolver = GroupVisibilityResolver(world)
    assert not resolver.can_access("dan", "cat")
    TableGateway(world, MEMBERSHIPS).create(
        {"group_id": "g3", "user_id": "dan", "role": "member", "can_manage": 0}
    )
    assert resolver.can_access("dan", "cat")
    TableGateway(world, MEMBERSHIPS).delete({"group_id": "g3", "user_id": "dan"})
    assert not resolver.can_access("dan", "cat")
