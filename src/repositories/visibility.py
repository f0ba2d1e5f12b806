"""Group-shared visibility.

Two users see each other's resources when they are the same user or share at
least one group. The relation is one hop only: sharing a group with someone
who shares a different group with a third user grants nothing on the third
user's resources.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from src.domain.errors import AuthenticationError, ValidationError

from .query_builder import Fragment
from .store import RecordStore, Statement
from .tables import MEMBERSHIPS, TableSpec

# Users sharing any group with the requester, the requester excluded.
_PEERS_SQL = (
    f"SELECT m2.user_id FROM {MEMBERSHIPS.name} m1 "
    f"INNER JOIN {MEMBERSHIPS.name} m2 ON m1.group_id = m2.group_id "
    "WHERE m1.user_id = ? AND m2.user_id != ?"
)

_SHARED_GROUP_SQL = (
    f"SELECT 1 FROM {MEMBERSHIPS.name} m1 "
    f"INNER JOIN {MEMBERSHIPS.name} m2 ON m1.group_id = m2.group_id "
    "WHERE m1.user_id = ? AND m2.user_id = ? LIMIT 1"
)


class GroupVisibilityResolver:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def shares_group(self, user_a: str, user_b: str) -> bool:
        row = self._store.query_one(Statement(_SHARED_GROUP_SQL, (user_a, user_b)))
        return row is not None

    def can_access(self, requester_id: str, owner_id: str) -> bool:
        """Direct ownership, or any common group. Equality needs no query."""
        if requester_id == owner_id:
            return True
        return self.shares_group(requester_id, owner_id)

    def visibility_fragment(
        self, requester_id: str, spec: TableSpec, owner_column: Optional[str] = None
    ) -> Fragment:
        """WHERE-fragment selecting rows of ``spec`` owned by the requester or a group peer.

        ``owner_column`` defaults to ``spec.owner_column`` and must be one of
        the table's columns. Peers are matched with ``IN (SELECT ...)`` so a
        peer sharing several groups with the requester cannot multiply outer
        rows.
        """
        owner_column = owner_column or spec.owner_column
        if owner_column is None:
            raise ValidationError(f"{spec.name} has no owner column to filter on")
        spec.column(owner_column)
        return Fragment(
            f"({owner_column} = ? OR {owner_column} IN ({_PEERS_SQL}))",
            (requester_id, requester_id, requester_id),
        )

    def listing_fragment(self, spec: TableSpec, requester_id: Optional[str]) -> Fragment:
        """Visibility predicate for list endpoints over ``spec``."""
        if spec.owner_column is None:
            raise ValidationError(f"{spec.name} has no owner column to filter on")
        public = f"{spec.public_column} = 1" if spec.public_column else None
        if requester_id is None:
            if public is None:
                raise AuthenticationError(f"Listing {spec.name} requires a signed-in user")
            return Fragment(public)
        shared = self.visibility_fragment(requester_id, spec)
        if public is None:
            return shared
        return Fragment(f"({public} OR {shared.sql})", shared.params)

    def can_view(self, spec: TableSpec, row: Mapping[str, Any], requester_id: Optional[str]) -> bool:
        """Point-check counterpart of :meth:`listing_fragment` for a fetched row."""
        if spec.owner_column is None:
            raise ValidationError(f"{spec.name} has no owner column to check")
        if spec.public_column and bool(row.get(spec.public_column)):
            return True
        if requester_id is None:
            return False
        return self.can_access(requester_id, str(row[spec.owner_column]))
