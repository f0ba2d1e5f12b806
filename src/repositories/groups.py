from __future__ import annotations

from typing import Any

from .store import RecordStore, Statement
from .tables import GROUPS, MEMBERSHIPS, USERS


class GroupReader:
    """Joined reads over groups, memberships and users."""

    _MY_GROUPS_SQL = f"""
        SELECT g.id, g.name, g.avatar_key, g.group_type, g.created_at, g.updated_at,
               m.role, m.can_manage, m.joined_at
        FROM {GROUPS.name} g
        INNER JOIN {MEMBERSHIPS.name} m ON g.id = m.group_id
        WHERE m.user_id = ?
        ORDER BY m.joined_at DESC, g.created_at DESC
    """

    # 'owner' sorts after 'member', so DESC puts the owner first.
    _MEMBERS_SQL = f"""
        SELECT m.group_id, m.user_id, m.role, m.can_manage, m.joined_at,
               u.nickname, u.avatar_key
        FROM {MEMBERSHIPS.name} m
        INNER JOIN {USERS.name} u ON m.user_id = u.id
        WHERE m.group_id = ?
        ORDER BY m.role DESC, m.joined_at ASC, m.user_id ASC
    """

    _OWNER_COUNT_SQL = (
        f"SELECT COUNT(*) AS count FROM {MEMBERSHIPS.name} WHERE group_id = ? AND role = 'owner'"
    )

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def groups_of(self, user_id: str) -> list[dict[str, Any]]:
        return self._store.query(Statement(self._MY_GROUPS_SQL, (user_id,)))

    def members_of(self, group_id: str) -> list[dict[str, Any]]:
        return self._store.query(Statement(self._MEMBERS_SQL, (group_id,)))

    def owner_count(self, group_id: str) -> int:
        row = self._store.query_one(Statement(self._OWNER_COUNT_SQL, (group_id,)))
        return int(row["count"]) if row else 0
