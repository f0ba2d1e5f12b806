from __future__ import annotations

from typing import Any, Iterable

from .store import RecordStore, Statement
from .tables import RECIPE_TAGS, TAGS


class RecipeReader:
    """Tag lookups that go beyond one table."""

    _TAG_USAGE_SQL = f"""
        SELECT t.name, COUNT(rt.recipe_id) AS recipe_count
        FROM {TAGS.name} t
        LEFT JOIN {RECIPE_TAGS.name} rt ON t.name = rt.tag_name
        GROUP BY t.name
        ORDER BY recipe_count DESC, t.name ASC
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def tags_of(self, recipe_ids: Iterable[str]) -> dict[str, list[str]]:
        """Tag names per recipe id, alphabetical. Ids without tags map to ``[]``."""
        ids = list(dict.fromkeys(recipe_ids))
        tags: dict[str, list[str]] = {rid: [] for rid in ids}
        if not ids:
            return tags
        placeholders = ", ".join("?" for _ in ids)
        rows = self._store.query(
            Statement(
                f"SELECT recipe_id, tag_name FROM {RECIPE_TAGS.name} "
                f"WHERE recipe_id IN ({placeholders}) ORDER BY tag_name ASC",
                tuple(ids),
            )
        )
        for row in rows:
            tags[row["recipe_id"]].append(row["tag_name"])
        return tags

    def tag_usage(self) -> list[dict[str, Any]]:
        return self._store.query(Statement(self._TAG_USAGE_SQL, ()))
