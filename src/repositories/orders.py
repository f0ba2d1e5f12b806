from __future__ import annotations

from typing import Any, Optional

from .store import RecordStore, Statement
from .tables import ORDER_RECIPES, ORDERS, RECIPES, REVIEWS, USERS


class OrderReader:
    """Joined reads for orders, their recipe lines and their reviews."""

    _ORDER_SQL = f"""
        SELECT o.id, o.user_id, o.order_no, o.target_time, o.status, o.remark, o.created_at,
               u.nickname AS user_nickname, u.avatar_key AS user_avatar_key
        FROM {ORDERS.name} o
        LEFT JOIN {USERS.name} u ON o.user_id = u.id
        WHERE o.id = ?
    """

    _LINES_SQL = f"""
        SELECT ol.order_id, ol.recipe_id, ol.quantity,
               r.name AS recipe_name,
               r.description AS recipe_description,
               r.cover_image_key AS recipe_cover_image_key,
               r.step_type AS recipe_step_type
        FROM {ORDER_RECIPES.name} ol
        INNER JOIN {RECIPES.name} r ON ol.recipe_id = r.id
        WHERE ol.order_id = ?
        ORDER BY r.name ASC
    """

    _REVIEWS_SQL = f"""
        SELECT rv.id, rv.order_id, rv.user_id, rv.rating, rv.content, rv.images,
               rv.created_at, rv.updated_at,
               u.nickname AS user_nickname, u.avatar_key AS user_avatar_key
        FROM {REVIEWS.name} rv
        LEFT JOIN {USERS.name} u ON rv.user_id = u.id
        WHERE rv.order_id = ?
        ORDER BY rv.created_at DESC, rv.id ASC
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def order(self, order_id: str) -> Optional[dict[str, Any]]:
        return self._store.query_one(Statement(self._ORDER_SQL, (order_id,)))

    def lines(self, order_id: str) -> list[dict[str, Any]]:
        return self._store.query(Statement(self._LINES_SQL, (order_id,)))

    def reviews(self, order_id: str) -> list[dict[str, Any]]:
        return self._store.query(Statement(self._REVIEWS_SQL, (order_id,)))
