from __future__ import annotations

from typing import Any, Optional

from src.application.commands import CreateReview
from src.application.context import RequestContext
from src.application.services.common import new_id, require_found
from src.domain.entities.review import Review
from src.domain.errors import AuthorizationError, ConflictError, NotFoundError
from src.logging_config import get_logger
from src.repositories.gateway import TableGateway
from src.repositories.orders import OrderReader
from src.repositories.store import RecordStore
from src.repositories.tables import ORDERS, REVIEWS
from src.repositories.visibility import GroupVisibilityResolver

logger = get_logger("services.reviews")


class ReviewService:
    """One review per (order, user); anyone who can see the order may review it."""

    def __init__(self, store: RecordStore, resolver: Optional[GroupVisibilityResolver] = None) -> None:
        self._resolver = resolver or GroupVisibilityResolver(store)
        self._orders = TableGateway(store, ORDERS)
        self._reviews = TableGateway(store, REVIEWS)
        self._reader = OrderReader(store)

    def _visible_order(self, user_id: str, order_id: str, action: str) -> dict[str, Any]:
        order = require_found(self._orders.find_by_id(order_id), "Order")
        if not self._resolver.can_access(user_id, order["user_id"]):
            raise AuthorizationError(f"No permission to {action} this order")
        return order

    def create(self, ctx: RequestContext, cmd: CreateReview) -> Review:
        user_id = ctx.require_user()
        self._visible_order(user_id, cmd.order_id, "review")
        if self._reviews.exists({"order_id": cmd.order_id, "user_id": user_id}):
            raise ConflictError("Order already reviewed")

        review_id = new_id()
        # A racing second review fails on UNIQUE(order_id, user_id) with ConflictError.
        self._reviews.create(
            {
                "id": review_id,
                "order_id": cmd.order_id,
                "user_id": user_id,
                "rating": cmd.rating,
                "content": cmd.content,
                "images": cmd.images,
            }
        )
        logger.info(
            "Review created",
            extra={"review_id": review_id, "order_id": cmd.order_id, "request_id": ctx.request_id},
        )
        return Review.model_validate(require_found(self._reviews.find_by_id(review_id), "Review"))

    def delete(self, ctx: RequestContext, review_id: str) -> int:
        user_id = ctx.require_user()
        review = require_found(self._reviews.find_by_id(review_id), "Review")
        if review["user_id"] != user_id:
            raise AuthorizationError("No permission to delete this review")
        result = self._reviews.delete({"id": review_id, "user_id": user_id})
        if result.changed_count == 0:
            raise NotFoundError("Review not found")
        return result.changed_count

    def list(self, ctx: RequestContext, order_id: str) -> list[Review]:
        user_id = ctx.require_user()
        self._visible_order(user_id, order_id, "view reviews of")
        return [Review.model_validate(row) for row in self._reader.reviews(order_id)]
