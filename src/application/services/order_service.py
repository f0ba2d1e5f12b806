from __future__ import annotations

import dataclasses
import secrets
from datetime import datetime, timezone
from typing import Optional

from src.application.commands import CreateOrder, EditOrderStatus, ListOrders, OrderRecipeItem
from src.application.context import RequestContext
from src.application.services.common import new_id, require_found
from src.config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.domain.entities.order import Order, OrderDetail, OrderLine
from src.domain.errors import AuthorizationError, ConflictError, NotFoundError
from src.domain.value_objects.enums import OrderStatus
from src.logging_config import get_logger
from src.repositories.gateway import Page, TableGateway
from src.repositories.orders import OrderReader
from src.repositories.query_builder import OrderBy
from src.repositories.store import RecordStore
from src.repositories.tables import ORDER_RECIPES, ORDERS, RECIPES
from src.repositories.visibility import GroupVisibilityResolver

logger = get_logger("services.orders")

ORDER_NO_ATTEMPTS = 3


def generate_order_no(now: datetime | None = None) -> str:
    """``ORD`` + UTC ``yyyyMMddHHmmss`` + three random digits."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"ORD{moment:%Y%m%d%H%M%S}{secrets.randbelow(1000):03d}"


def merge_lines(items: list[OrderRecipeItem]) -> dict[str, int]:
    """Quantity per recipe id; repeated recipes are summed."""
    merged: dict[str, int] = {}
    for item in items:
        merged[item.recipe_id] = merged.get(item.recipe_id, 0) + item.quantity
    return merged


class OrderService:
    """Orders are visible to their owner and the owner's group peers; only the owner edits."""

    def __init__(
        self,
        store: RecordStore,
        resolver: Optional[GroupVisibilityResolver] = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._store = store
        self._resolver = resolver or GroupVisibilityResolver(store)
        self._orders = TableGateway(store, ORDERS, max_page_size=max_page_size)
        self._lines = TableGateway(store, ORDER_RECIPES)
        self._recipes = TableGateway(store, RECIPES)
        self._reader = OrderReader(store)
        self._default_page_size = default_page_size

    def _check_recipes(self, user_id: str, recipe_ids: list[str]) -> None:
        for recipe_id in recipe_ids:
            row = self._recipes.find_by_id(recipe_id)
            if row is None:
                raise NotFoundError(f"Recipe {recipe_id} not found")
            if not self._resolver.can_view(RECIPES, row, user_id):
                raise AuthorizationError(f"No permission to order recipe {recipe_id}")

    def create(self, ctx: RequestContext, cmd: CreateOrder) -> Order:
        """Insert the order and its recipe lines as one batch.

        A clash on the generated ``order_no`` is retried with a fresh number.
        """
        user_id = ctx.require_user()
        lines = merge_lines(cmd.recipes)
        self._check_recipes(user_id, list(lines))

        for attempt in range(1, ORDER_NO_ATTEMPTS + 1):
            order_id = new_id()
            order_no = generate_order_no()
            stmts = [
                self._orders.insert_statement(
                    {
                        "id": order_id,
                        "user_id": user_id,
                        "order_no": order_no,
                        "target_time": cmd.target_time,
                        "status": OrderStatus.PENDING.value,
                        "remark": cmd.remark,
                    }
                )
            ]
            stmts.extend(
                self._lines.insert_statement(
                    {"order_id": order_id, "recipe_id": recipe_id, "quantity": quantity}
                )
                for recipe_id, quantity in lines.items()
            )
            try:
                self._store.execute_batch(stmts)
            except ConflictError:
                if attempt == ORDER_NO_ATTEMPTS:
                    raise
                logger.warning("Order number clash, retrying", extra={"order_no": order_no})
                continue
            break

        logger.info(
            "Order created",
            extra={
                "order_id": order_id,
                "order_no": order_no,
                "user_id": user_id,
                "request_id": ctx.request_id,
            },
        )
        return Order.model_validate(require_found(self._reader.order(order_id), "Order"))

    def edit_status(self, ctx: RequestContext, cmd: EditOrderStatus) -> Order:
        user_id = ctx.require_user()
        row = require_found(self._orders.find_by_id(cmd.id), "Order")
        if row["user_id"] != user_id:
            raise AuthorizationError("No permission to edit this order")
        result = self._orders.update({"id": cmd.id}, {"status": cmd.status.value})
        if result.changed_count == 0:
            raise NotFoundError("Order not found")
        return Order.model_validate(require_found(self._reader.order(cmd.id), "Order"))

    def list(self, ctx: RequestContext, cmd: ListOrders) -> Page[Order]:
        user_id = ctx.require_user()
        where = {"status": cmd.status.value} if cmd.status else None
        page = self._orders.paginate(
            where,
            extra=self._resolver.listing_fragment(ORDERS, user_id),
            order_by=OrderBy.parse(cmd.order_by, cmd.order.value),
            page=cmd.page,
            page_size=cmd.page_size or self._default_page_size,
        )
        return dataclasses.replace(page, items=[Order.model_validate(row) for row in page.items])

    def detail(self, ctx: RequestContext, order_id: str) -> OrderDetail:
        user_id = ctx.require_user()
        row = require_found(self._reader.order(order_id), "Order")
        if not self._resolver.can_access(user_id, row["user_id"]):
            raise AuthorizationError("No permission to view this order")
        return OrderDetail(
            order=Order.model_validate(row),
            recipes=[OrderLine.model_validate(line) for line in self._reader.lines(order_id)],
        )
