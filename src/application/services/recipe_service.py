from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Optional

from src.application.commands import CreateRecipe, EditRecipe, ListRecipes
from src.application.context import RequestContext
from src.application.services.common import new_id, require_found, utc_timestamp
from src.config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.domain.entities.recipe import Recipe, TagUsage
from src.domain.errors import AuthorizationError, NotFoundError
from src.logging_config import get_logger
from src.repositories.gateway import Page, TableGateway
from src.repositories.query_builder import OrderBy, contains
from src.repositories.recipes import RecipeReader
from src.repositories.store import RecordStore, Statement
from src.repositories.tables import RECIPE_TAGS, RECIPES, TAGS
from src.repositories.visibility import GroupVisibilityResolver

logger = get_logger("services.recipes")


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping the caller's order."""
    seen: dict[str, None] = {}
    for tag in tags:
        name = tag.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


class RecipeService:
    """Recipes are public, or private to their owner and the owner's group peers."""

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
        self._recipes = TableGateway(store, RECIPES, max_page_size=max_page_size)
        self._tags = TableGateway(store, TAGS)
        self._recipe_tags = TableGateway(store, RECIPE_TAGS)
        self._reader = RecipeReader(store)
        self._default_page_size = default_page_size

    def _tag_statements(self, recipe_id: str, tags: list[str]) -> list[Statement]:
        stmts: list[Statement] = []
        for name in tags:
            stmts.append(self._tags.insert_statement({"name": name}, ignore_conflicts=True))
            stmts.append(self._recipe_tags.insert_statement({"recipe_id": recipe_id, "tag_name": name}))
        return stmts

    def _owned(self, ctx: RequestContext, recipe_id: str, action: str) -> dict[str, Any]:
        user_id = ctx.require_user()
        row = require_found(self._recipes.find_by_id(recipe_id), "Recipe")
        if row["user_id"] != user_id:
            raise AuthorizationError(f"No permission to {action} this recipe")
        return row

    def _with_tags(self, rows: list[dict[str, Any]]) -> list[Recipe]:
        tags = self._reader.tags_of(row["id"] for row in rows)
        return [Recipe.model_validate({**row, "tags": tags[row["id"]]}) for row in rows]

    # ── operations ────────────────────────────────────────

    def create(self, ctx: RequestContext, cmd: CreateRecipe) -> Recipe:
        user_id = ctx.require_user()
        recipe_id = new_id()
        stmts = [
            self._recipes.insert_statement(
                {
                    "id": recipe_id,
                    "user_id": user_id,
                    "name": cmd.name,
                    "description": cmd.description,
                    "cover_image_key": cmd.cover_image_key,
                    "step_type": cmd.step_type.value,
                    "steps": cmd.steps,
                    "links": cmd.links,
                    "is_public": cmd.is_public,
                }
            )
        ]
        stmts.extend(self._tag_statements(recipe_id, normalize_tags(cmd.tags)))
        self._store.execute_batch(stmts)
        logger.info(
            "Recipe created",
            extra={"recipe_id": recipe_id, "user_id": user_id, "request_id": ctx.request_id},
        )
        return self.detail(ctx, recipe_id)

    def list(self, ctx: RequestContext, cmd: ListRecipes) -> Page[Recipe]:
        """Visible recipes, one page at a time.

        Anonymous callers see public recipes only; signed-in callers also see
        private recipes of their own and of anyone they share a group with.
        """
        visible = self._resolver.listing_fragment(RECIPES, ctx.subject_id)
        if cmd.name:
            visible = visible.and_(contains(RECIPES, "name", cmd.name))
        page = self._recipes.paginate(
            extra=visible,
            order_by=OrderBy.parse(cmd.order_by, cmd.order.value),
            page=cmd.page,
            page_size=cmd.page_size or self._default_page_size,
        )
        return dataclasses.replace(page, items=self._with_tags(page.items))

    def detail(self, ctx: RequestContext, recipe_id: str) -> Recipe:
        row = require_found(self._recipes.find_by_id(recipe_id), "Recipe")
        if not self._resolver.can_view(RECIPES, row, ctx.subject_id):
            raise AuthorizationError("No permission to view this recipe")
        return self._with_tags([row])[0]

    def edit(self, ctx: RequestContext, cmd: EditRecipe) -> Recipe:
        """Update columns and, when ``tags`` is sent, replace the tag set in the same batch."""
        self._owned(ctx, cmd.id, "edit")
        data = cmd.changes()
        data["updated_at"] = utc_timestamp()
        stmts = [self._recipes.update_statement({"id": cmd.id}, data)]
        if cmd.tags is not None:
            stmts.append(self._recipe_tags.delete_statement({"recipe_id": cmd.id}))
            stmts.extend(self._tag_statements(cmd.id, normalize_tags(cmd.tags)))
        results = self._store.execute_batch(stmts)
        if results[0].rowcount == 0:
            raise NotFoundError("Recipe not found")
        return self.detail(ctx, cmd.id)

    def delete(self, ctx: RequestContext, recipe_id: str) -> int:
        user_id = ctx.require_user()
        self._owned(ctx, recipe_id, "delete")
        result = self._recipes.delete({"id": recipe_id, "user_id": user_id})
        if result.changed_count == 0:
            raise NotFoundError("Recipe not found")
        logger.info(
            "Recipe deleted",
            extra={"recipe_id": recipe_id, "user_id": user_id, "request_id": ctx.request_id},
        )
        return result.changed_count

    def tags(self) -> list[str]:
        return [row["name"] for row in self._tags.find_many(order_by=OrderBy("name"))]

    def tag_usage(self) -> list[TagUsage]:
        return [TagUsage.model_validate(row) for row in self._reader.tag_usage()]
