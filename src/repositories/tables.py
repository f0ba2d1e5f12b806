"""Column-set descriptors for every table the gateway can reach.

Table and column identifiers used in SQL text come only from these static
descriptors. Anything a caller passes as a column name is checked against
them before a statement is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from src.domain.errors import ValidationError

TEXT: tuple[type, ...] = (str,)
INTEGER: tuple[type, ...] = (int,)
FLAG: tuple[type, ...] = (bool, int)


@dataclass(frozen=True)
class Column:
    name: str
    types: tuple[type, ...] = TEXT
    nullable: bool = True

    def check(self, value: Any, table: str) -> None:
        if value is None:
            if not self.nullable:
                raise ValidationError(f"{table}.{self.name} cannot be null")
            return
        if isinstance(value, bool) and bool not in self.types:
            raise ValidationError(f"{table}.{self.name} does not accept booleans")
        if not isinstance(value, self.types):
            expected = "/".join(t.__name__ for t in self.types)
            raise ValidationError(
                f"{table}.{self.name} expects {expected}, got {type(value).__name__}"
            )


@dataclass(frozen=True)
class TableSpec:
    """Ordered, typed column set of one table.

    ``sortable`` is the allow-list for ``ORDER BY``; ``owner_column`` and
    ``public_column`` tell the visibility resolver how the table is shared.
    """

    name: str
    columns: tuple[Column, ...]
    primary_key: tuple[str, ...] = ("id",)
    sortable: frozenset[str] = field(default_factory=frozenset)
    owner_column: Optional[str] = None
    public_column: Optional[str] = None

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column in table spec {self.name}")
        known = set(names)
        for extra in (*self.primary_key, *self.sortable, self.owner_column, self.public_column):
            if extra is not None and extra not in known:
                raise ValueError(f"{self.name} spec references unknown column {extra}")

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def column(self, name: str) -> Column:
        for col in self.columns:
            if col.name == name:
                return col
        raise ValidationError(f"Unknown column {name!r} for table {self.name}")

    def check_values(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.column(key).check(value, self.name)

    def check_sortable(self, name: str) -> None:
        if name not in self.sortable:
            raise ValidationError(f"Cannot order {self.name} by {name!r}")


USERS = TableSpec(
    name="users",
    columns=(
        Column("id", nullable=False),
        Column("nickname"),
        Column("avatar_key"),
        Column("created_at"),
        Column("updated_at"),
    ),
    sortable=frozenset({"created_at"}),
)

GROUPS = TableSpec(
    name="user_groups",
    columns=(
        Column("id", nullable=False),
        Column("name"),
        Column("avatar_key"),
        Column("group_type", nullable=False),
        Column("created_at"),
        Column("updated_at"),
    ),
    sortable=frozenset({"created_at", "name"}),
)

MEMBERSHIPS = TableSpec(
    name="user_group_members",
    columns=(
        Column("group_id", nullable=False),
        Column("user_id", nullable=False),
        Column("role", nullable=False),
        Column("can_manage", FLAG, nullable=False),
        Column("joined_at"),
    ),
    primary_key=("group_id", "user_id"),
    sortable=frozenset({"joined_at"}),
)

RECIPES = TableSpec(
    name="recipes",
    columns=(
        Column("id", nullable=False),
        Column("user_id", nullable=False),
        Column("name", nullable=False),
        Column("description"),
        Column("cover_image_key"),
        Column("step_type", nullable=False),
        Column("steps"),
        Column("links"),
        Column("is_public", FLAG, nullable=False),
        Column("view_count", INTEGER, nullable=False),
        Column("like_count", INTEGER, nullable=False),
        Column("created_at"),
        Column("updated_at"),
    ),
    sortable=frozenset({"created_at", "view_count", "like_count"}),
    owner_column="user_id",
    public_column="is_public",
)

TAGS = TableSpec(
    name="tags",
    columns=(Column("name", nullable=False), Column("created_at")),
    primary_key=("name",),
    sortable=frozenset({"name"}),
)

RECIPE_TAGS = TableSpec(
    name="recipe_tags",
    columns=(Column("recipe_id", nullable=False), Column("tag_name", nullable=False)),
    primary_key=("recipe_id", "tag_name"),
    sortable=frozenset({"tag_name"}),
)

ORDERS = TableSpec(
    name="orders",
    columns=(
        Column("id", nullable=False),
        Column("user_id", nullable=False),
        Column("order_no", nullable=False),
        Column("target_time"),
        Column("status", nullable=False),
        Column("remark"),
        Column("created_at"),
    ),
    sortable=frozenset({"created_at", "target_time"}),
    owner_column="user_id",
)

ORDER_RECIPES = TableSpec(
    name="order_recipes",
    columns=(
        Column("order_id", nullable=False),
        Column("recipe_id", nullable=False),
        Column("quantity", INTEGER, nullable=False),
    ),
    primary_key=("order_id", "recipe_id"),
)

REVIEWS = TableSpec(
    name="order_reviews",
    columns=(
        Column("id", nullable=False),
        Column("order_id", nullable=False),
        Column("user_id", nullable=False),
        Column("rating", INTEGER),
        Column("content"),
        Column("images"),
        Column("created_at"),
        Column("updated_at"),
    ),
    sortable=frozenset({"created_at"}),
    owner_column="user_id",
)

ALL_TABLES: tuple[TableSpec, ...] = (
    USERS,
    GROUPS,
    MEMBERSHIPS,
    RECIPES,
    TAGS,
    RECIPE_TAGS,
    ORDERS,
    ORDER_RECIPES,
    REVIEWS,
)
