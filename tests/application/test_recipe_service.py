from __future__ import annotations

from collections.abc import Callable

import pytest

from src.application.commands import AddMember, CreateGroup, CreateRecipe, EditRecipe, ListRecipes, RemoveMember
from src.application.context import RequestContext
from src.application.services.group_service import GroupService
from src.application.services.recipe_service import RecipeService, normalize_tags
from src.domain.errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from src.domain.value_objects.enums import SortDirection, StepType
from src.repositories.sqlite.store_sqlite import RecordStoreSqlite
from src.repositories.store import Statement

MakeUser = Callable[..., RequestContext]


def _recipe(svc: RecipeService, ctx: RequestContext, name: str, **kwargs: object) -> str:
    return svc.create(ctx, CreateRecipe(name=name, step_type=StepType.CUSTOM, **kwargs)).id  # type: ignore[arg-type]


def test_normalize_tags() -> None:
    assert normalize_tags([" spicy", "", "quick", "spicy ", "  "]) == ["spicy", "quick"]


def test_create_with_tags(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann = make_user("ann")
    svc = RecipeService(store)
    recipe = svc.create(ann, CreateRecipe(name="Soup", step_type=StepType.LINK, tags=["hot", "quick", "hot"]))
    assert recipe.user_id == "ann" and recipe.is_public
    assert recipe.tags == ["hot", "quick"]
    assert recipe.step_type is StepType.LINK

    # second recipe reuses the existing tag rows
    _recipe(svc, ann, "Stew", tags=["hot"])
    assert svc.tags() == ["hot", "quick"]
    usage = {t.name: t.recipe_count for t in svc.tag_usage()}
    assert usage == {"hot": 2, "quick": 1}


def test_create_requires_sign_in(store: RecordStoreSqlite) -> None:
    with pytest.raises(AuthenticationError):
        RecipeService(store).create(RequestContext.anonymous(), CreateRecipe(name="x", step_type=StepType.CUSTOM))


def test_private_recipe_visible_through_shared_group(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann, bob = make_user("ann"), make_user("bob")
    recipes = RecipeService(store)
    groups = GroupService(store)
    rid = _recipe(recipes, ann, "Secret", is_public=False)

    with pytest.raises(AuthorizationError):
        recipes.detail(bob, rid)
    assert recipes.list(bob, ListRecipes()).total == 0

    gid = groups.create_group(ann, CreateGroup(name="Home")).id
    groups.add_member(ann, AddMember(group_id=gid, target_user_id="bob"))
    assert recipes.detail(bob, rid).name == "Secret"
    assert [r.id for r in recipes.list(bob, ListRecipes()).items] == [rid]

    groups.remove_member(ann, RemoveMember(group_id=gid, target_user_id="bob"))
    with pytest.raises(AuthorizationError):
        recipes.detail(bob, rid)


def test_anonymous_list_sees_public_only(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann = make_user("ann")
    svc = RecipeService(store)
    pub = _recipe(svc, ann, "Open")
    priv = _recipe(svc, ann, "Closed", is_public=False)

    anon = RequestContext.anonymous()
    assert [r.id for r in svc.list(anon, ListRecipes()).items] == [pub]
    assert svc.detail(anon, pub).id == pub
    with pytest.raises(AuthorizationError):
        svc.detail(anon, priv)
    assert {r.id for r in svc.list(ann, ListRecipes()).items} == {pub, priv}


def test_list_search_order_and_pages(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann = make_user("ann")
    svc = RecipeService(store, default_page_size=2)
    ids = {name: _recipe(svc, ann, name, tags=[name.lower()]) for name in ("Tomato soup", "Fish soup", "Cake", "100% juice")}
    for views, name in enumerate(("Tomato soup", "Fish soup", "Cake", "100% juice")):
        store.execute(Statement("UPDATE recipes SET view_count = ? WHERE id = ?", (views, ids[name])))

    soups = svc.list(ann, ListRecipes(name="soup", order_by="view_count", order=SortDirection.DESC))
    assert [r.name for r in soups.items] == ["Fish soup", "Tomato soup"]
    assert soups.total == 2 and soups.page_size == 2
    assert soups.items[0].tags == ["fish soup"]

    # '%' in the search text matches literally
    assert [r.name for r in svc.list(ann, ListRecipes(name="0%")).items] == ["100% juice"]

    page2 = svc.list(ann, ListRecipes(page=2, order_by="view_count", order=SortDirection.ASC))
    assert [r.name for r in page2.items] == ["Cake", "100% juice"]
    assert page2.total_pages == 2

    with pytest.raises(ValidationError):
        svc.list(ann, ListRecipes(page_size=500))


def test_edit_replaces_tags_and_checks_owner(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann, bob = make_user("ann"), make_user("bob")
    svc = RecipeService(store)
    rid = _recipe(svc, ann, "Soup", tags=["hot", "quick"])

    with pytest.raises(AuthorizationError):
        svc.edit(bob, EditRecipe(id=rid, name="Mine"))
    with pytest.raises(NotFoundError):
        svc.edit(ann, EditRecipe(id="missing", name="x"))

    edited = svc.edit(ann, EditRecipe(id=rid, tags=["cold"]))
    assert edited.tags == ["cold"] and edited.name == "Soup"

    edited = svc.edit(ann, EditRecipe(id=rid, description="thick", is_public=False))
    assert edited.description == "thick" and not edited.is_public
    assert edited.tags == ["cold"]

    cleared = svc.edit(ann, EditRecipe(id=rid, tags=[]))
    assert cleared.tags == []


def test_delete_is_owner_only(store: RecordStoreSqlite, make_user: MakeUser) -> None:
    ann, bob = make_user("ann"), make_user("bob")
    svc = RecipeService(store)
    rid = _recipe(svc, ann, "Soup", tags=["hot"])

    with pytest.raises(AuthorizationError):
        svc.delete(bob, rid)
    assert svc.delete(ann, rid) == 1
    with pytest.raises(NotFoundError):
        svc.detail(ann, rid)
    links = store.query_one(Statement("SELECT COUNT(*) AS n FROM recipe_tags"))
    assert links == {"n": 0}
    # the tag itself survives with zero uses
    assert [(t.name, t.recipe_count) for t in svc.tag_usage()] == [("hot", 0)]
