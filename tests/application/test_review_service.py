from __future__ import annotations

from collections.abc import Callable

import pytest

from src.application.commands import AddMember, CreateGroup, CreateOrder, CreateReview
from src.application.context import RequestContext
from src.application.services.group_service import GroupService
from src.application.services.order_service import OrderService
from src.application.services.review_service import ReviewService
from src.domain.errors import AuthorizationError, ConflictError, NotFoundError
from src.repositories.sqlite.store_sqlite import RecordStoreSqlite

MakeUser = Callable[..., RequestContext]


@pytest.fixture
def order_id(store: RecordStoreSqlite, make_user: MakeUser) -> str:
    """An order by ann, who shares a group with bob. cat is an outsider."""
    ann = make_user("ann", "Ann")
    make_user("bob", "Bob")
    make_user("cat")
    groups = GroupService(store)
    gid = groups.create_group(ann, CreateGroup(name="Home")).id
    groups.add_member(ann, AddMember(group_id=gid, target_user_id="bob"))
    return OrderService(store).create(ann, CreateOrder()).id


def test_group_member_reviews_once(store: RecordStoreSqlite, order_id: str) -> None:
    bob = RequestContext.for_user("bob")
    svc = ReviewService(store)
    review = svc.create(bob, CreateReview(order_id=order_id, rating=5, content="great"))
    assert review.user_id == "bob" and review.rating == 5

    with pytest.raises(ConflictError):
        svc.create(bob, CreateReview(order_id=order_id, rating=4))


def test_outsider_cannot_review_or_read(store: RecordStoreSqlite, order_id: str) -> None:
    cat = RequestContext.for_user("cat")
    svc = ReviewService(store)
    with pytest.raises(AuthorizationError):
        svc.create(cat, CreateReview(order_id=order_id, rating=3))
    with pytest.raises(AuthorizationError):
        svc.list(cat, order_id)
    with pytest.raises(NotFoundError):
        svc.create(cat, CreateReview(order_id="missing"))


def test_list_includes_author_nickname(store: RecordStoreSqlite, order_id: str) -> None:
    svc = ReviewService(store)
    svc.create(RequestContext.for_user("ann"), CreateReview(order_id=order_id, rating=4))
    svc.create(RequestContext.for_user("bob"), CreateReview(order_id=order_id))

    reviews = svc.list(RequestContext.for_user("ann"), order_id)
    assert {r.user_nickname for r in reviews} == {"Ann", "Bob"}
    assert {r.rating for r in reviews} == {4, None}


def test_delete_author_only(store: RecordStoreSqlite, order_id: str) -> None:
    svc = ReviewService(store)
    bob = RequestContext.for_user("bob")
    review = svc.create(bob, CreateReview(order_id=order_id, rating=2))

    with pytest.raises(AuthorizationError):
        svc.delete(RequestContext.for_user("ann"), review.id)
    assert svc.delete(bob, review.id) == 1
    with pytest.raises(NotFoundError):
        svc.delete(bob, review.id)
    # deleting frees the slot for a new review
    svc.create(bob, CreateReview(order_id=order_id, rating=3))
