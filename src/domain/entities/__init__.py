from .group import Group, GroupDetail, GroupMember, Membership, MyGroup
from .order import Order, OrderDetail, OrderLine
from .recipe import Recipe, TagUsage
from .review import Review
from .user import User

__all__ = [
    "Group",
    "GroupDetail",
    "GroupMember",
    "Membership",
    "MyGroup",
    "Order",
    "OrderDetail",
    "OrderLine",
    "Recipe",
    "Review",
    "TagUsage",
    "User",
]
