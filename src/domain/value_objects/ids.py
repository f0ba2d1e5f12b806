from typing import NewType

UserId = NewType("UserId", str)
GroupId = NewType("GroupId", str)
RecipeId = NewType("RecipeId", str)
OrderId = NewType("OrderId", str)
ReviewId = NewType("ReviewId", str)
