"""Menu data models.

These models describe a menu at three stages: as extracted from photos by the
vision model (`ExtractedMenu`), after reconciliation with caller overrides
(`FinalMenu`), and as persisted in DynamoDB (`Menu`).

Extracted content is carried as the model returned it. `MenuItem` and
`MenuCategory` keep unknown keys and never coerce values; the only typed
guarantee is a finite numeric price. The stricter `EditedMenuItem` and
`EditedMenuCategory` apply to menus that users send through the API.
"""

import json
import math
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)


def is_json_number(value: Any) -> bool:
    """Whether a parsed JSON value is a finite number.

    bool is an int subclass but never a JSON number, and an overflowing
    literal such as 1e400 parses to inf.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_dynamodb_value(value: Any) -> Any:
    """Convert floats inside a JSON-compatible value to Decimal for boto3."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def from_dynamodb_value(value: Any) -> Any:
    """Convert Decimals returned by boto3 back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [from_dynamodb_value(v) for v in value]
    if isinstance(value, dict):
        return {k: from_dynamodb_value(v) for k, v in value.items()}
    return value


class MenuItem(BaseModel):
    """A single dish on a menu, as read from the photos."""

    model_config = ConfigDict(extra="allow")

    id: Any = Field(..., description="Item identifier, any truthy value")
    name: Any = Field(..., description="Item name")
    description: Any = Field(None, description="Item description")
    price: StrictInt | StrictFloat = Field(..., description="Item price as a number")
    is_vegetarian: Any = Field(default=False, description="Whether the item is vegetarian")
    image_url: Any = Field(None, description="URL to item image")

    @field_validator("price", mode="before")
    @classmethod
    def validate_price_is_number(cls, v: Any) -> Any:
        """Reject strings, booleans and non-finite values; prices are never coerced."""
        if not is_json_number(v):
            raise ValueError("price must be a finite number")
        return v


class MenuCategory(BaseModel):
    """A named group of menu items, in menu order."""

    model_config = ConfigDict(extra="allow")

    category: Any = Field(..., description="Category name")
    items: list[MenuItem] = Field(default_factory=list, description="Items in display order")


class EditedMenuItem(MenuItem):
    """A menu item sent by a user editing a stored menu."""

    model_config = ConfigDict(extra="ignore")

    id: StrictInt | StrictStr = Field(..., description="Item identifier")
    name: str = Field(..., min_length=1, description="Item name")
    description: str | None = Field(None, description="Item description")
    is_vegetarian: StrictBool = Field(default=False, description="Whether the item is vegetarian")
    image_url: str | None = Field(None, description="URL to item image")

    @field_validator("price")
    @classmethod
    def validate_price_not_negative(cls, v: int | float) -> int | float:
        if v < 0:
            raise ValueError("price must not be negative")
        return v


class EditedMenuCategory(MenuCategory):
    """A menu category sent by a user editing a stored menu."""

    model_config = ConfigDict(extra="ignore")

    category: str = Field(..., min_length=1, description="Category name")
    items: list[EditedMenuItem] = Field(default_factory=list, description="Items in display order")

    @model_validator(mode="after")
    def validate_unique_item_ids(self) -> "EditedMenuCategory":
        """Validate that item ids do not repeat within this category."""
        seen: set[int | str] = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"duplicate item id {item.id!r} in category {self.category!r}")
            seen.add(item.id)
        return self


class ExtractedMenu(BaseModel):
    """Structured menu produced by the extraction pipeline."""

    model_config = ConfigDict(extra="allow")

    restaurant_name: Any = Field(..., description="Restaurant name read from the menu")
    menu: list[MenuCategory] = Field(..., description="Categories in menu order")

    @property
    def item_count(self) -> int:
        """Total number of items across all categories."""
        return sum(len(category.items) for category in self.menu)


class FinalMenu(BaseModel):
    """Extracted menu after reconciliation, ready to be persisted."""

    restaurant_name: Any
    menu: list[MenuCategory]
    owner: str | None = None


class Menu(BaseModel):
    """Persisted menu document.

    Stored in DynamoDB with menu_id as partition key and an `owner-index`
    GSI on owner for per-user listing.
    """

    menu_id: str = Field(..., description="Opaque menu identifier")
    restaurant_name: str = Field(..., min_length=1, description="Restaurant name")
    menu: list[MenuCategory] = Field(default_factory=list, description="Menu categories")
    owner: str = Field(..., description="User id of the owning account")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "menu_id": self.menu_id,
            "restaurant_name": self.restaurant_name,
            "menu": to_dynamodb_value([c.model_dump(exclude_unset=True) for c in self.menu]),
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Menu":
        """Create Menu from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Menu: Parsed model instance
        """
        return cls(
            menu_id=item["menu_id"],
            restaurant_name=item["restaurant_name"],
            menu=from_dynamodb_value(item.get("menu", [])),
            owner=item["owner"],
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class MenuUpdate(BaseModel):
    """Editable fields of a stored menu. Ownership fields are not accepted."""

    restaurant_name: str | None = Field(None, min_length=1)
    menu: list[EditedMenuCategory] | None = None

    def is_empty(self) -> bool:
        """Whether the request carried no editable field."""
        return not self.model_fields_set
