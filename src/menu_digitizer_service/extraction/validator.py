"""Schema validation of parsed model output.

Checks run in a fixed order and the first violation wins; errors are never
aggregated. Values are not coerced: a price of "12.50" is a failure, not a
number. A candidate that passes every check is returned as it was parsed,
unknown keys included.
"""

from typing import Any

from menu_digitizer_service.extraction.errors import (
    CategoryMissingNameError,
    ItemMissingIdError,
    ItemMissingNameError,
    ItemsNotArrayError,
    MenuNotArrayError,
    MissingRestaurantNameError,
    PriceNotNumberError,
)
from menu_digitizer_service.models.menu_models import ExtractedMenu, is_json_number


def _field(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def validate_menu(candidate: Any) -> ExtractedMenu:
    """Validate a parsed JSON value against the menu shape.

    Args:
        candidate: Value produced by json.loads on the model output

    Returns:
        ExtractedMenu wrapping the unchanged candidate

    Raises:
        MenuValidationError: The first violation found, as one of its subclasses
    """
    if not _field(candidate, "restaurant_name"):
        raise MissingRestaurantNameError("Missing restaurant name")

    menu = _field(candidate, "menu")
    if not isinstance(menu, list):
        raise MenuNotArrayError("Menu is not an array")

    for c_idx, category in enumerate(menu):
        if not _field(category, "category"):
            raise CategoryMissingNameError(f"Category {c_idx} is missing a name")

        items = _field(category, "items")
        if not isinstance(items, list):
            raise ItemsNotArrayError(f"Items of category {category['category']!r} are not an array")

        for i_idx, item in enumerate(items):
            where = f"item {i_idx} of category {category['category']!r}"
            if not _field(item, "id"):
                raise ItemMissingIdError(f"Missing id for {where}")
            if not _field(item, "name"):
                raise ItemMissingNameError(f"Missing name for {where}")
            if not is_json_number(item.get("price")):
                raise PriceNotNumberError(
                    f"Price for {item['name']!r} is not a number: {item.get('price')!r}"
                )

    # Every field the model types is covered by the checks above
    return ExtractedMenu.model_validate(candidate)
