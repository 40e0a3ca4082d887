"""Reconciliation of extracted menus with caller overrides."""

from dataclasses import dataclass

from menu_digitizer_service.models.menu_models import ExtractedMenu, FinalMenu, Menu


@dataclass(frozen=True)
class MenuOverride:
    """Caller-supplied values that take part in reconciliation.

    Attributes:
        restaurant_name: Explicit restaurant name from the request, if any
        existing: The stored menu being replaced, on the update path
    """

    restaurant_name: str | None = None
    existing: Menu | None = None


def reconcile(
    extracted: ExtractedMenu,
    override: MenuOverride | None = None,
    owner_id: str | None = None,
) -> FinalMenu:
    """Merge an extracted menu with overrides before persistence.

    Name priority: an explicit non-empty override name, then the existing
    menu's name when extraction produced none, then the extracted name.
    The owner is the existing menu's owner on update, otherwise `owner_id`;
    it is never read from extracted content.

    Args:
        extracted: Validated extraction output
        override: Explicit name and/or the existing stored menu
        owner_id: Authenticated caller's user id

    Returns:
        FinalMenu ready to be persisted
    """
    override = override or MenuOverride()

    if override.restaurant_name:
        restaurant_name = override.restaurant_name
    elif override.existing is not None and not extracted.restaurant_name:
        restaurant_name = override.existing.restaurant_name
    else:
        restaurant_name = extracted.restaurant_name

    owner = override.existing.owner if override.existing is not None else owner_id

    return FinalMenu(
        restaurant_name=restaurant_name,
        menu=[category.model_copy(deep=True) for category in extracted.menu],
        owner=owner,
    )
