"""Menu service: extraction, reconciliation and persistence of menus."""

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from menu_digitizer_service.extraction.orchestrator import MenuExtractionService
from menu_digitizer_service.extraction.reconciliation import MenuOverride, reconcile
from menu_digitizer_service.extraction.vision_client import MenuImage
from menu_digitizer_service.models.menu_models import FinalMenu, Menu, MenuUpdate
from menu_digitizer_service.models.user_models import Principal
from menu_digitizer_service.repositories.menu_repositories import MenuRepository
from menu_digitizer_service.services.errors import (
    MenuAccessDeniedError,
    MenuNotFoundError,
    MenuPersistenceError,
    RestaurantOwnershipError,
)

logger = logging.getLogger(__name__)


class MenuService:
    """Service for creating and maintaining digital menus.

    Every operation takes the caller's Principal; ownership is checked here
    and owner identity is always taken from the principal or the stored
    menu, never from extracted content.
    """

    def __init__(
        self,
        menu_repository: MenuRepository,
        extraction_service: MenuExtractionService,
    ) -> None:
        """Initialize the MenuService.

        Args:
            menu_repository: Repository for storing menus
            extraction_service: Service that turns photos into structured menus
        """
        self.menu_repository = menu_repository
        self.extraction_service = extraction_service

    async def create_menu_from_images(
        self,
        principal: Principal,
        images: Sequence[MenuImage],
        restaurant_name: str,
    ) -> Menu:
        """Extract a menu from photos and store it for the caller.

        The provided restaurant name replaces whatever name the model read.

        Raises:
            RestaurantOwnershipError: If the caller does not own the restaurant
            ExtractionExhaustedError: If extraction failed on every attempt
            MenuPersistenceError: If the menu could not be saved
        """
        self._check_restaurant(principal, restaurant_name)

        logger.info(
            f"User {principal.user_id} creating menu for {restaurant_name!r} "
            f"from {len(images)} image(s)"
        )
        extracted = await self.extraction_service.extract_menu(images)
        final = reconcile(
            extracted,
            MenuOverride(restaurant_name=restaurant_name),
            owner_id=principal.user_id,
        )

        now = datetime.now(UTC)
        menu_id = f"menu_{uuid.uuid4().hex[:16]}"
        menu = self._build_menu(menu_id, final, created_at=now, updated_at=now)
        self._save(menu)

        logger.info(f"Menu {menu.menu_id} created for {menu.restaurant_name!r}")
        return menu

    async def list_menus(self, principal: Principal) -> list[Menu]:
        """List menus visible to the caller: all for admins, own otherwise."""
        if principal.is_admin:
            menus = self.menu_repository.list_all_menus()
        else:
            menus = self.menu_repository.list_menus_for_owner(principal.user_id)
        logger.info(f"Found {len(menus)} menus for user {principal.user_id}")
        return menus

    async def get_menu(self, principal: Principal, menu_id: str) -> Menu:
        """Get one menu the caller may view.

        Raises:
            MenuNotFoundError: If no such menu exists
            MenuAccessDeniedError: If the caller neither owns it nor is admin
        """
        return self._load_accessible(principal, menu_id, action="view")

    async def update_menu(self, principal: Principal, menu_id: str, update: MenuUpdate) -> Menu:
        """Apply a JSON edit to a stored menu.

        Raises:
            MenuNotFoundError, MenuAccessDeniedError: As for get_menu
            RestaurantOwnershipError: If renaming to a restaurant the caller does not own
            MenuPersistenceError: If the menu could not be saved
        """
        menu = self._load_accessible(principal, menu_id, action="modify")

        changes: dict[str, object] = {"updated_at": datetime.now(UTC)}
        if update.restaurant_name is not None:
            self._check_restaurant(principal, update.restaurant_name)
            changes["restaurant_name"] = update.restaurant_name
        if update.menu is not None:
            changes["menu"] = update.menu

        updated = menu.model_copy(update=changes)
        self._save(updated)

        logger.info(f"Menu {menu_id} updated ({sorted(k for k in changes if k != 'updated_at')})")
        return updated

    async def update_menu_from_images(
        self,
        principal: Principal,
        menu_id: str,
        images: Sequence[MenuImage],
        restaurant_name: str | None = None,
    ) -> Menu:
        """Replace a stored menu's content with a fresh extraction.

        The owner is preserved. The name is the provided one if any, else the
        extracted one, falling back to the stored name when the model read none.

        Raises:
            MenuNotFoundError, MenuAccessDeniedError: As for get_menu
            RestaurantOwnershipError: If the provided name belongs to another owner
            ExtractionExhaustedError: If extraction failed on every attempt
            MenuPersistenceError: If the menu could not be saved
        """
        existing = self._load_accessible(principal, menu_id, action="modify")
        if restaurant_name:
            self._check_restaurant(principal, restaurant_name)

        logger.info(f"Re-extracting menu {menu_id} from {len(images)} new image(s)")
        extracted = await self.extraction_service.extract_menu(images)
        final = reconcile(
            extracted,
            MenuOverride(restaurant_name=restaurant_name, existing=existing),
            owner_id=principal.user_id,
        )

        updated = self._build_menu(
            existing.menu_id,
            final,
            created_at=existing.created_at,
            updated_at=datetime.now(UTC),
        )
        self._save(updated)

        logger.info(f"Menu {menu_id} replaced with new image data for {updated.restaurant_name!r}")
        return updated

    async def delete_menu(self, principal: Principal, menu_id: str) -> Menu:
        """Delete a menu the caller may modify.

        Returns:
            The deleted menu

        Raises:
            MenuNotFoundError, MenuAccessDeniedError: As for get_menu
            MenuPersistenceError: If the delete failed
        """
        menu = self._load_accessible(principal, menu_id, action="modify")
        if not self.menu_repository.delete_menu(menu_id):
            raise MenuPersistenceError("Error deleting menu")

        logger.info(f"Deleted menu {menu_id} for restaurant {menu.restaurant_name!r}")
        return menu

    def _load_accessible(self, principal: Principal, menu_id: str, action: str) -> Menu:
        menu = self.menu_repository.get_menu(menu_id)
        if menu is None:
            raise MenuNotFoundError(menu_id)
        if not principal.can_access_menu(menu):
            logger.warning(f"User {principal.user_id} not authorized to {action} menu {menu_id}")
            raise MenuAccessDeniedError(menu_id, action)
        return menu

    def _check_restaurant(self, principal: Principal, restaurant_name: str) -> None:
        if not principal.can_manage_restaurant(restaurant_name):
            logger.warning(f"User {principal.user_id} does not own restaurant {restaurant_name!r}")
            raise RestaurantOwnershipError(restaurant_name)

    def _build_menu(
        self, menu_id: str, final: FinalMenu, created_at: datetime, updated_at: datetime
    ) -> Menu:
        if final.owner is None:
            raise MenuPersistenceError("Cannot persist a menu without an owner")
        return Menu(
            menu_id=menu_id,
            restaurant_name=str(final.restaurant_name),
            menu=final.menu,
            owner=final.owner,
            created_at=created_at,
            updated_at=updated_at,
        )

    def _save(self, menu: Menu) -> None:
        if not self.menu_repository.save_menu(menu):
            raise MenuPersistenceError("Error saving menu")
