"""DynamoDB repository classes for menus and users.

Expected failures (missing items, DynamoDB client errors) are reported with
simple return values (None/False/empty list) and logged, not raised.
"""

import logging
from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from menu_digitizer_service.models.menu_models import Menu
from menu_digitizer_service.models.user_models import User

logger = logging.getLogger(__name__)


def _query_all(table: Table, **kwargs: Any) -> list[dict[str, Any]]:
    """Run a query, following LastEvaluatedKey pagination."""
    items: list[dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _scan_all(table: Table) -> list[dict[str, Any]]:
    """Scan a whole table, following LastEvaluatedKey pagination."""
    items: list[dict[str, Any]] = []
    kwargs: dict[str, Any] = {}
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


class MenuRepository:
    """Repository for menu documents.

    Table key is menu_id; the `owner-index` GSI (partition key owner)
    serves per-owner listing.
    """

    OWNER_INDEX = "owner-index"

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_menu(self, menu_id: str) -> Menu | None:
        """Retrieve a menu by id.

        Args:
            menu_id: Menu identifier

        Returns:
            Menu if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"menu_id": menu_id})
            if "Item" not in response:
                return None
            return Menu.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu {menu_id}: {e}")  # pragma: no cover
            return None

    def save_menu(self, menu: Menu) -> bool:
        """Create or replace a menu.

        Args:
            menu: Menu to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=menu.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu {menu.menu_id}: {e}")  # pragma: no cover
            return False

    def delete_menu(self, menu_id: str) -> bool:
        """Delete a menu.

        Args:
            menu_id: Menu identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"menu_id": menu_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete menu {menu_id}: {e}")  # pragma: no cover
            return False

    def list_menus_for_owner(self, owner_id: str) -> list[Menu]:
        """List all menus owned by a user.

        Args:
            owner_id: Owning user's id

        Returns:
            list: Menus (empty list if none found or on error)
        """
        try:
            items = _query_all(
                self.table,
                IndexName=self.OWNER_INDEX,
                KeyConditionExpression=Key("owner").eq(owner_id),
            )
            return [Menu.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list menus for owner {owner_id}: {e}")  # pragma: no cover
            return []

    def list_all_menus(self) -> list[Menu]:
        """List every menu (admin view).

        Returns:
            list: Menus (empty list if none found or on error)
        """
        try:
            return [Menu.from_dynamodb_item(item) for item in _scan_all(self.table)]

        except ClientError as e:
            logger.error(f"Failed to list menus: {e}")  # pragma: no cover
            return []


class UserRepository:
    """Repository for user accounts.

    Table key is user_id; the `email-index` GSI (partition key email)
    serves login lookups.
    """

    EMAIL_INDEX = "email-index"

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_user(self, user_id: str) -> User | None:
        """Retrieve a user by id.

        Returns:
            User if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"user_id": user_id})
            if "Item" not in response:
                return None
            return User.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get user {user_id}: {e}")  # pragma: no cover
            return None

    def get_user_by_email(self, email: str) -> User | None:
        """Retrieve a user by (lower-cased) email.

        Returns:
            User if found, None otherwise
        """
        try:
            response = self.table.query(
                IndexName=self.EMAIL_INDEX,
                KeyConditionExpression=Key("email").eq(email.strip().lower()),
                Limit=1,
            )
            items = response.get("Items", [])
            if not items:
                return None
            return User.from_dynamodb_item(items[0])

        except ClientError as e:
            logger.error(f"Failed to look up user by email: {e}")  # pragma: no cover
            return None

    def save_user(self, user: User) -> bool:
        """Create or replace a user.

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=user.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save user {user.user_id}: {e}")  # pragma: no cover
            return False
