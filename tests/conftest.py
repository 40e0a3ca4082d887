"""Shared pytest fixtures and configuration for all tests."""

import os
from datetime import UTC, datetime

import pytest

# Entry-point modules skip building the real application in test mode
os.environ.setdefault("ENVIRONMENT", "test")

from menu_digitizer_service.auth.security import TokenIssuer  # noqa: E402
from menu_digitizer_service.extraction.vision_client import MenuImage  # noqa: E402
from menu_digitizer_service.models.menu_models import ExtractedMenu, Menu  # noqa: E402
from menu_digitizer_service.models.user_models import (  # noqa: E402
    Principal,
    Restaurant,
    User,
    UserRole,
)

TEST_JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def valid_menu_dict() -> dict:
    """Fixture providing a raw menu object as the vision model returns it."""
    return {
        "restaurant_name": "Joe's",
        "menu": [
            {
                "category": "Starters",
                "items": [
                    {
                        "id": 1,
                        "name": "Garlic Bread",
                        "description": "Toasted with herbs",
                        "price": 4.5,
                        "is_vegetarian": True,
                        "image_url": None,
                    },
                    {
                        "id": 2,
                        "name": "Chicken Wings",
                        "description": "Six pieces",
                        "price": 7,
                        "is_vegetarian": False,
                        "image_url": None,
                    },
                ],
            },
            {
                "category": "Mains",
                "items": [
                    {
                        "id": 1,
                        "name": "Margherita Pizza",
                        "description": None,
                        "price": 11.0,
                        "is_vegetarian": True,
                        "image_url": None,
                    }
                ],
            },
        ],
    }


@pytest.fixture
def extracted_menu(valid_menu_dict: dict) -> ExtractedMenu:
    """Fixture providing a validated extraction result."""
    return ExtractedMenu.model_validate(valid_menu_dict)


@pytest.fixture
def menu_images() -> list[MenuImage]:
    """Fixture providing two small menu photos."""
    return [
        MenuImage(content=b"\xff\xd8\xff\xe0page-one", content_type="image/jpeg", filename="1.jpg"),
        MenuImage(content=b"\x89PNGpage-two", content_type="image/png", filename="2.png"),
    ]


@pytest.fixture
def owner_user() -> User:
    """Fixture providing an owner account with one restaurant."""
    now = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    return User(
        user_id="user_owner1",
        name="Joe Owner",
        email="joe@example.com",
        password_hash="$2b$12$notarealhashnotarealhashnotarealhashnotarealhashnot",
        role=UserRole.OWNER,
        restaurants=[Restaurant(name="Joe's", location="Main Street")],
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def admin_user() -> User:
    """Fixture providing an admin account with no restaurants."""
    now = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    return User(
        user_id="user_admin1",
        name="Ada Admin",
        email="admin@example.com",
        password_hash="$2b$12$notarealhashnotarealhashnotarealhashnotarealhashnot",
        role=UserRole.ADMIN,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def owner_principal(owner_user: User) -> Principal:
    return owner_user.to_principal()


@pytest.fixture
def admin_principal(admin_user: User) -> Principal:
    return admin_user.to_principal()


@pytest.fixture
def stored_menu(extracted_menu: ExtractedMenu) -> Menu:
    """Fixture providing a persisted menu owned by the owner fixture."""
    now = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    return Menu(
        menu_id="menu_abc123",
        restaurant_name="Joe's",
        menu=extracted_menu.menu,
        owner="user_owner1",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(secret=TEST_JWT_SECRET)
