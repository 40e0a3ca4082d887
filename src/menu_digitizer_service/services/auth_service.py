"""Service for account registration, login and restaurant lists."""

import logging
import uuid
from datetime import UTC, datetime

from menu_digitizer_service.auth.security import hash_password, verify_password
from menu_digitizer_service.models.user_models import (
    RegisterRequest,
    Restaurant,
    UpdateDetailsRequest,
    User,
)
from menu_digitizer_service.repositories.menu_repositories import UserRepository
from menu_digitizer_service.services.errors import (
    DuplicateRestaurantError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserPersistenceError,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Service for managing user accounts.

    Token issuance is left to the HTTP layer; this service only deals with
    stored users and their credentials.
    """

    def __init__(self, user_repository: UserRepository) -> None:
        """Initialize the AuthService.

        Args:
            user_repository: Repository for storing users
        """
        self.user_repository = user_repository

    async def register(self, request: RegisterRequest) -> User:
        """Create a new owner account.

        Raises:
            EmailAlreadyRegisteredError: If the email is already in use
            UserPersistenceError: If the account could not be saved
        """
        if self.user_repository.get_user_by_email(request.email) is not None:
            logger.info("Registration rejected: email already registered")
            raise EmailAlreadyRegisteredError()

        now = datetime.now(UTC)
        user = User(
            user_id=f"user_{uuid.uuid4().hex[:12]}",
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            restaurants=request.restaurants,
            created_at=now,
            updated_at=now,
        )

        if not self.user_repository.save_user(user):
            raise UserPersistenceError("Error registering user")

        logger.info(f"Registered user {user.user_id} with {len(user.restaurants)} restaurant(s)")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and return the matching user.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        user = self.user_repository.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login rejected: invalid credentials")
            raise InvalidCredentialsError()

        logger.info(f"User {user.user_id} authenticated")
        return user

    async def get_user(self, user_id: str) -> User | None:
        """Get a user by id.

        Returns:
            User if found, None otherwise
        """
        return self.user_repository.get_user(user_id)

    async def update_details(self, user: User, request: UpdateDetailsRequest) -> User:
        """Update a user's name and/or email.

        Raises:
            EmailAlreadyRegisteredError: If the new email belongs to another account
            UserPersistenceError: If the update could not be saved
        """
        changes: dict[str, str] = {}
        if request.name:
            changes["name"] = request.name
        if request.email and request.email != user.email:
            other = self.user_repository.get_user_by_email(request.email)
            if other is not None and other.user_id != user.user_id:
                raise EmailAlreadyRegisteredError()
            changes["email"] = request.email

        if not changes:
            return user

        updated = user.model_copy(update={**changes, "updated_at": datetime.now(UTC)})
        if not self.user_repository.save_user(updated):
            raise UserPersistenceError("Error updating user details")

        logger.info(f"Updated fields {sorted(changes)} for user {user.user_id}")
        return updated

    async def add_restaurant(self, user: User, restaurant: Restaurant) -> list[Restaurant]:
        """Add a restaurant to a user's list.

        Raises:
            DuplicateRestaurantError: If the user already has a restaurant with that name
            UserPersistenceError: If the update could not be saved
        """
        if user.owns_restaurant(restaurant.name):
            raise DuplicateRestaurantError(restaurant.name)

        updated = user.model_copy(
            update={
                "restaurants": [*user.restaurants, restaurant],
                "updated_at": datetime.now(UTC),
            }
        )
        if not self.user_repository.save_user(updated):
            raise UserPersistenceError("Error adding restaurant")

        logger.info(f"Added restaurant {restaurant.name!r} to user {user.user_id}")
        return updated.restaurants

    async def list_restaurants(self, user: User) -> list[Restaurant]:
        """Get the restaurants registered to a user."""
        return list(user.restaurants)
