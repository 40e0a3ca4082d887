"""User, restaurant and identity models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from menu_digitizer_service.models.menu_models import Menu

EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$"


class UserRole(str, Enum):
    """Enumeration of account roles."""

    OWNER = "owner"
    ADMIN = "admin"


class Restaurant(BaseModel):
    """A restaurant registered to an owner account."""

    name: str = Field(..., min_length=1, description="Restaurant name")
    description: str = Field(default="", description="Short description")
    location: str = Field(default="", description="Free-form location")

    @field_validator("name", "description", "location")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Trim surrounding whitespace."""
        return v.strip()


class User(BaseModel):
    """Stored user account.

    Stored in DynamoDB with user_id as partition key and an `email-index`
    GSI for login lookups.
    """

    user_id: str = Field(..., description="Opaque user identifier")
    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., pattern=EMAIL_PATTERN, description="Lower-cased login email")
    password_hash: str = Field(..., description="bcrypt password hash")
    role: UserRole = Field(default=UserRole.OWNER, description="Account role")
    restaurants: list[Restaurant] = Field(default_factory=list, description="Owned restaurants")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        """Lower-case and trim email addresses."""
        return v.strip().lower() if isinstance(v, str) else v

    def owns_restaurant(self, restaurant_name: str) -> bool:
        """Check ownership of a restaurant by case-insensitive name."""
        wanted = restaurant_name.strip().lower()
        return any(r.name.lower() == wanted for r in self.restaurants)

    def to_principal(self) -> "Principal":
        """Identity view used for ownership checks."""
        return Principal(
            user_id=self.user_id,
            role=self.role,
            owned_restaurant_names=frozenset(r.name.lower() for r in self.restaurants),
        )

    def to_public(self) -> "PublicUser":
        """User representation safe to return to clients."""
        return PublicUser(**self.model_dump(exclude={"password_hash"}))

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role.value,
            "restaurants": [r.model_dump() for r in self.restaurants],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "User":
        """Create User from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            User: Parsed model instance
        """
        return cls(
            user_id=item["user_id"],
            name=item["name"],
            email=item["email"],
            password_hash=item["password_hash"],
            role=UserRole(item.get("role", UserRole.OWNER.value)),
            restaurants=item.get("restaurants", []),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class PublicUser(BaseModel):
    """User without credentials."""

    user_id: str
    name: str
    email: str
    role: UserRole
    restaurants: list[Restaurant]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Principal:
    """Authenticated identity consumed by ownership checks.

    Attributes:
        user_id: Id of the authenticated user
        role: Role carried by the user account
        owned_restaurant_names: Lower-cased names of the user's restaurants
    """

    user_id: str
    role: UserRole
    owned_restaurant_names: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns_restaurant(self, restaurant_name: str) -> bool:
        return restaurant_name.strip().lower() in self.owned_restaurant_names

    def can_manage_restaurant(self, restaurant_name: str) -> bool:
        """Admins manage every restaurant; owners only their own."""
        return self.is_admin or self.owns_restaurant(restaurant_name)

    def can_access_menu(self, menu: Menu) -> bool:
        """Admins access every menu; owners only menus they own."""
        return self.is_admin or menu.owner == self.user_id


class RegisterRequest(BaseModel):
    """Body of POST /api/auth/register."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    restaurants: list[Restaurant] = Field(default_factory=list)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    """Body of POST /api/auth/login."""

    email: str = ""
    password: str = ""


class UpdateDetailsRequest(BaseModel):
    """Body of PUT /api/auth/updatedetails."""

    name: str | None = Field(None, min_length=1)
    email: str | None = Field(None, pattern=EMAIL_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v
