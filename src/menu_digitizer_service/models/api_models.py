"""Response envelopes returned by the HTTP API."""

from pydantic import BaseModel

from menu_digitizer_service.models.menu_models import Menu
from menu_digitizer_service.models.user_models import PublicUser, Restaurant


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class MenuResponse(BaseModel):
    """Single menu envelope."""

    success: bool = True
    message: str | None = None
    data: Menu


class MenuListResponse(BaseModel):
    """Menu list envelope."""

    success: bool = True
    count: int
    data: list[Menu]


class AuthResponse(BaseModel):
    """Returned by register and login; the token is also set as a cookie."""

    success: bool = True
    token: str
    data: PublicUser


class UserResponse(BaseModel):
    success: bool = True
    data: PublicUser


class RestaurantsResponse(BaseModel):
    success: bool = True
    count: int
    data: list[Restaurant]
