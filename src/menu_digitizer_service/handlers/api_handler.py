"""FastAPI application for the menu digitizer API."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import (
    Cookie,
    Depends,
    FastAPI,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from menu_digitizer_service.auth.api_dependencies import (
    TOKEN_COOKIE_NAME,
    get_current_user_from_token,
)
from menu_digitizer_service.auth.security import TokenIssuer
from menu_digitizer_service.extraction.errors import ExtractionExhaustedError
from menu_digitizer_service.extraction.vision_client import VisionExtractionClient
from menu_digitizer_service.handlers.cancellation import run_unless_disconnected
from menu_digitizer_service.handlers.request_logging import RequestLoggingMiddleware
from menu_digitizer_service.handlers.uploads import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_MAX_UPLOAD_FILES,
    UploadPolicy,
    store_menu_images,
)
from menu_digitizer_service.models.api_models import (
    AuthResponse,
    HealthResponse,
    MenuListResponse,
    MenuResponse,
    MessageResponse,
    RestaurantsResponse,
    UserResponse,
)
from menu_digitizer_service.models.menu_models import MenuUpdate
from menu_digitizer_service.models.user_models import (
    LoginRequest,
    RegisterRequest,
    Restaurant,
    UpdateDetailsRequest,
    User,
)
from menu_digitizer_service.services.auth_service import AuthService
from menu_digitizer_service.services.errors import RestaurantOwnershipError, ServiceError
from menu_digitizer_service.services.menu_service import MenuService

logger = logging.getLogger(__name__)

LOGOUT_COOKIE_SECONDS = 10


def create_app(
    auth_service: AuthService,
    menu_service: MenuService,
    token_issuer: TokenIssuer,
    vision_client: VisionExtractionClient | None = None,
    upload_dir: str | Path = "uploads",
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    max_upload_files: int = DEFAULT_MAX_UPLOAD_FILES,
    secure_cookies: bool = False,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        auth_service: Service for accounts and restaurants
        menu_service: Service for menus
        token_issuer: Issuer for access tokens
        vision_client: Vision client closed on application shutdown, if given
        upload_dir: Directory that stores uploaded photos and is served at /uploads
        max_upload_bytes: Per-file upload size limit
        max_upload_files: Maximum files per upload request
        secure_cookies: Whether the token cookie is marked Secure
        cors_origins: Origins allowed by CORS; CORS is disabled when empty

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if vision_client is not None:
            logger.info("Closing vision model client")
            await vision_client.close()

    app = FastAPI(
        title="Menu Digitizer API",
        description="Turns photos of printed restaurant menus into structured digital menus",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Store services in app state for access in route handlers
    app.state.auth_service = auth_service
    app.state.menu_service = menu_service
    app.state.token_issuer = token_issuer
    app.state.upload_policy = UploadPolicy(
        upload_dir=Path(upload_dir),
        max_bytes=max_upload_bytes,
        max_files=max_upload_files,
    )

    app.add_middleware(RequestLoggingMiddleware)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    os.makedirs(app.state.upload_policy.image_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=app.state.upload_policy.upload_dir), name="uploads")

    @app.exception_handler(ServiceError)
    async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(ExtractionExhaustedError)
    async def extraction_exhausted_handler(
        _request: Request, exc: ExtractionExhaustedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": str(exc), "reason": exc.last_reason, "attempts": exc.attempts},
        )

    def set_token_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            key=TOKEN_COOKIE_NAME,
            value=token,
            max_age=int(app.state.token_issuer.expires_in.total_seconds()),
            httponly=True,
            secure=secure_cookies,
        )

    async def current_user(
        authorization: str | None = Header(None),
        token: str | None = Cookie(None),
    ) -> User:
        """Dependency resolving the authenticated user."""
        return await get_current_user_from_token(
            authorization=authorization,
            cookie_token=token,
            token_issuer=app.state.token_issuer,
            auth_service=app.state.auth_service,
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    # Authentication

    @app.post(
        "/api/auth/register",
        response_model=AuthResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Auth"],
    )
    async def register(body: RegisterRequest, response: Response) -> AuthResponse:
        """Register a new owner account and log it in."""
        user = await app.state.auth_service.register(body)
        token = app.state.token_issuer.issue(user)
        set_token_cookie(response, token)
        return AuthResponse(token=token, data=user.to_public())

    @app.post("/api/auth/login", response_model=AuthResponse, tags=["Auth"])
    async def login(body: LoginRequest, response: Response) -> AuthResponse:
        """Exchange email and password for an access token."""
        if not body.email or not body.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please provide an email and password",
            )
        user = await app.state.auth_service.authenticate(body.email.strip().lower(), body.password)
        token = app.state.token_issuer.issue(user)
        set_token_cookie(response, token)
        return AuthResponse(token=token, data=user.to_public())

    @app.get("/api/auth/me", response_model=UserResponse, tags=["Auth"])
    async def me(user: User = Depends(current_user)) -> UserResponse:
        """Get the logged in user."""
        return UserResponse(data=user.to_public())

    @app.put("/api/auth/updatedetails", response_model=UserResponse, tags=["Auth"])
    async def update_details(
        body: UpdateDetailsRequest,
        user: User = Depends(current_user),
    ) -> UserResponse:
        """Update the logged in user's name and email."""
        updated = await app.state.auth_service.update_details(user, body)
        return UserResponse(data=updated.to_public())

    @app.post("/api/auth/logout", response_model=MessageResponse, tags=["Auth"])
    async def logout(response: Response, _user: User = Depends(current_user)) -> MessageResponse:
        """Clear the token cookie."""
        response.set_cookie(
            key=TOKEN_COOKIE_NAME,
            value="none",
            max_age=LOGOUT_COOKIE_SECONDS,
            httponly=True,
            secure=secure_cookies,
        )
        return MessageResponse(message="User logged out successfully")

    @app.get("/api/auth/restaurants", response_model=RestaurantsResponse, tags=["Auth"])
    async def list_restaurants(user: User = Depends(current_user)) -> RestaurantsResponse:
        """List the logged in user's restaurants."""
        restaurants = await app.state.auth_service.list_restaurants(user)
        return RestaurantsResponse(count=len(restaurants), data=restaurants)

    @app.post(
        "/api/auth/restaurants",
        response_model=RestaurantsResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Auth"],
    )
    async def add_restaurant(
        body: Restaurant,
        user: User = Depends(current_user),
    ) -> RestaurantsResponse:
        """Register another restaurant to the logged in user."""
        restaurants = await app.state.auth_service.add_restaurant(user, body)
        return RestaurantsResponse(count=len(restaurants), data=restaurants)

    # Menus

    @app.post(
        "/api/menus",
        response_model=MenuResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Menus"],
    )
    async def create_menu(
        request: Request,
        images: list[UploadFile] | None = File(None),
        restaurant_name: str | None = Form(None),
        user: User = Depends(current_user),
    ) -> MenuResponse:
        """Create a menu by extracting it from uploaded photos.

        Returns:
            The stored menu

        Raises:
            HTTPException: 400 if photos or restaurant name are missing
        """
        if not images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No image files were uploaded",
            )
        if not restaurant_name or not restaurant_name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Restaurant name is required",
            )

        principal = user.to_principal()
        restaurant_name = restaurant_name.strip()
        if not principal.can_manage_restaurant(restaurant_name):
            raise RestaurantOwnershipError(restaurant_name)

        menu_images = await store_menu_images(images, app.state.upload_policy)
        menu = await run_unless_disconnected(
            request,
            app.state.menu_service.create_menu_from_images(principal, menu_images, restaurant_name),
        )
        return MenuResponse(message="Menu created successfully", data=menu)

    @app.get("/api/menus", response_model=MenuListResponse, tags=["Menus"])
    async def list_menus(user: User = Depends(current_user)) -> MenuListResponse:
        """List the caller's menus; admins see every menu."""
        menus = await app.state.menu_service.list_menus(user.to_principal())
        return MenuListResponse(count=len(menus), data=menus)

    @app.get("/api/menus/{menu_id}", response_model=MenuResponse, tags=["Menus"])
    async def get_menu(menu_id: str, user: User = Depends(current_user)) -> MenuResponse:
        """Get a single menu."""
        menu = await app.state.menu_service.get_menu(user.to_principal(), menu_id)
        return MenuResponse(data=menu)

    @app.put("/api/menus/{menu_id}", response_model=MenuResponse, tags=["Menus"])
    async def update_menu(
        menu_id: str,
        body: MenuUpdate,
        user: User = Depends(current_user),
    ) -> MenuResponse:
        """Edit a menu's name and/or categories.

        Raises:
            HTTPException: 400 if the body carries no editable field
        """
        if body.is_empty():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No update data provided",
            )
        menu = await app.state.menu_service.update_menu(user.to_principal(), menu_id, body)
        return MenuResponse(message="Menu updated successfully", data=menu)

    @app.put("/api/menus/{menu_id}/images", response_model=MenuResponse, tags=["Menus"])
    async def update_menu_with_images(
        menu_id: str,
        request: Request,
        images: list[UploadFile] | None = File(None),
        restaurant_name: str | None = Form(None),
        user: User = Depends(current_user),
    ) -> MenuResponse:
        """Replace a menu's content by extracting it from new photos."""
        if not images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No image files were uploaded",
            )

        principal = user.to_principal()
        override_name = (restaurant_name or "").strip() or None
        if override_name and not principal.can_manage_restaurant(override_name):
            raise RestaurantOwnershipError(override_name)

        # Reject unknown or foreign menus before any file is stored
        await app.state.menu_service.get_menu(principal, menu_id)

        menu_images = await store_menu_images(images, app.state.upload_policy)
        menu = await run_unless_disconnected(
            request,
            app.state.menu_service.update_menu_from_images(
                principal, menu_id, menu_images, override_name
            ),
        )
        return MenuResponse(message="Menu updated successfully with new images", data=menu)

    @app.delete("/api/menus/{menu_id}", response_model=MessageResponse, tags=["Menus"])
    async def delete_menu(menu_id: str, user: User = Depends(current_user)) -> MessageResponse:
        """Delete a menu."""
        await app.state.menu_service.delete_menu(user.to_principal(), menu_id)
        return MessageResponse(message="Menu deleted successfully")

    return app
