"""Shared dependency factory for Lambda handlers.

This module provides cached dependency initialization to optimize Lambda cold starts.
Dependencies are created once and reused across invocations within the same Lambda container.
"""

import logging
import os
from datetime import timedelta
from typing import Any

import boto3
from fastapi import FastAPI
from openai import AsyncOpenAI

from menu_digitizer_service.auth.security import TokenIssuer
from menu_digitizer_service.extraction.orchestrator import (
    DEFAULT_CONCURRENCY_LIMIT,
    MenuExtractionService,
)
from menu_digitizer_service.extraction.vision_client import (
    DEFAULT_VISION_MODEL,
    VisionExtractionClient,
)
from menu_digitizer_service.handlers.api_handler import create_app
from menu_digitizer_service.handlers.uploads import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_MAX_UPLOAD_FILES,
)
from menu_digitizer_service.observability import configure_logging, setup_observability
from menu_digitizer_service.repositories.menu_repositories import MenuRepository, UserRepository
from menu_digitizer_service.services.auth_service import AuthService
from menu_digitizer_service.services.menu_service import MenuService

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_vision_client: VisionExtractionClient | None = None
_auth_service: AuthService | None = None
_menu_service: MenuService | None = None
_token_issuer: TokenIssuer | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        # Local DynamoDB - use environment variables
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_vision_client() -> VisionExtractionClient:
    """Create or retrieve cached vision model client.

    Returns:
        Configured VisionExtractionClient instance

    Raises:
        ValueError: If OPENAI_API_KEY is not set
    """
    global _vision_client

    if _vision_client is not None:
        return _vision_client

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY must be set in environment")

    timeout = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "60"))
    model = os.getenv("OPENAI_MODEL", DEFAULT_VISION_MODEL)

    # Retries are handled by the extraction service, not the SDK
    client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
    _vision_client = VisionExtractionClient(client=client, model=model)

    logger.info(f"Vision client initialized with model {model}")
    return _vision_client


def get_auth_service() -> AuthService:
    """Create or retrieve cached auth service.

    Returns:
        Configured AuthService instance
    """
    global _auth_service

    if _auth_service is not None:
        return _auth_service

    users_table = os.getenv("DYNAMODB_USERS_TABLE", "restaurant-users")
    user_repository = UserRepository(
        dynamodb_resource=get_dynamodb_resource(), table_name=users_table
    )

    _auth_service = AuthService(user_repository=user_repository)

    logger.info("Auth service initialized")
    return _auth_service


def get_menu_service() -> MenuService:
    """Create or retrieve cached menu service.

    Returns:
        Configured MenuService instance
    """
    global _menu_service

    if _menu_service is not None:
        return _menu_service

    menus_table = os.getenv("DYNAMODB_MENUS_TABLE", "restaurant-menus")
    menu_repository = MenuRepository(
        dynamodb_resource=get_dynamodb_resource(), table_name=menus_table
    )

    concurrency_limit = int(
        os.getenv("EXTRACTION_CONCURRENCY_LIMIT", str(DEFAULT_CONCURRENCY_LIMIT))
    )
    extraction_service = MenuExtractionService(
        vision_client=get_vision_client(),
        max_concurrent_extractions=concurrency_limit,
    )

    _menu_service = MenuService(
        menu_repository=menu_repository,
        extraction_service=extraction_service,
    )

    logger.info("Menu service initialized")
    return _menu_service


def get_token_issuer() -> TokenIssuer:
    """Create or retrieve cached token issuer.

    Returns:
        Configured TokenIssuer instance

    Raises:
        ValueError: If JWT_SECRET is not set outside development
    """
    global _token_issuer

    if _token_issuer is not None:
        return _token_issuer

    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        if os.getenv("ENVIRONMENT", "development") != "development":
            raise ValueError("JWT_SECRET must be set in environment")
        logger.warning("No JWT_SECRET configured - using development secret")
        secret = "dev-secret-do-not-use-in-production"

    expire_days = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
    _token_issuer = TokenIssuer(secret=secret, expires_in=timedelta(days=expire_days))

    logger.info("Token issuer initialized")
    return _token_issuer


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOW_ORIGINS", "").split(",")
        if origin.strip()
    ]

    _fastapi_app = create_app(
        auth_service=get_auth_service(),
        menu_service=get_menu_service(),
        token_issuer=get_token_issuer(),
        vision_client=get_vision_client(),
        upload_dir=os.getenv("UPLOAD_DIR", "/tmp/uploads"),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
        max_upload_files=int(os.getenv("MAX_UPLOAD_FILES", str(DEFAULT_MAX_UPLOAD_FILES))),
        secure_cookies=os.getenv("ENVIRONMENT") == "production",
        cors_origins=cors_origins,
    )

    setup_observability(
        _fastapi_app, enable_exporters=bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging and observability.

    Should be called once during Lambda cold start.
    """
    # Configure structured logging
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Lambda environment initialized")
