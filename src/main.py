"""Main application entry point for the menu digitizer service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
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

DEVELOPMENT_JWT_SECRET = "dev-secret-do-not-use-in-production"


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    # Check for local DynamoDB endpoint (for development)
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        # Local DynamoDB - use environment variables or defaults for credentials
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
        return boto3.resource("dynamodb", region_name=region)


def create_vision_client() -> VisionExtractionClient:
    """Create the vision model client from environment variables.

    Returns:
        VisionExtractionClient backed by an AsyncOpenAI client

    Raises:
        ValueError: If OPENAI_API_KEY is not set
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY must be set in environment")

    timeout = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "60"))
    model = os.getenv("OPENAI_MODEL", DEFAULT_VISION_MODEL)

    # The SDK must not retry on its own; attempts are counted by MenuExtractionService
    client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    logger.info(f"Vision client configured - model: {model}, timeout: {timeout}s")
    return VisionExtractionClient(client=client, model=model)


def create_token_issuer() -> TokenIssuer:
    """Create the JWT issuer from environment variables.

    Raises:
        ValueError: If JWT_SECRET is not set outside development
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        if os.getenv("ENVIRONMENT", "development") != "development":
            raise ValueError("JWT_SECRET must be set in environment")
        logger.warning("No JWT_SECRET configured - using development secret")
        secret = DEVELOPMENT_JWT_SECRET

    expire_days = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
    return TokenIssuer(secret=secret, expires_in=timedelta(days=expire_days))


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates AWS clients
    3. Initializes repositories
    4. Creates the vision client and services
    5. Creates FastAPI app with auth and menu endpoints
    6. Sets up observability

    Returns:
        Configured FastAPI application instance
    """
    # Configure structured logging
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Initializing menu digitizer service...")

    # Create DynamoDB resource
    dynamodb_resource = get_dynamodb_resource()

    # Get table names from environment
    menus_table = os.getenv("DYNAMODB_MENUS_TABLE", "restaurant-menus")
    users_table = os.getenv("DYNAMODB_USERS_TABLE", "restaurant-users")

    # Create repositories
    menu_repository = MenuRepository(dynamodb_resource=dynamodb_resource, table_name=menus_table)
    user_repository = UserRepository(dynamodb_resource=dynamodb_resource, table_name=users_table)

    logger.info(f"Repositories configured - menus: {menus_table}, users: {users_table}")

    vision_client = create_vision_client()

    # Create services
    concurrency_limit = int(
        os.getenv("EXTRACTION_CONCURRENCY_LIMIT", str(DEFAULT_CONCURRENCY_LIMIT))
    )
    extraction_service = MenuExtractionService(
        vision_client=vision_client,
        max_concurrent_extractions=concurrency_limit,
    )
    menu_service = MenuService(menu_repository=menu_repository, extraction_service=extraction_service)
    auth_service = AuthService(user_repository=user_repository)

    logger.info("Services initialized")

    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOW_ORIGINS", "").split(",")
        if origin.strip()
    ]

    app = create_app(
        auth_service=auth_service,
        menu_service=menu_service,
        token_issuer=create_token_issuer(),
        vision_client=vision_client,
        upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
        max_upload_files=int(os.getenv("MAX_UPLOAD_FILES", str(DEFAULT_MAX_UPLOAD_FILES))),
        secure_cookies=os.getenv("ENVIRONMENT") == "production",
        cors_origins=cors_origins,
    )

    setup_observability(app, enable_exporters=bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")))

    logger.info("Menu digitizer service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
