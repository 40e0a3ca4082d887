"""Unit tests for Lambda dependency factory."""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

from src.lambda_dependencies import (
    get_auth_service,
    get_dynamodb_resource,
    get_fastapi_app,
    get_menu_service,
    get_token_issuer,
    get_vision_client,
    initialize_lambda_environment,
)


def reset_caches() -> None:
    import src.lambda_dependencies as deps

    deps._dynamodb_resource = None
    deps._vision_client = None
    deps._auth_service = None
    deps._menu_service = None
    deps._token_issuer = None
    deps._fastapi_app = None


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    def teardown_method(self) -> None:
        """Clear cached resources after each test."""
        reset_caches()

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": "", "AWS_REGION": "us-west-2"}, clear=True)
    @patch("src.lambda_dependencies.boto3.resource")
    def test_creates_aws_resource_when_no_endpoint(self, mock_boto3_resource: Mock) -> None:
        """Test that AWS DynamoDB resource is created when no local endpoint configured."""
        mock_resource = MagicMock()
        mock_boto3_resource.return_value = mock_resource

        result = get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="us-west-2")
        assert result == mock_resource

    @patch.dict(
        os.environ,
        {
            "DYNAMODB_ENDPOINT": "http://localhost:8000",
            "AWS_REGION": "us-east-1",
            "AWS_ACCESS_KEY_ID": "test-key",
            "AWS_SECRET_ACCESS_KEY": "test-secret",
        },
        clear=True,
    )
    @patch("src.lambda_dependencies.boto3.resource")
    def test_creates_local_resource_when_endpoint_provided(self, mock_boto3_resource: Mock) -> None:
        """Test that local DynamoDB resource is created when endpoint configured."""
        get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with(
            "dynamodb",
            endpoint_url="http://localhost:8000",
            region_name="us-east-1",
            aws_access_key_id="test-key",
            aws_secret_access_key="test-secret",
        )

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": ""}, clear=True)
    @patch("src.lambda_dependencies.boto3.resource")
    def test_caches_resource_for_reuse(self, mock_boto3_resource: Mock) -> None:
        """Test that DynamoDB resource is cached and reused across calls."""
        first = get_dynamodb_resource()
        second = get_dynamodb_resource()

        assert first is second
        mock_boto3_resource.assert_called_once()


@pytest.mark.unit
class TestGetVisionClient:
    """Tests for get_vision_client function."""

    def teardown_method(self) -> None:
        reset_caches()

    @patch("src.lambda_dependencies.AsyncOpenAI")
    @patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test", "OPENAI_MODEL": "gpt-4o"}, clear=True)
    def test_creates_and_caches_client(self, mock_openai: Mock) -> None:
        """Test that the vision client is created once per container."""
        first = get_vision_client()
        second = get_vision_client()

        assert first is second
        assert first.model == "gpt-4o"
        mock_openai.assert_called_once_with(api_key="sk-test", timeout=60.0, max_retries=0)

    @patch.dict(os.environ, {}, clear=True)
    def test_raises_error_when_api_key_missing(self) -> None:
        with pytest.raises(ValueError, match="OPENAI_API_KEY must be set"):
            get_vision_client()


@pytest.mark.unit
class TestGetServices:
    """Tests for get_auth_service and get_menu_service functions."""

    def teardown_method(self) -> None:
        reset_caches()

    @patch("src.lambda_dependencies.get_dynamodb_resource")
    @patch("src.lambda_dependencies.UserRepository")
    @patch("src.lambda_dependencies.AuthService")
    @patch.dict(os.environ, {"DYNAMODB_USERS_TABLE": "test-users"}, clear=True)
    def test_creates_auth_service(
        self, mock_auth_service: Mock, mock_user_repo: Mock, mock_get_dynamodb: Mock
    ) -> None:
        result = get_auth_service()

        mock_user_repo.assert_called_once_with(
            dynamodb_resource=mock_get_dynamodb.return_value, table_name="test-users"
        )
        mock_auth_service.assert_called_once_with(user_repository=mock_user_repo.return_value)
        assert result == mock_auth_service.return_value
        assert get_auth_service() is result

    @patch("src.lambda_dependencies.get_dynamodb_resource")
    @patch("src.lambda_dependencies.get_vision_client")
    @patch("src.lambda_dependencies.MenuRepository")
    @patch("src.lambda_dependencies.MenuExtractionService")
    @patch("src.lambda_dependencies.MenuService")
    @patch.dict(os.environ, {"EXTRACTION_CONCURRENCY_LIMIT": "8"}, clear=True)
    def test_creates_menu_service(
        self,
        mock_menu_service: Mock,
        mock_extraction_service: Mock,
        mock_menu_repo: Mock,
        mock_get_vision_client: Mock,
        mock_get_dynamodb: Mock,
    ) -> None:
        """Test that the menu service is wired with the default table name."""
        result = get_menu_service()

        mock_menu_repo.assert_called_once_with(
            dynamodb_resource=mock_get_dynamodb.return_value, table_name="restaurant-menus"
        )
        mock_extraction_service.assert_called_once_with(
            vision_client=mock_get_vision_client.return_value,
            max_concurrent_extractions=8,
        )
        mock_menu_service.assert_called_once_with(
            menu_repository=mock_menu_repo.return_value,
            extraction_service=mock_extraction_service.return_value,
        )
        assert result == mock_menu_service.return_value


@pytest.mark.unit
class TestGetTokenIssuer:
    """Tests for get_token_issuer function."""

    def teardown_method(self) -> None:
        reset_caches()

    @patch.dict(os.environ, {"JWT_SECRET": "lambda-secret"}, clear=True)
    def test_uses_configured_secret(self) -> None:
        assert get_token_issuer().secret == "lambda-secret"

    @patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True)
    def test_requires_secret_outside_development(self) -> None:
        with pytest.raises(ValueError, match="JWT_SECRET must be set"):
            get_token_issuer()


@pytest.mark.unit
class TestGetFastAPIApp:
    """Tests for get_fastapi_app function."""

    def teardown_method(self) -> None:
        reset_caches()

    @patch("src.lambda_dependencies.setup_observability")
    @patch("src.lambda_dependencies.get_auth_service")
    @patch("src.lambda_dependencies.get_menu_service")
    @patch("src.lambda_dependencies.get_token_issuer")
    @patch("src.lambda_dependencies.get_vision_client")
    @patch("src.lambda_dependencies.create_app")
    @patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True)
    def test_creates_and_caches_app(
        self,
        mock_create_app: Mock,
        mock_get_vision_client: Mock,
        mock_get_token_issuer: Mock,
        mock_get_menu_service: Mock,
        mock_get_auth_service: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        """Test that the app is built once with Lambda defaults."""
        mock_create_app.return_value = MagicMock(spec=FastAPI)

        first = get_fastapi_app()
        second = get_fastapi_app()

        assert first is second
        mock_create_app.assert_called_once()
        kwargs = mock_create_app.call_args.kwargs
        assert kwargs["auth_service"] == mock_get_auth_service.return_value
        assert kwargs["menu_service"] == mock_get_menu_service.return_value
        assert kwargs["token_issuer"] == mock_get_token_issuer.return_value
        assert kwargs["vision_client"] == mock_get_vision_client.return_value
        assert kwargs["upload_dir"] == "/tmp/uploads"
        assert kwargs["secure_cookies"] is True
        mock_setup_observability.assert_called_once_with(first, enable_exporters=False)


@pytest.mark.unit
class TestInitializeLambdaEnvironment:
    """Tests for initialize_lambda_environment function."""

    @patch("src.lambda_dependencies.configure_logging")
    @patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}, clear=True)
    def test_configures_logging_with_env_level(self, mock_configure_logging: Mock) -> None:
        """Test that logging is configured with LOG_LEVEL from environment."""
        initialize_lambda_environment()

        mock_configure_logging.assert_called_once_with("DEBUG")

    @patch("src.lambda_dependencies.configure_logging")
    @patch.dict(os.environ, {}, clear=True)
    def test_uses_default_log_level_when_not_set(self, mock_configure_logging: Mock) -> None:
        """Test that INFO log level is used when LOG_LEVEL not set."""
        initialize_lambda_environment()

        mock_configure_logging.assert_called_once_with("INFO")
