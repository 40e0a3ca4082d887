"""Component tests for the menu extraction pipeline.

The OpenAI SDK runs for real against an in-process httpx transport, so
request building, response parsing, retries and reconciliation are all
exercised together.
"""

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from openai import AsyncOpenAI

from menu_digitizer_service.auth.security import TokenIssuer
from menu_digitizer_service.extraction.errors import ExtractionExhaustedError
from menu_digitizer_service.extraction.orchestrator import MenuExtractionService
from menu_digitizer_service.extraction.vision_client import MenuImage, VisionExtractionClient
from menu_digitizer_service.handlers.api_handler import create_app
from menu_digitizer_service.models.user_models import User
from menu_digitizer_service.repositories.menu_repositories import MenuRepository
from menu_digitizer_service.services.auth_service import AuthService
from menu_digitizer_service.services.menu_service import MenuService

JOES_MENU_TEXT = (
    'Here is the menu: {"restaurant_name":"Joe\'s","menu":[{"category":"A","items":'
    '[{"id":1,"name":"Soup","description":"","price":5,"is_vegetarian":true,"image_url":null}]}]}'
    " Thanks!"
)


def responses_body(text: str) -> dict:
    """Build a minimal Responses API payload carrying `text` as output."""
    return {
        "id": "resp_test",
        "object": "response",
        "created_at": 1700000000,
        "model": "gpt-4-turbo",
        "status": "completed",
        "output": [
            {
                "type": "message",
                "id": "msg_test",
                "role": "assistant",
                "status": "completed",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            }
        ],
        "parallel_tool_calls": True,
        "tool_choice": "auto",
        "tools": [],
    }


class ScriptedModel:
    """Replays a fixed sequence of HTTP responses and records every request."""

    def __init__(self, responses: list[httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses[min(len(self.requests), len(self.responses)) - 1]


def text_response(text: str) -> httpx.Response:
    return httpx.Response(200, json=responses_body(text))


def make_vision_client(handler: Callable[[httpx.Request], httpx.Response]) -> VisionExtractionClient:
    client = AsyncOpenAI(
        api_key="sk-test",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return VisionExtractionClient(client=client)


@pytest.mark.component
class TestExtractionPipeline:
    """Test suite for extraction through the real SDK."""

    @pytest.mark.asyncio
    async def test_sends_instructions_and_every_image(self, menu_images: list[MenuImage]) -> None:
        """Test that one request carries the prompt followed by each photo."""
        model = ScriptedModel([text_response(JOES_MENU_TEXT)])
        service = MenuExtractionService(vision_client=make_vision_client(model))

        result = await service.extract_menu(menu_images)

        assert result.restaurant_name == "Joe's"
        assert len(model.requests) == 1
        request = model.requests[0]
        assert request.url.path.endswith("/responses")
        content = json.loads(request.content)["input"][0]["content"]
        assert content[0]["type"] == "input_text"
        assert [part["type"] for part in content[1:]] == ["input_image", "input_image"]
        assert content[1]["image_url"].startswith("data:image/jpeg;base64,")
        assert content[2]["image_url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_recovers_on_third_attempt(self, menu_images: list[MenuImage]) -> None:
        """Test that a server error and a prose answer are retried to success."""
        model = ScriptedModel(
            [
                httpx.Response(500, json={"error": {"message": "upstream failure"}}),
                text_response("Sorry, I cannot read this menu."),
                text_response(JOES_MENU_TEXT),
            ]
        )
        service = MenuExtractionService(vision_client=make_vision_client(model))

        result = await service.extract_menu(menu_images)

        assert len(model.requests) == 3
        assert result.menu[0].items[0].name == "Soup"
        assert result.menu[0].items[0].price == 5

    @pytest.mark.asyncio
    async def test_exhausts_after_three_attempts(self, menu_images: list[MenuImage]) -> None:
        model = ScriptedModel([text_response('{"restaurant_name": "Joe\'s"}')])
        service = MenuExtractionService(vision_client=make_vision_client(model))

        with pytest.raises(ExtractionExhaustedError) as exc_info:
            await service.extract_menu(menu_images)

        assert len(model.requests) == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_reason == "MenuNotArray"


@pytest.mark.component
class TestMenuUploadEndToEnd:
    """Test suite for photo upload through the HTTP API to a stored menu."""

    @pytest.fixture
    def menu_repository(self) -> MagicMock:
        repository = MagicMock(spec=MenuRepository)
        repository.save_menu.return_value = True
        return repository

    @pytest.fixture
    def auth_service(self, owner_user: User) -> MagicMock:
        service = MagicMock(spec=AuthService)
        service.get_user = AsyncMock(return_value=owner_user)
        return service

    def build_client(
        self,
        model: ScriptedModel,
        menu_repository: MagicMock,
        auth_service: MagicMock,
        token_issuer: TokenIssuer,
        upload_dir: Path,
    ) -> TestClient:
        extraction_service = MenuExtractionService(vision_client=make_vision_client(model))
        app = create_app(
            auth_service=auth_service,
            menu_service=MenuService(
                menu_repository=menu_repository, extraction_service=extraction_service
            ),
            token_issuer=token_issuer,
            upload_dir=upload_dir,
        )
        return TestClient(app)

    def test_upload_creates_owned_menu(
        self,
        menu_repository: MagicMock,
        auth_service: MagicMock,
        token_issuer: TokenIssuer,
        owner_user: User,
        tmp_path: Path,
    ) -> None:
        """Test that the stored menu is owned by the caller and named as requested."""
        model = ScriptedModel(
            [text_response("no json here"), text_response("{broken"), text_response(JOES_MENU_TEXT)]
        )
        client = self.build_client(model, menu_repository, auth_service, token_issuer, tmp_path)

        response = client.post(
            "/api/menus",
            files=[("images", ("page1.jpg", b"\xff\xd8\xff\xe0menu", "image/jpeg"))],
            data={"restaurant_name": "Joe's"},
            headers={"Authorization": f"Bearer {token_issuer.issue(owner_user)}"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["restaurant_name"] == "Joe's"
        assert data["owner"] == "user_owner1"
        assert data["menu"][0]["items"][0]["name"] == "Soup"
        assert len(model.requests) == 3

        saved = menu_repository.save_menu.call_args.args[0]
        assert saved.menu_id == data["menu_id"]
        assert saved.owner == "user_owner1"

    def test_upload_reports_exhaustion(
        self,
        menu_repository: MagicMock,
        auth_service: MagicMock,
        token_issuer: TokenIssuer,
        owner_user: User,
        tmp_path: Path,
    ) -> None:
        """Test that a model that never answers with a menu yields 502 and saves nothing."""
        model = ScriptedModel([text_response("I only see a blurry photo.")])
        client = self.build_client(model, menu_repository, auth_service, token_issuer, tmp_path)

        response = client.post(
            "/api/menus",
            files=[("images", ("page1.jpg", b"\xff\xd8\xff\xe0menu", "image/jpeg"))],
            data={"restaurant_name": "Joe's"},
            headers={"Authorization": f"Bearer {token_issuer.issue(owner_user)}"},
        )

        assert response.status_code == 502
        assert response.json()["reason"] == "NoJsonFound"
        assert response.json()["attempts"] == 3
        assert len(model.requests) == 3
        menu_repository.save_menu.assert_not_called()
