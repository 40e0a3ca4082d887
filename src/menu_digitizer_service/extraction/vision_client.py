"""Client for the multimodal vision model that reads menu photos."""

import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from time import perf_counter

import openai
from openai import AsyncOpenAI

from menu_digitizer_service.extraction.errors import ExtractionTransportError
from menu_digitizer_service.observability import traced

logger = logging.getLogger(__name__)

DEFAULT_VISION_MODEL = "gpt-4-turbo"

MENU_EXTRACTION_INSTRUCTIONS = """
Read every page of the restaurant menu shown in these photos and return it as
one JSON object with exactly this structure:
{
  "restaurant_name": "Name of the restaurant",
  "menu": [
    {
      "category": "Category name, e.g. Starters or Main Courses",
      "items": [
        {
          "id": unique_integer,
          "name": "Item name",
          "description": "Item description",
          "price": price_as_number,
          "is_vegetarian": true_or_false,
          "image_url": null
        }
      ]
    }
  ]
}

Rules:
1. Capture all menu text that is visible, across all photos.
2. Keep each item under the category it appears in, in menu order.
3. Prices are JSON numbers, never strings, with no currency symbols.
4. Mark an item vegetarian only when its description or a menu symbol says so.
5. Number items so that every id is unique within its category.
""".strip()


@dataclass(frozen=True)
class MenuImage:
    """One uploaded menu photo.

    Attributes:
        content: Raw image bytes
        content_type: MIME type of the image
        filename: Storage name assigned at upload, if any
    """

    content: bytes
    content_type: str = "image/jpeg"
    filename: str | None = None

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class VisionExtractionClient:
    """Sends menu photos plus instructions to the vision model.

    One call to `extract_raw` is one outbound request. Retrying is the
    caller's job, so the underlying SDK client should be created with
    `max_retries=0`.
    """

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_VISION_MODEL) -> None:
        """Initialize the vision client.

        Args:
            client: Configured OpenAI async client (owned by the application lifespan)
            model: Model name used for the Responses API call
        """
        self.client = client
        self.model = model

    def build_request_input(self, images: Sequence[MenuImage], instructions: str) -> list[dict]:
        """Build the Responses API input: instructions first, then every image."""
        content: list[dict] = [{"type": "input_text", "text": instructions}]
        content.extend({"type": "input_image", "image_url": image.to_data_url()} for image in images)
        return [{"role": "user", "content": content}]

    @traced("vision_extract_raw")
    async def extract_raw(self, images: Sequence[MenuImage], instructions: str) -> str:
        """Submit images and instructions, return the model's raw text output.

        Args:
            images: At least one menu photo
            instructions: Prompt text describing the expected JSON

        Returns:
            Raw text output, which should contain a JSON object

        Raises:
            ValueError: If no images were given
            ExtractionTransportError: If the model call failed for any reason
        """
        if not images:
            raise ValueError("At least one image is required for extraction")

        total_bytes = sum(len(image.content) for image in images)
        logger.info(
            f"Sending {len(images)} image(s) ({total_bytes} bytes) to vision model {self.model}"
        )

        started_at = perf_counter()
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=self.build_request_input(images, instructions),
            )
        except openai.OpenAIError as e:
            logger.error(f"Vision model request failed: {type(e).__name__}: {e}")
            raise ExtractionTransportError(f"{type(e).__name__}: {e}") from e

        output_text = response.output_text or ""
        logger.info(
            f"Vision model responded in {perf_counter() - started_at:.2f}s "
            f"with {len(output_text)} characters"
        )
        return output_text

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self.client.close()
