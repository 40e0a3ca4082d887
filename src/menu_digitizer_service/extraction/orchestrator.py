"""Retry-controlled orchestration of menu extraction.

One attempt is a full round trip: vision call, JSON extraction from the raw
text, JSON parsing and schema validation. Attempts are sequential and share
nothing but the last recorded error.
"""

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from time import perf_counter
from typing import Any

from menu_digitizer_service.extraction.errors import (
    ExtractionExhaustedError,
    InvalidJsonError,
    MenuExtractionError,
    NoJsonFoundError,
)
from menu_digitizer_service.extraction.retry import with_retries
from menu_digitizer_service.extraction.validator import validate_menu
from menu_digitizer_service.extraction.vision_client import (
    MENU_EXTRACTION_INSTRUCTIONS,
    MenuImage,
    VisionExtractionClient,
)
from menu_digitizer_service.models.menu_models import ExtractedMenu
from menu_digitizer_service.observability import metrics, traced

logger = logging.getLogger(__name__)

MAX_EXTRACTION_ATTEMPTS = 3
DEFAULT_CONCURRENCY_LIMIT = 4

# Greedy: spans from the first "{" to the last "}" in the text, so two
# separate objects in one response come back as one unparseable blob.
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def find_json_block(raw_text: str) -> str:
    """Return the first-`{` to last-`}` substring of the model output.

    Raises:
        NoJsonFoundError: If the text has no such substring
    """
    match = JSON_OBJECT_PATTERN.search(raw_text)
    if match is None:
        preview = raw_text[:200].replace("\n", " ")
        raise NoJsonFoundError(f"No JSON object found in model output: {preview!r}")
    return match.group(0)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_json_block(block: str) -> Any:
    """Parse a JSON block strictly (NaN and Infinity are rejected).

    Raises:
        InvalidJsonError: If the block is not valid JSON
    """
    try:
        return json.loads(block, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidJsonError(f"Model output is not valid JSON: {e}") from e


class MenuExtractionService:
    """Turns a batch of menu photos into a validated ExtractedMenu.

    The vision client is injected and owned by the caller. A semaphore caps
    how many extractions run at once across requests, since every attempt
    hits the same rate-limited model.
    """

    def __init__(
        self,
        vision_client: VisionExtractionClient,
        max_attempts: int = MAX_EXTRACTION_ATTEMPTS,
        max_concurrent_extractions: int = DEFAULT_CONCURRENCY_LIMIT,
        instructions: str = MENU_EXTRACTION_INSTRUCTIONS,
    ) -> None:
        """Initialize the extraction service.

        Args:
            vision_client: Client for the vision model
            max_attempts: Attempts allowed per extraction
            max_concurrent_extractions: Extractions allowed to run at the same time
            instructions: Prompt sent with every attempt
        """
        self.vision_client = vision_client
        self.max_attempts = max_attempts
        self.instructions = instructions
        self._slots = asyncio.Semaphore(max_concurrent_extractions)

    async def attempt_extraction(self, images: Sequence[MenuImage]) -> ExtractedMenu:
        """Run a single extraction attempt.

        Raises:
            MenuExtractionError: Transport, JSON or validation failure of this attempt
        """
        raw_text = await self.vision_client.extract_raw(images, self.instructions)
        candidate = parse_json_block(find_json_block(raw_text))
        return validate_menu(candidate)

    @traced("menu_extraction")
    async def extract_menu(self, images: Sequence[MenuImage]) -> ExtractedMenu:
        """Extract a structured menu from photos with bounded retries.

        Args:
            images: Menu photos, at least one

        Returns:
            ExtractedMenu from the first successful attempt

        Raises:
            ValueError: If no images were given
            ExtractionExhaustedError: If every attempt failed
        """
        if not images:
            raise ValueError("At least one image is required for extraction")

        async def attempt(attempt_number: int) -> ExtractedMenu:
            metrics.record_extraction_attempt(attempt_number)
            logger.info(f"Extraction attempt {attempt_number}/{self.max_attempts}")
            return await self.attempt_extraction(images)

        def on_failure(_attempt_number: int, error: MenuExtractionError) -> None:
            metrics.record_extraction_failure(error.reason)

        async with self._slots:
            # Time spent waiting for a slot is not extraction time
            started_at = perf_counter()
            try:
                extracted = await with_retries(self.max_attempts, attempt, on_failure)
            except ExtractionExhaustedError as e:
                metrics.record_extraction_exhausted(e.last_reason)
                metrics.record_extraction_duration(perf_counter() - started_at, False, len(images))
                logger.error(str(e))
                raise

        metrics.record_extraction_duration(perf_counter() - started_at, True, len(images))
        logger.info(
            f"Extracted menu for {extracted.restaurant_name!r}: "
            f"{len(extracted.menu)} categories, {extracted.item_count} items"
        )
        return extracted
