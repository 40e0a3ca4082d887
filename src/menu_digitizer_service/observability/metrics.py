"""Custom metrics for the menu extraction pipeline."""

from opentelemetry import metrics

meter = metrics.get_meter("menu-digitizer")

extraction_attempt_counter = meter.create_counter(
    name="menu_extraction_attempts_total",
    description="Total number of extraction attempts against the vision model",
    unit="1",
)

extraction_failure_counter = meter.create_counter(
    name="menu_extraction_attempt_failures_total",
    description="Failed extraction attempts by failure reason",
    unit="1",
)

extraction_exhausted_counter = meter.create_counter(
    name="menu_extraction_exhausted_total",
    description="Extractions that failed on every allowed attempt",
    unit="1",
)

extraction_duration_histogram = meter.create_histogram(
    name="menu_extraction_duration_seconds",
    description="Wall-clock duration of a full extraction, all attempts included",
    unit="s",
)

menu_images_histogram = meter.create_histogram(
    name="menu_extraction_image_count",
    description="Number of images submitted per extraction",
    unit="1",
)


def record_extraction_attempt(attempt: int) -> None:
    """Record one extraction attempt.

    Args:
        attempt: 1-based attempt number within the current extraction
    """
    extraction_attempt_counter.add(1, {"attempt": attempt})


def record_extraction_failure(reason: str) -> None:
    """Record a failed extraction attempt.

    Args:
        reason: Stable failure reason (e.g. "InvalidJson", "PriceNotNumber")
    """
    extraction_failure_counter.add(1, {"reason": reason})


def record_extraction_exhausted(last_reason: str) -> None:
    """Record an extraction that ran out of attempts."""
    extraction_exhausted_counter.add(1, {"last_reason": last_reason})


def record_extraction_duration(duration_seconds: float, success: bool, image_count: int) -> None:
    """Record how long an extraction took and how many images it carried.

    Args:
        duration_seconds: Duration in seconds
        success: Whether the extraction produced a menu
        image_count: Number of images submitted
    """
    extraction_duration_histogram.record(duration_seconds, {"success": success})
    menu_images_histogram.record(image_count)
