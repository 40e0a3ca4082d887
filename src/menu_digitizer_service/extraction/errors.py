"""Error taxonomy of the menu extraction pipeline.

Every `MenuExtractionError` is scoped to a single extraction attempt and is
retried by the orchestrator. `ExtractionExhaustedError` is terminal.
"""


class MenuExtractionError(Exception):
    """Base class for failures of a single extraction attempt."""

    reason = "ExtractionError"


class ExtractionTransportError(MenuExtractionError):
    """The call to the vision model failed (network, auth, quota, timeout)."""

    reason = "ExtractionTransportError"


class NoJsonFoundError(MenuExtractionError):
    """The model output contained no `{...}` block."""

    reason = "NoJsonFound"


class InvalidJsonError(MenuExtractionError):
    """The `{...}` block in the model output was not parseable JSON."""

    reason = "InvalidJson"


class MenuValidationError(MenuExtractionError):
    """Parsed JSON did not have the required menu shape."""

    reason = "MenuValidationError"


class MissingRestaurantNameError(MenuValidationError):
    reason = "MissingRestaurantName"


class MenuNotArrayError(MenuValidationError):
    reason = "MenuNotArray"


class CategoryMissingNameError(MenuValidationError):
    reason = "CategoryMissingName"


class ItemsNotArrayError(MenuValidationError):
    reason = "ItemsNotArray"


class ItemMissingIdError(MenuValidationError):
    reason = "ItemMissingId"


class ItemMissingNameError(MenuValidationError):
    reason = "ItemMissingName"


class PriceNotNumberError(MenuValidationError):
    reason = "PriceNotNumber"


class ExtractionExhaustedError(Exception):
    """All extraction attempts failed.

    Attributes:
        last_error: The error recorded by the final attempt
        attempts: Number of attempts made
    """

    def __init__(self, last_error: BaseException | None, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        cause = f"{type(last_error).__name__}: {last_error}" if last_error else "no attempt was made"
        super().__init__(f"Menu extraction failed after {attempts} attempt(s); last error: {cause}")

    @property
    def last_reason(self) -> str:
        """Stable reason of the last recorded error."""
        return getattr(self.last_error, "reason", type(self.last_error).__name__)
