"""Custom exceptions for classifier loading and clip inference."""

from typing import Any


class ModelError(Exception):
    """Base exception for all model-related errors.

    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "MODEL_LOAD_FAILED").
        details: Optional dictionary with additional context.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ModelError.

        Args:
            message: Human-readable error description.
            code: Short error code string.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        """Return formatted error string."""
        if self.details:
            return f"[{self.code}] {self.message} (details: {self.details})"
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        """Return repr string."""
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r}, details={self.details!r})"


class ModelLoadError(ModelError):
    """Raised when the classifier cannot be loaded.

    Common codes:
        - MODEL_NOT_FOUND: Model file does not exist.
        - LOAD_FAILED: Model file exists but is not a loadable TorchScript module.
    """
    pass


class InferenceError(ModelError):
    """Raised when inference on a clip fails.

    Common codes:
        - INVALID_INPUT: Feature tensor has the wrong shape.
        - INFERENCE_FAILED: Classifier forward pass failed.
        - EMPTY_OUTPUT: Classifier returned no values.
    """
    pass


class AggregationConfigError(ModelError):
    """Raised when detection thresholds are invalid.

    Common codes:
        - INVALID_THRESHOLD: Local threshold outside [0, 1].
        - INVALID_MIN_POSITIVE: Minimum positive count is negative.
    """
    pass
