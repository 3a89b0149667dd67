"""Custom exceptions for the inference service."""

from typing import Any


class ServiceError(Exception):
    """Base exception for service-level errors.

    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "CONFIG_NOT_FOUND").
        details: Optional dictionary with additional context.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
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


class ConfigLoadError(ServiceError):
    """Raised when a configuration file cannot be turned into settings.

    Common codes:
        - CONFIG_NOT_FOUND: Configuration file does not exist.
        - INVALID_JSON: File is not a JSON object.
        - INVALID_CONFIG: Values fail validation.
    """
    pass
