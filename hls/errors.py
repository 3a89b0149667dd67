"""Custom exceptions for HLS clip acquisition."""

from datetime import datetime
from typing import Any


class StreamError(Exception):
    """Base exception for all stream errors.

    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "FETCH_FAILED").
        details: Optional dictionary with additional context.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize StreamError.

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


class PlaylistError(StreamError):
    """Raised when a playlist cannot be planned against.

    Common codes:
        - NO_SEGMENTS: Playlist has no usable segments.
        - INVALID_TARGET_DURATION: Mean segment duration is not positive.
    """
    pass


class StreamFetchError(StreamError):
    """Raised when a manifest or segment request fails.

    Common codes:
        - FETCH_FAILED: Transport error or timeout.
        - HTTP_ERROR: Non-success HTTP status.
    """
    pass


class StreamConfigError(StreamError):
    """Raised when stream metadata cannot be interpreted.

    Common codes:
        - INVALID_FOLDER_ID: Folder token is not a unix epoch integer.
        - INVALID_TIME_RANGE: Date-range end precedes its start.
    """
    pass


class TranscodeError(StreamError):
    """Raised when the external transcoder fails.

    Fatal to the cycle that raised it but not to the driving loop.

    Common codes:
        - MISSING_INPUT: Concatenated segment file does not exist.
        - TRANSCODER_NOT_FOUND: Transcoder binary is not installed.
        - TRANSCODE_FAILED: Transcoder exited with a nonzero status.

    Attributes:
        next_clip_end_time: Cursor the failed cycle had already planned, so
            the caller can move past the window instead of replanning it.
    """

    def __init__(
        self,
        message: str,
        code: str = "TRANSCODE_FAILED",
        details: dict[str, Any] | None = None,
        next_clip_end_time: datetime | None = None,
    ) -> None:
        super().__init__(message, code, details)
        self.next_clip_end_time = next_clip_end_time
