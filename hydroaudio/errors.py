"""Custom exceptions for audio I/O operations."""

from typing import Any


class AudioIOError(Exception):
    """Base exception for all audio I/O errors.

    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "INVALID_WAV").
        details: Optional dictionary with additional context.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AudioIOError.

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


class AudioDecodeError(AudioIOError):
    """Raised when audio decoding fails.

    Common codes:
        - INVALID_WAV: File is not a valid WAV or cannot be decoded.
        - FILE_NOT_FOUND: Audio file does not exist.
        - EMPTY_FILE: File has zero bytes.
        - EMPTY_AUDIO: File decodes to zero samples.
    """
    pass


class WavFormatError(AudioIOError):
    """Raised when a RIFF/WAVE container cannot be parsed or sliced.

    Common codes:
        - NOT_RIFF: Missing "RIFF"/"WAVE" magic.
        - MISSING_FMT: No "fmt " chunk before the data chunk.
        - MISSING_DATA: No "data" chunk.
        - UNSUPPORTED_FORMAT: Zero channels, rate, or sample width.
    """
    pass


class AudioPreprocessError(AudioIOError):
    """Raised when audio preprocessing fails.

    Common codes:
        - INVALID_SHAPE: Waveform is not [channels, samples].
        - RESAMPLE_FAILED: Resampling operation failed.
    """
    pass
