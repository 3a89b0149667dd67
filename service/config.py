"""Configuration management for the inference service.

Settings come from environment variables (and an optional ``.env`` file)
with sensible defaults; a JSON configuration file passed on the command line
overrides them. Keys match the hydrophone deployment configs:

    {
        "model_type": "FastAI",
        "model_path": "./model",
        "model_name": "stg2-rn18.pt",
        "model_local_threshold": 0.5,
        "model_global_threshold": 3,
        "hls_stream_type": "DateRangeHLS",
        "hls_polling_interval": 60,
        "hls_hydrophone_id": "rpi_orcasound_lab",
        "hls_start_time_pst": "2024-07-01 12:00",
        "hls_end_time_pst": "2024-07-01 13:00",
        "delete_local_wavs": true,
        "log_results": "results"
    }

Example:
    >>> from service.config import load_settings
    >>> settings = load_settings("config/orcasound_lab_live.json")
    >>> settings.stream_base
    'https://s3-us-west-2.amazonaws.com/audio-orcasound-net/rpi_orcasound_lab'
"""

import json
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hls.naming import DEFAULT_TIMEZONE, get_local_timezone

from .errors import ConfigLoadError


DEFAULT_STREAM_BASE_URL = "https://s3-us-west-2.amazonaws.com/audio-orcasound-net"
DATE_RANGE_FORMAT = "%Y-%m-%d %H:%M"


class Settings(BaseSettings):
    """Service settings loaded from environment variables or a config file.

    Environment variables use the attribute names, case-insensitively.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        model_type: Classifier family; only "FastAI" is supported.
        model_path: Directory holding the classifier file.
        model_name: Classifier file name inside ``model_path``.
        model_local_threshold: Per-second confidence threshold.
        model_global_threshold: Positive seconds needed for a detection.
        device: Device for classifier inference ("cpu" or "cuda").
        inference_workers: Windows scored concurrently per clip.
        delete_local_wavs: Remove each clip after it has been processed.
        log_results: Directory for per-clip JSON results, or None.
        wav_dir: Directory clips are written to.
        hls_stream_type: "LiveHLS" or "DateRangeHLS".
        hls_polling_interval: Clip length in seconds.
        hls_hydrophone_id: Hydrophone id appended to the stream base URL.
        hls_stream_base_url: Bucket URL hosting all hydrophones.
        hls_start_time_pst: Date-range start, local wall time.
        hls_end_time_pst: Date-range end, local wall time.
        hls_timezone: Zone for clip names and date-range wall times.
        hls_audio_offset: Audio latency relative to wall clock, in seconds.
        hls_real_time: Pace date-range streams like live ones.
        hls_overwrite_output: Let the transcoder overwrite existing clips.
        ffmpeg_binary: Transcoder executable.
        idle_delay_sec: Wait after a cycle that produced no clip.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Model settings
    model_type: Literal["FastAI"] = "FastAI"
    model_path: str = "./model"
    model_name: str = "model.pt"
    model_local_threshold: float = Field(0.5, ge=0.0, le=1.0)
    model_global_threshold: int = Field(3, ge=0)
    device: Literal["cpu", "cuda"] = "cpu"
    inference_workers: int = Field(1, ge=1)

    # Output settings
    delete_local_wavs: bool = False
    log_results: str | None = None
    wav_dir: str = "wav_dir"

    # Stream settings
    hls_stream_type: Literal["LiveHLS", "DateRangeHLS"] = "LiveHLS"
    hls_polling_interval: int = Field(60, gt=0)
    hls_hydrophone_id: str = "rpi_orcasound_lab"
    hls_stream_base_url: str = DEFAULT_STREAM_BASE_URL
    hls_start_time_pst: datetime | None = None
    hls_end_time_pst: datetime | None = None
    hls_timezone: str = DEFAULT_TIMEZONE
    hls_audio_offset: int = 2
    hls_real_time: bool = False
    hls_overwrite_output: bool = False
    ffmpeg_binary: str = "ffmpeg"
    idle_delay_sec: float = Field(1.0, ge=0.0)

    @field_validator("model_type", mode="before")
    @classmethod
    def _normalize_model_type(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() == "fastai":
            return "FastAI"
        return value

    @field_validator("log_results", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("hls_start_time_pst", "hls_end_time_pst", mode="before")
    @classmethod
    def _parse_wall_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                return datetime.strptime(value, DATE_RANGE_FORMAT)
            except ValueError as e:
                raise ValueError(f"expected 'YYYY-MM-DD HH:MM', got {value!r}") from e
        return value

    @model_validator(mode="after")
    def _check_date_range(self) -> "Settings":
        if self.hls_stream_type != "DateRangeHLS":
            return self
        if self.hls_start_time_pst is None or self.hls_end_time_pst is None:
            raise ValueError("hls_start_time_pst and hls_end_time_pst must be set for DateRangeHLS")
        start, end = self.date_range_utc
        if end < start:
            raise ValueError("hls_end_time_pst must not precede hls_start_time_pst")
        return self

    def _to_utc(self, wall_time: datetime) -> datetime:
        if wall_time.tzinfo is None:
            wall_time = wall_time.replace(tzinfo=get_local_timezone(self.hls_timezone))
        return wall_time.astimezone(timezone.utc)

    @property
    def date_range_utc(self) -> tuple[datetime, datetime]:
        """Date-range bounds converted from local wall time to UTC."""
        if self.hls_start_time_pst is None or self.hls_end_time_pst is None:
            raise ValueError("Date range is not configured")
        return self._to_utc(self.hls_start_time_pst), self._to_utc(self.hls_end_time_pst)

    @property
    def stream_base(self) -> str:
        return f"{self.hls_stream_base_url.rstrip('/')}/{self.hls_hydrophone_id}"

    @property
    def model_file(self) -> Path:
        return Path(self.model_path) / self.model_name


def load_settings(path: str | Path) -> Settings:
    """Build settings from a JSON config file layered over the environment.

    Args:
        path: Path to a JSON object of setting names to values.

    Returns:
        Validated Settings.

    Raises:
        ConfigLoadError: If the file is missing, not a JSON object, or invalid.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigLoadError(
            message=f"Configuration file not found: {path}",
            code="CONFIG_NOT_FOUND",
            details={"path": str(path)},
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigLoadError(
            message=f"Configuration file is not valid JSON: {e}",
            code="INVALID_JSON",
            details={"path": str(path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigLoadError(
            message="Configuration file must hold a JSON object",
            code="INVALID_JSON",
            details={"path": str(path), "type": type(data).__name__},
        )

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigLoadError(
            message=f"Invalid configuration: {e.error_count()} error(s)",
            code="INVALID_CONFIG",
            details={
                "path": str(path),
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ],
            },
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance built from the environment only.

    Returns:
        Settings instance with values from environment.
    """
    return Settings()
