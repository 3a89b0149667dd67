"""Inference service: configuration, structured logging and the driving loop."""

from .config import Settings, get_settings, load_settings
from .errors import ConfigLoadError, ServiceError
from .logging import StructuredFormatter, clip_context, setup_logging
from .runner import InferenceRunner, RunSummary, build_stream, write_result_log

__all__ = [
    "ConfigLoadError",
    "InferenceRunner",
    "RunSummary",
    "ServiceError",
    "Settings",
    "StructuredFormatter",
    "build_stream",
    "clip_context",
    "get_settings",
    "load_settings",
    "setup_logging",
    "write_result_log",
]
