"""Human-readable clip names in the hydrophone's local time."""

import logging
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Los_Angeles"
CLIP_DATE_FORMAT = "%Y_%m_%d_%H_%M_%S"


@lru_cache(maxsize=8)
def get_local_timezone(tz_name: str = DEFAULT_TIMEZONE) -> tzinfo:
    """Resolve ``tz_name``, falling back to UTC without a zone database."""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Timezone %s unavailable, naming clips in UTC", tz_name)
        return timezone.utc


def format_utc_offset(moment: datetime) -> str:
    """``±hh:mm`` offset of an aware datetime.

    Examples:
        >>> format_utc_offset(datetime(2024, 1, 1, tzinfo=timezone.utc))
        '+00:00'
    """
    offset = moment.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def get_readable_clip_name(
    source_id: str,
    clip_start_utc: datetime,
    tz_name: str = DEFAULT_TIMEZONE,
) -> tuple[str, datetime]:
    """Build ``{source_id}_{YYYY_MM_DD_HH_MM_SS}_{±hh:mm}`` for a clip.

    The name depends only on ``source_id`` and the clip's UTC start, so it
    is reproducible across restarts.

    Args:
        source_id: Hydrophone identifier.
        clip_start_utc: Clip start; naive values are taken as UTC.
        tz_name: IANA zone the name is rendered in.

    Returns:
        Tuple of (clip_name, local_start_datetime).

    Examples:
        >>> get_readable_clip_name("rpi_orcasound_lab", datetime(2024, 7, 1, 19, 0, tzinfo=timezone.utc))[0]
        'rpi_orcasound_lab_2024_07_01_12_00_00_-07:00'
    """
    if clip_start_utc.tzinfo is None:
        clip_start_utc = clip_start_utc.replace(tzinfo=timezone.utc)

    local = clip_start_utc.astimezone(get_local_timezone(tz_name))
    name = f"{source_id}_{local.strftime(CLIP_DATE_FORMAT)}_{format_utc_offset(local)}"
    return name, local


def source_id_from_stream_base(stream_base: str) -> str:
    """Hydrophone id from ``https://host/<bucket>/<hydrophone>``.

    Falls back to the only path segment, then to ``"unknown"``.

    Examples:
        >>> source_id_from_stream_base("https://s3-us-west-2.amazonaws.com/audio-orcasound-net/rpi_bush_point")
        'rpi_bush_point'
    """
    parts = [p for p in urlsplit(stream_base).path.split("/") if p]
    if len(parts) > 1:
        return parts[1]
    if parts:
        return parts[0]
    return "unknown"
