"""Tests for hls.naming module."""

from datetime import datetime, timedelta, timezone
from zoneinfo import available_timezones

import pytest

from hls import get_readable_clip_name, source_id_from_stream_base
from hls.naming import format_utc_offset


requires_pacific = pytest.mark.skipif(
    "America/Los_Angeles" not in available_timezones(),
    reason="zone database without America/Los_Angeles",
)


class TestReadableClipName:
    """Tests for get_readable_clip_name."""

    @requires_pacific
    def test_summer_offset(self):
        start = datetime(2024, 7, 1, 19, 0, 0, tzinfo=timezone.utc)

        name, local = get_readable_clip_name("rpi_orcasound_lab", start)

        assert name == "rpi_orcasound_lab_2024_07_01_12_00_00_-07:00"
        assert local.hour == 12

    @requires_pacific
    def test_winter_offset(self):
        start = datetime(2024, 1, 15, 8, 30, 5, tzinfo=timezone.utc)

        name, _ = get_readable_clip_name("rpi_bush_point", start)

        assert name == "rpi_bush_point_2024_01_15_00_30_05_-08:00"

    def test_explicit_utc(self):
        start = datetime(2024, 7, 1, 19, 0, 0, tzinfo=timezone.utc)

        name, local = get_readable_clip_name("hydro", start, tz_name="UTC")

        assert name == "hydro_2024_07_01_19_00_00_+00:00"
        assert local.utcoffset().total_seconds() == 0

    def test_unknown_zone_falls_back_to_utc(self):
        start = datetime(2024, 7, 1, 19, 0, 0, tzinfo=timezone.utc)

        name, _ = get_readable_clip_name("hydro", start, tz_name="Not/AZone")

        assert name == "hydro_2024_07_01_19_00_00_+00:00"

    def test_deterministic(self):
        """Same source and start always give the same name."""
        start = datetime(2024, 3, 10, 10, 0, 0, tzinfo=timezone.utc)

        assert get_readable_clip_name("h", start)[0] == get_readable_clip_name("h", start)[0]

    def test_naive_start_treated_as_utc(self):
        naive = datetime(2024, 7, 1, 19, 0, 0)
        aware = naive.replace(tzinfo=timezone.utc)

        assert get_readable_clip_name("h", naive)[0] == get_readable_clip_name("h", aware)[0]


class TestFormatUtcOffset:
    """Tests for format_utc_offset."""

    def test_positive_offset_with_minutes(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=5, minutes=30)))

        assert format_utc_offset(moment) == "+05:30"

    def test_negative_offset(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=-8)))

        assert format_utc_offset(moment) == "-08:00"


class TestSourceIdFromStreamBase:
    """Tests for source_id_from_stream_base."""

    def test_bucket_and_hydrophone(self):
        base = "https://s3-us-west-2.amazonaws.com/audio-orcasound-net/rpi_orcasound_lab"

        assert source_id_from_stream_base(base) == "rpi_orcasound_lab"

    def test_single_segment(self):
        assert source_id_from_stream_base("https://host/rpi_bush_point") == "rpi_bush_point"

    def test_no_path(self):
        assert source_id_from_stream_base("https://host") == "unknown"
