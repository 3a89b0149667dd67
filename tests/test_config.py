"""Tests for service.config module."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from service import ConfigLoadError, Settings, get_settings, load_settings
from service.config import DEFAULT_STREAM_BASE_URL


def _has_zone(name: str) -> bool:
    try:
        from zoneinfo import ZoneInfo

        ZoneInfo(name)
        return True
    except Exception:
        return False


requires_pacific = pytest.mark.skipif(
    not _has_zone("America/Los_Angeles"), reason="tz database not available"
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep a developer's .env or exported settings out of these tests."""
    monkeypatch.chdir(tmp_path)
    for name in ("LOG_LEVEL", "MODEL_NAME", "MODEL_PATH", "HLS_STREAM_TYPE", "DEVICE"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path: Path, data) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self):
        settings = Settings()

        assert settings.model_type == "FastAI"
        assert settings.model_local_threshold == 0.5
        assert settings.model_global_threshold == 3
        assert settings.hls_stream_type == "LiveHLS"
        assert settings.hls_polling_interval == 60
        assert settings.hls_audio_offset == 2
        assert settings.log_results is None
        assert settings.delete_local_wavs is False

    def test_stream_base(self):
        settings = Settings(hls_hydrophone_id="rpi_bush_point")

        assert settings.stream_base == f"{DEFAULT_STREAM_BASE_URL}/rpi_bush_point"

    def test_stream_base_trailing_slash(self):
        settings = Settings(hls_stream_base_url="https://bucket.test/", hls_hydrophone_id="h1")

        assert settings.stream_base == "https://bucket.test/h1"

    def test_model_file(self):
        settings = Settings(model_path="./model", model_name="stg2-rn18.pt")

        assert settings.model_file == Path("model") / "stg2-rn18.pt"

    def test_model_type_case_insensitive(self):
        assert Settings(model_type="fastai").model_type == "FastAI"

    def test_blank_log_results_is_none(self):
        assert Settings(log_results="  ").log_results is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("HLS_POLLING_INTERVAL", "30")

        assert Settings().hls_polling_interval == 30

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestDateRange:
    """Tests for DateRangeHLS validation and time conversion."""

    def test_requires_both_times(self):
        with pytest.raises(ValueError):
            Settings(hls_stream_type="DateRangeHLS", hls_start_time_pst="2024-07-01 12:00")

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            Settings(
                hls_stream_type="DateRangeHLS",
                hls_start_time_pst="2024-07-01 13:00",
                hls_end_time_pst="2024-07-01 12:00",
                hls_timezone="UTC",
            )

    def test_bad_time_format(self):
        with pytest.raises(ValueError):
            Settings(hls_start_time_pst="07/01/2024 12:00")

    def test_utc_zone(self):
        settings = Settings(
            hls_stream_type="DateRangeHLS",
            hls_start_time_pst="2024-07-01 12:00",
            hls_end_time_pst="2024-07-01 13:00",
            hls_timezone="UTC",
        )

        start, end = settings.date_range_utc

        assert start == datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 7, 1, 13, 0, tzinfo=timezone.utc)

    @requires_pacific
    def test_pacific_wall_time(self):
        """Summer wall time in Los Angeles is seven hours behind UTC."""
        settings = Settings(
            hls_stream_type="DateRangeHLS",
            hls_start_time_pst="2024-07-01 12:00",
            hls_end_time_pst="2024-07-01 13:00",
        )

        start, _ = settings.date_range_utc

        assert start == datetime(2024, 7, 1, 19, 0, tzinfo=timezone.utc)

    def test_unconfigured_range(self):
        with pytest.raises(ValueError):
            Settings().date_range_utc


class TestLoadSettings:
    """Tests for JSON config loading."""

    def test_load(self, tmp_path):
        path = write_config(
            tmp_path,
            {
                "model_type": "FastAI",
                "model_path": "./model",
                "model_name": "stg2-rn18.pt",
                "model_local_threshold": 0.7,
                "model_global_threshold": 2,
                "hls_polling_interval": 30,
                "hls_hydrophone_id": "rpi_port_townsend",
                "delete_local_wavs": True,
                "log_results": "results",
            },
        )

        settings = load_settings(path)

        assert settings.model_local_threshold == 0.7
        assert settings.model_global_threshold == 2
        assert settings.hls_polling_interval == 30
        assert settings.hls_hydrophone_id == "rpi_port_townsend"
        assert settings.delete_local_wavs is True
        assert settings.log_results == "results"

    def test_file_overrides_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HLS_POLLING_INTERVAL", "30")
        path = write_config(tmp_path, {"hls_polling_interval": 90})

        assert load_settings(path).hls_polling_interval == 90

    def test_unknown_keys_ignored(self, tmp_path):
        path = write_config(tmp_path, {"upload_to_azure": False, "hls_polling_interval": 60})

        assert load_settings(path).hls_polling_interval == 60

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_settings(tmp_path / "missing.json")

        assert exc_info.value.code == "CONFIG_NOT_FOUND"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigLoadError) as exc_info:
            load_settings(path)

        assert exc_info.value.code == "INVALID_JSON"

    def test_not_an_object(self, tmp_path):
        path = write_config(tmp_path, [1, 2, 3])

        with pytest.raises(ConfigLoadError) as exc_info:
            load_settings(path)

        assert exc_info.value.code == "INVALID_JSON"

    def test_invalid_values(self, tmp_path):
        path = write_config(tmp_path, {"model_local_threshold": 1.5, "model_type": "Keras"})

        with pytest.raises(ConfigLoadError) as exc_info:
            load_settings(path)

        assert exc_info.value.code == "INVALID_CONFIG"
        fields = {err["field"] for err in exc_info.value.details["errors"]}
        assert {"model_local_threshold", "model_type"} <= fields

    def test_invalid_polling_interval(self, tmp_path):
        path = write_config(tmp_path, {"hls_polling_interval": 0})

        with pytest.raises(ConfigLoadError):
            load_settings(path)
