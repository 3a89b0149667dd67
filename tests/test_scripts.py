"""Tests for the command-line entry points."""

import importlib.util
import json
from pathlib import Path

import pytest

from detector import clear_cache

from tests.fixtures import generate_pcm16_wav_bytes


SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


def load_script(name: str):
    spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clear_cache()
    yield
    clear_cache()


class TestRunInference:
    """Tests for scripts/run_inference.py exit codes."""

    def test_missing_config(self, tmp_path, monkeypatch, capsys):
        script = load_script("run_inference")
        monkeypatch.setattr("sys.argv", ["run_inference.py", "--config", str(tmp_path / "nope.json")])

        assert script.main() == 1
        assert json.loads(capsys.readouterr().err)["code"] == "CONFIG_NOT_FOUND"

    def test_negative_iterations_rejected(self, tmp_path, monkeypatch):
        script = load_script("run_inference")
        monkeypatch.setattr(
            "sys.argv", ["run_inference.py", "--config", "c.json", "--max_iterations", "-1"]
        )

        with pytest.raises(SystemExit) as exc_info:
            script.main()

        assert exc_info.value.code == 2

    def test_missing_model(self, tmp_path, monkeypatch, capsys):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"model_path": str(tmp_path), "model_name": "absent.pt"}))
        script = load_script("run_inference")
        monkeypatch.setattr(script, "setup_logging", lambda level: None)
        monkeypatch.setattr("sys.argv", ["run_inference.py", "-c", str(config)])

        assert script.main() == 3
        assert json.loads(capsys.readouterr().err.strip().splitlines()[-1])["code"] == "MODEL_NOT_FOUND"


class TestPredictFile:
    """Tests for scripts/predict_file.py exit codes."""

    def test_missing_input(self, tmp_path, monkeypatch, capsys):
        script = load_script("predict_file")
        monkeypatch.setattr(
            "sys.argv",
            ["predict_file.py", "--input", str(tmp_path / "none.wav"), "--model-path", "m.pt"],
        )

        assert script.main() == 1
        assert json.loads(capsys.readouterr().err)["code"] == "FILE_NOT_FOUND"

    def test_invalid_threshold(self, tmp_path, monkeypatch, capsys):
        clip = tmp_path / "clip.wav"
        clip.write_bytes(generate_pcm16_wav_bytes(duration_sec=3.0, sample_rate=8000))
        script = load_script("predict_file")
        monkeypatch.setattr(
            "sys.argv",
            ["predict_file.py", "-i", str(clip), "-m", "m.pt", "--threshold", "2.0"],
        )

        assert script.main() == 2
        assert json.loads(capsys.readouterr().err)["code"] == "INVALID_THRESHOLD"

    def test_missing_model(self, tmp_path, monkeypatch, capsys):
        clip = tmp_path / "clip.wav"
        clip.write_bytes(generate_pcm16_wav_bytes(duration_sec=3.0, sample_rate=8000))
        script = load_script("predict_file")
        monkeypatch.setattr(
            "sys.argv", ["predict_file.py", "-i", str(clip), "-m", str(tmp_path / "absent.pt")]
        )

        assert script.main() == 3
        assert json.loads(capsys.readouterr().err)["code"] == "MODEL_NOT_FOUND"
