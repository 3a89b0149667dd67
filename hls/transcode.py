"""External transcoder invocation (ffmpeg) for concatenated HLS segments."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from .errors import TranscodeError


logger = logging.getLogger(__name__)


class Transcoder(Protocol):
    """Contract of the transcoding collaborator.

    Given a container of concatenated segments, produce a PCM container at
    ``output_path`` or raise ``TranscodeError``.
    """

    def __call__(self, input_path: Path, output_path: Path, overwrite: bool) -> None:
        ...


class FfmpegTranscoder:
    """Convert a transport-stream file to WAV with the ffmpeg CLI."""

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary

    def build_command(self, input_path: Path, output_path: Path, overwrite: bool) -> list[str]:
        return [
            self.binary,
            "-y" if overwrite else "-n",
            "-loglevel", "error",
            "-i", str(input_path),
            str(output_path),
        ]

    def __call__(self, input_path: Path, output_path: Path, overwrite: bool) -> None:
        input_path = Path(input_path)
        output_path = Path(output_path)

        if not input_path.exists():
            raise TranscodeError(
                message=f"Transcoder input not found: {input_path}",
                code="MISSING_INPUT",
                details={"input": str(input_path)},
            )
        if shutil.which(self.binary) is None:
            raise TranscodeError(
                message=f"Transcoder binary not found: {self.binary}",
                code="TRANSCODER_NOT_FOUND",
                details={"binary": self.binary},
            )

        output_path.parent.mkdir(parents=True, exist_ok=True)
        argv = self.build_command(input_path, output_path, overwrite)
        logger.debug("Running %s", " ".join(argv))

        proc = subprocess.run(argv, capture_output=True, text=True)
        if proc.returncode != 0:
            raise TranscodeError(
                message=f"{self.binary} exited with code {proc.returncode}",
                code="TRANSCODE_FAILED",
                details={"returncode": proc.returncode, "stderr": proc.stderr.strip()[-2000:]},
            )
