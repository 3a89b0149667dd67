"""RIFF/WAVE container parsing, duration queries and byte-accurate slicing.

Only the pieces needed to cut sub-clips out of transcoder output are
implemented: the chunk walk that locates ``fmt `` and ``data``, a duration
query that never raises, and a slice that writes a fresh canonical 44-byte
PCM header around the selected frames.

Example:
    >>> from hydroaudio.wav import slice_wav, wav_duration
    >>> with open("clip.wav", "rb") as f:
    ...     data = f.read()
    >>> wav_duration(slice_wav(data, 1.0, 3.0))
    2.0
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import WavFormatError


logger = logging.getLogger(__name__)

RIFF_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8
PCM_FMT_CHUNK_SIZE = 16
WAVE_FORMAT_PCM = 1
WAVE_FORMAT_EXTENSIBLE = 0xFFFE
# cbSize, valid bits, channel mask, then the SubFormat GUID.
EXTENSIBLE_FMT_CHUNK_SIZE = 40
SUBFORMAT_OFFSET = 24


@dataclass(frozen=True)
class WavInfo:
    """Header fields of a PCM container.

    Attributes:
        sample_rate: Frames per second.
        channels: Interleaved channel count.
        bits_per_sample: Sample width in bits.
        data_offset: Byte offset of the first sample in the container.
        data_length: Number of sample bytes available after ``data_offset``.
        audio_format: WAVE format tag (1 = integer PCM, 3 = IEEE float). For
            extensible sources this is the tag from the SubFormat GUID.
    """

    sample_rate: int
    channels: int
    bits_per_sample: int
    data_offset: int
    data_length: int
    audio_format: int = WAVE_FORMAT_PCM

    @property
    def block_align(self) -> int:
        """Bytes per frame (all channels of one sample instant)."""
        return self.channels * (self.bits_per_sample // 8)

    @property
    def total_samples(self) -> int:
        """Number of whole frames in the data chunk."""
        if self.block_align <= 0:
            return 0
        return self.data_length // self.block_align

    @property
    def duration_sec(self) -> float:
        """Duration of the data chunk in seconds."""
        if self.sample_rate <= 0 or self.block_align <= 0:
            return 0.0
        return self.data_length / self.block_align / self.sample_rate


def parse_wav_header(data: bytes) -> WavInfo:
    """Walk the RIFF chunk list and locate the format and data chunks.

    Unknown chunks are skipped by their declared size (plus the pad byte
    RIFF requires after odd-sized chunks). A data chunk that claims more
    bytes than the buffer holds is clamped to what is present.

    Args:
        data: Complete container bytes.

    Returns:
        Parsed WavInfo.

    Raises:
        WavFormatError: If the container is malformed or unsupported.
    """
    if len(data) < RIFF_HEADER_SIZE or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise WavFormatError(
            message="Not a RIFF/WAVE container",
            code="NOT_RIFF",
            details={"length": len(data)},
        )

    fmt: tuple[int, int, int, int] | None = None
    pos = RIFF_HEADER_SIZE

    while pos + CHUNK_HEADER_SIZE <= len(data):
        chunk_id = data[pos:pos + 4]
        (chunk_size,) = struct.unpack_from("<I", data, pos + 4)
        body = pos + CHUNK_HEADER_SIZE

        if chunk_id == b"fmt ":
            if chunk_size < PCM_FMT_CHUNK_SIZE or body + PCM_FMT_CHUNK_SIZE > len(data):
                raise WavFormatError(
                    message="Truncated fmt chunk",
                    code="MISSING_FMT",
                    details={"chunk_size": chunk_size},
                )
            audio_format, channels, sample_rate, _byte_rate, _align, bits = struct.unpack_from(
                "<HHIIHH", data, body
            )
            if (
                audio_format == WAVE_FORMAT_EXTENSIBLE
                and chunk_size >= EXTENSIBLE_FMT_CHUNK_SIZE
                and body + EXTENSIBLE_FMT_CHUNK_SIZE <= len(data)
            ):
                # The real tag is the first two bytes of the SubFormat GUID.
                (audio_format,) = struct.unpack_from("<H", data, body + SUBFORMAT_OFFSET)
            fmt = (audio_format, channels, sample_rate, bits)
        elif chunk_id == b"data":
            if fmt is None:
                raise WavFormatError(
                    message="data chunk precedes fmt chunk",
                    code="MISSING_FMT",
                )
            audio_format, channels, sample_rate, bits = fmt
            if channels <= 0 or sample_rate <= 0 or bits <= 0 or bits % 8:
                raise WavFormatError(
                    message="Unsupported sample layout",
                    code="UNSUPPORTED_FORMAT",
                    details={"channels": channels, "sample_rate": sample_rate, "bits_per_sample": bits},
                )
            available = min(chunk_size, len(data) - body)
            return WavInfo(
                sample_rate=sample_rate,
                channels=channels,
                bits_per_sample=bits,
                data_offset=body,
                data_length=available,
                audio_format=audio_format,
            )

        pos = body + chunk_size + (chunk_size & 1)

    raise WavFormatError(
        message="No data chunk found",
        code="MISSING_DATA",
        details={"length": len(data)},
    )


def _read_bytes(path_or_bytes: Union[str, Path, bytes]) -> bytes:
    if isinstance(path_or_bytes, bytes):
        return path_or_bytes
    return Path(path_or_bytes).read_bytes()


def wav_duration(path_or_bytes: Union[str, Path, bytes]) -> float:
    """Return the duration of a PCM container in seconds.

    Never raises: malformed or unreadable input yields 0.0, which callers
    treat as "unknown, skip".

    Examples:
        >>> wav_duration(b"not a wav")
        0.0
    """
    try:
        return parse_wav_header(_read_bytes(path_or_bytes)).duration_sec
    except (OSError, WavFormatError, struct.error) as e:
        logger.debug("Cannot determine wav duration: %s", e)
        return 0.0


def build_wav_header(
    data_length: int,
    sample_rate: int,
    channels: int,
    bits_per_sample: int,
    audio_format: int = WAVE_FORMAT_PCM,
) -> bytes:
    """Build a canonical 44-byte header for ``data_length`` sample bytes."""
    block_align = channels * (bits_per_sample // 8)
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        PCM_FMT_CHUNK_SIZE,
        audio_format,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bits_per_sample,
        b"data",
        data_length,
    )


def write_wav(
    frames: bytes,
    sample_rate: int,
    channels: int,
    bits_per_sample: int,
    audio_format: int = WAVE_FORMAT_PCM,
) -> bytes:
    """Wrap interleaved sample bytes in a minimal container."""
    return build_wav_header(len(frames), sample_rate, channels, bits_per_sample, audio_format) + frames


def slice_wav(data: bytes, start_sec: float, end_sec: float) -> bytes:
    """Cut ``[start_sec, end_sec)`` out of a container into a new container.

    Sample indices are rounded to the nearest frame and clamped to
    ``[0, total_samples]``; an inverted range yields an empty data chunk.

    Args:
        data: Source container bytes.
        start_sec: Slice start in seconds.
        end_sec: Slice end in seconds.

    Returns:
        A self-consistent container holding only the selected frames.

    Raises:
        WavFormatError: If the source container is malformed.
    """
    info = parse_wav_header(data)
    total = info.total_samples

    start_sample = min(max(round(start_sec * info.sample_rate), 0), total)
    end_sample = min(max(round(end_sec * info.sample_rate), start_sample), total)

    start_byte = info.data_offset + start_sample * info.block_align
    end_byte = info.data_offset + end_sample * info.block_align

    return write_wav(
        data[start_byte:end_byte],
        sample_rate=info.sample_rate,
        channels=info.channels,
        bits_per_sample=info.bits_per_sample,
        audio_format=info.audio_format,
    )


def slice_wav_file(
    source: Union[str, Path],
    destination: Union[str, Path],
    start_sec: float,
    end_sec: float,
) -> Path:
    """Slice ``source`` and write the result to ``destination``."""
    destination = Path(destination)
    destination.write_bytes(slice_wav(Path(source).read_bytes(), start_sec, end_sec))
    return destination
