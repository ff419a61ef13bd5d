import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf
from aubio import source

from .errors import DecodeError, EmptySignal, UnsupportedFormat

logger = logging.getLogger(__name__)

# Compressed containers libsndfile does not read; aubio decodes them through avcodec.
AUBIO_FORMATS = {"mp3", "m4a", "aac", "mp4", "opus", "wma", "webm"}
AUBIO_HOP_SIZE = 4096
# Headerless PCM needs a sample rate and layout we have no way to know.
HEADERLESS_FORMATS = {"raw"}


@dataclass(frozen=True, eq=False)
class Samples:
    """Mono, normalized sample stream. The array is read-only once built."""

    data: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise DecodeError(f"Invalid sample rate: {self.sample_rate}")
        if self.data.ndim != 1:
            raise DecodeError(f"Expected mono samples, got shape {self.data.shape}")
        if self.data.size == 0:
            raise EmptySignal("Audio contains no samples")
        self.data.setflags(write=False)

    def __len__(self):
        return int(self.data.shape[0])

    @property
    def duration(self) -> float:
        return len(self) / self.sample_rate

    @classmethod
    def from_array(cls, data, sample_rate: int) -> "Samples":
        """
        Build Samples from an in-memory array shaped (n,) or (n, channels).

        Integer PCM is scaled by its dtype's full range; channels are averaged.
        """
        audio = np.asarray(data)
        if np.issubdtype(audio.dtype, np.integer):
            audio = audio.astype(np.float64) / float(np.iinfo(audio.dtype).max)
        else:
            audio = audio.astype(np.float64)
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        audio = np.clip(audio, -1.0, 1.0)
        return cls(np.ascontiguousarray(audio), int(sample_rate))


# ------------------------------
# Decoding
# ------------------------------
def soundfile_formats() -> set[str]:
    return ({ext.lower() for ext in sf.available_formats()} | {"oga", "aif"}) - HEADERLESS_FORMATS


def resolve_format(path: Path, fmt: str | None = None) -> str:
    name = (fmt or path.suffix.lstrip(".")).lower()
    if name in soundfile_formats() or name in AUBIO_FORMATS:
        return name
    raise UnsupportedFormat(f"Unsupported audio format: {name or '<none>'}")


def _read_soundfile(path: Path):
    try:
        audio, sr = sf.read(str(path), dtype="float64", always_2d=False)
    except (RuntimeError, TypeError, ValueError) as exc:
        raise DecodeError(f"Failed to decode {path}: {exc}") from exc
    return audio, sr


def _read_aubio(path: Path):
    try:
        src = source(str(path), 0, AUBIO_HOP_SIZE)
    except RuntimeError as exc:
        raise DecodeError(f"Failed to open {path}: {exc}") from exc

    sr = src.samplerate
    blocks = []
    try:
        while True:
            frames, read = src.do_multi()
            blocks.append(np.array(frames[:, :read], dtype=np.float64))
            if read < AUBIO_HOP_SIZE:
                break
    except RuntimeError as exc:
        raise DecodeError(f"Failed to decode {path}: {exc}") from exc
    finally:
        src.close()

    if not blocks:
        return np.zeros(0), sr
    # aubio yields (channels, frames); soundfile layout is (frames, channels)
    return np.concatenate(blocks, axis=1).T, sr


def load_audio(audio_path: str | Path, fmt: str | None = None) -> Samples:
    path = Path(audio_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    name = resolve_format(path, fmt)
    if name in soundfile_formats():
        audio, sr = _read_soundfile(path)
    else:
        audio, sr = _read_aubio(path)

    if audio.size == 0:
        raise EmptySignal(f"Decoded audio is empty: {path}")

    channels = 1 if audio.ndim == 1 else audio.shape[1]
    samples = Samples.from_array(audio, sr)
    logger.info(
        "Loaded %s: %.2fs at %d Hz (%d channel%s)",
        path.name, samples.duration, sr, channels, "" if channels == 1 else "s",
    )
    return samples
