import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .audio import Samples

logger = logging.getLogger(__name__)

BLOCK_FRAMES = 1024


@dataclass(frozen=True, eq=False)
class EnergyEnvelope:
    times: np.ndarray
    energy: np.ndarray

    def __len__(self):
        return int(self.energy.shape[0])

    def smoothed(self, width: int) -> "EnergyEnvelope":
        return EnergyEnvelope(self.times, _readonly(smooth(self.energy, width)))


@dataclass(frozen=True, eq=False)
class Spectrogram:
    """Per-frame power spectrum of centred, Hann-windowed frames."""

    times: np.ndarray
    freqs: np.ndarray
    power: np.ndarray
    sample_rate: int
    hop_size: int
    duration: float

    def __len__(self):
        return int(self.power.shape[0])

    @property
    def frame_period(self) -> float:
        return self.hop_size / self.sample_rate

    def frame_index(self, time: float) -> int:
        idx = math.floor(time / self.frame_period + 0.5)
        return min(max(idx, 0), len(self) - 1)

    def envelope(self) -> EnergyEnvelope:
        return EnergyEnvelope(self.times, _readonly(self.power.sum(axis=1, dtype=np.float64)))

    def band_energy(self, low_hz: float, high_hz: float) -> np.ndarray:
        mask = (self.freqs >= low_hz) & (self.freqs <= high_hz)
        if not mask.any():
            # band narrower than one bin
            centre = 0.5 * (low_hz + high_hz)
            mask[int(np.argmin(np.abs(self.freqs - centre)))] = True
        return self.power[:, mask].sum(axis=1, dtype=np.float64)

    def band_energies(self, bands) -> np.ndarray:
        if not bands:
            return _readonly(np.zeros((len(self), 0)))
        return _readonly(np.stack([self.band_energy(lo, hi) for lo, hi in bands], axis=1))


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def smooth(values, width: int) -> np.ndarray:
    """Centred moving average; the window shrinks at both edges."""
    values = np.asarray(values, dtype=np.float64)
    if width <= 1 or values.size == 0:
        return values.copy()
    kernel = np.ones(width)
    start = (width - 1) // 2
    end = start + values.size
    totals = np.convolve(values, kernel, mode="full")[start:end]
    counts = np.convolve(np.ones_like(values), kernel, mode="full")[start:end]
    return totals / counts


class SpectralAnalyzer:
    def __init__(self, window_size: int = 2048, hop_size: int = 512, smooth_frames: int = 3, workers: int = 1):
        if hop_size <= 0 or window_size <= 0 or hop_size >= window_size:
            raise ValueError(f"Need 0 < hop_size < window_size, got {hop_size} and {window_size}")
        self.window_size = window_size
        self.hop_size = hop_size
        self.smooth_frames = smooth_frames
        self.workers = workers
        self.window = np.hanning(window_size)

    @classmethod
    def from_config(cls, cfg) -> "SpectralAnalyzer":
        return cls(cfg.window_size, cfg.hop_size, cfg.smooth_frames, cfg.workers)

    def frame_count(self, n_samples: int) -> int:
        return 1 + n_samples // self.hop_size

    def analyze(self, samples: Samples) -> Spectrogram:
        n = len(samples)
        half = self.window_size // 2
        padded = np.pad(samples.data, (half, self.window_size - half))
        frames = np.lib.stride_tricks.sliding_window_view(padded, self.window_size)[:: self.hop_size]
        n_frames = self.frame_count(n)
        frames = frames[:n_frames]

        starts = range(0, n_frames, BLOCK_FRAMES)
        blocks = [frames[s: s + BLOCK_FRAMES] for s in starts]
        if self.workers > 1 and len(blocks) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                powers = list(pool.map(self._power, blocks))
        else:
            powers = [self._power(b) for b in blocks]

        power = _readonly(np.concatenate(powers, axis=0))
        times = _readonly(np.arange(n_frames) * (self.hop_size / samples.sample_rate))
        freqs = _readonly(np.fft.rfftfreq(self.window_size, d=1.0 / samples.sample_rate))
        logger.debug("Analyzed %d frames (window=%d, hop=%d)", n_frames, self.window_size, self.hop_size)
        return Spectrogram(times, freqs, power, samples.sample_rate, self.hop_size, samples.duration)

    def _power(self, block: np.ndarray) -> np.ndarray:
        spectrum = np.fft.rfft(block * self.window, axis=1)
        return (spectrum.real ** 2 + spectrum.imag ** 2).astype(np.float32)

    def envelope(self, samples: Samples) -> EnergyEnvelope:
        """Smoothed total-energy envelope of `samples`."""
        return self.analyze(samples).envelope().smoothed(self.smooth_frames)
