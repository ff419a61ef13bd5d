import logging
from dataclasses import dataclass

import numpy as np

from .errors import NoBeatsDetected
from .spectral import EnergyEnvelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeakCandidate:
    time: float
    energy: float


@dataclass(frozen=True)
class BeatResult:
    peaks: tuple
    bpm: float
    estimated_bpm: float
    bpm_source: str  # "detected", "fallback" or "override"

    @property
    def times(self) -> list[float]:
        return [p.time for p in self.peaks]


# ------------------------------
# Peak picking
# ------------------------------
def find_peaks(energy, threshold: float) -> list[int]:
    """
    Indices of frames above `threshold * max(energy)` that beat their neighbours.

    A frame must be strictly above its left neighbour and not below its right
    one, so a flat top reports only its first frame. Edge frames are compared
    with the one neighbour they have.
    """
    e = np.asarray(energy, dtype=np.float64)
    if e.size == 0:
        return []
    floor = threshold * e.max()
    left = np.concatenate(([-np.inf], e[:-1]))
    right = np.concatenate((e[1:], [-np.inf]))
    mask = (e > floor) & (e > left) & (e >= right)
    return [int(i) for i in np.flatnonzero(mask)]


def refine_peak(energy, idx: int) -> float:
    """Sub-frame offset of a peak from a parabola through its three frames."""
    if idx <= 0 or idx >= len(energy) - 1:
        return 0.0
    a, b, c = energy[idx - 1], energy[idx], energy[idx + 1]
    denom = a - 2.0 * b + c
    if denom >= 0:
        return 0.0
    offset = 0.5 * (a - c) / denom
    return float(min(max(offset, -0.5), 0.5))


def merge_close_peaks(peaks, min_interval: float) -> list[PeakCandidate]:
    merged = []
    for peak in peaks:
        if merged and peak.time - merged[-1].time < min_interval:
            if peak.energy > merged[-1].energy:
                merged[-1] = peak
            continue
        merged.append(peak)
    return merged


# ------------------------------
# Tempo
# ------------------------------
def estimate_bpm(times, default_bpm: float = 120.0, min_bpm: float = 60.0, max_bpm: float = 240.0):
    """Return (bpm, source) from the median inter-peak gap."""
    gaps = np.diff(np.asarray(times, dtype=np.float64))
    gaps = gaps[gaps > 0]
    if gaps.size == 0:
        logger.warning("Fewer than two usable peaks; falling back to %.1f BPM", default_bpm)
        return float(default_bpm), "fallback"

    bpm = 60.0 / float(np.median(gaps))
    clamped = min(max(bpm, min_bpm), max_bpm)
    if clamped != bpm:
        logger.warning("Estimated %.1f BPM outside [%.0f, %.0f]; clamped to %.1f",
                       bpm, min_bpm, max_bpm, clamped)
    return clamped, "detected"


def detect_beats(
    envelope: EnergyEnvelope,
    threshold: float = 0.5,
    *,
    min_interval: float = 0.1,
    default_bpm: float = 120.0,
    bpm_override: float | None = None,
    min_bpm: float = 60.0,
    max_bpm: float = 240.0,
) -> BeatResult:
    energy = envelope.energy
    times = envelope.times
    period = float(times[1] - times[0]) if len(times) > 1 else 0.0
    end = float(times[-1]) if len(times) else 0.0

    candidates = []
    for idx in find_peaks(energy, threshold):
        t = float(times[idx]) + refine_peak(energy, idx) * period
        candidates.append(PeakCandidate(min(max(t, 0.0), end), float(energy[idx])))
    peaks = merge_close_peaks(candidates, min_interval)
    logger.debug("%d peak candidates, %d after merging", len(candidates), len(peaks))

    if not peaks and bpm_override is None:
        raise NoBeatsDetected("No energy peaks found and no BPM override given")

    if peaks:
        estimated, source = estimate_bpm([p.time for p in peaks], default_bpm, min_bpm, max_bpm)
    else:
        estimated, source = float(bpm_override), "override"

    if bpm_override is not None:
        bpm, source = float(bpm_override), "override"
    else:
        bpm = estimated

    logger.info("Detected %d beats, %.2f BPM (%s)", len(peaks), bpm, source)
    return BeatResult(tuple(peaks), bpm, estimated, source)
