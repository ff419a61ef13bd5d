import logging
from dataclasses import dataclass

from .quantizer import DEDUP_TOLERANCE

logger = logging.getLogger(__name__)

GAP_FILL_MIN_GAP = 0.5


@dataclass(frozen=True)
class DifficultyPreset:
    name: str
    lane_count: int
    grid_scale: float       # multiplies the configured grid division
    threshold_scale: float  # multiplies the peak threshold
    min_note_gap: float     # seconds between kept onsets
    gap_fill: bool = False

    def grid_division(self, base: int) -> int:
        return max(1, int(base * self.grid_scale))

    def peak_threshold(self, base: float) -> float:
        return min(base * self.threshold_scale, 1.0)


DIFFICULTY_PRESETS = (
    DifficultyPreset("Easy", 4, 0.5, 1.1, 0.25),
    DifficultyPreset("Normal", 4, 1.0, 1.0, 0.15),
    DifficultyPreset("Hard", 4, 1.0, 0.9, 0.10),
    DifficultyPreset("Expert", 5, 2.0, 0.8, 0.0, gap_fill=True),
)


def preset_for(name: str) -> DifficultyPreset:
    for preset in DIFFICULTY_PRESETS:
        if preset.name.lower() == name.lower():
            return preset
    raise KeyError(f"Unknown difficulty: {name}")


def thin_onsets(times, min_gap: float, tolerance: float = DEDUP_TOLERANCE) -> list[float]:
    """
    Keep an onset only if it is at least `min_gap` after the last kept one.
    Gaps short of `min_gap` by no more than `tolerance` still count, so beats
    spaced exactly `min_gap` apart survive peak-timing jitter.
    """
    kept = []
    for t in sorted(times):
        if kept and t - kept[-1] < min_gap - tolerance:
            continue
        kept.append(t)
    return kept


def fill_gaps(times, energy_at, floor: float, min_gap: float = GAP_FILL_MIN_GAP) -> list[float]:
    """
    Add the midpoint of every gap longer than `min_gap` when the envelope is
    still above `floor` there. `energy_at` maps a time to envelope energy.
    """
    times = sorted(times)
    extra = []
    for a, b in zip(times, times[1:]):
        if b - a > min_gap:
            mid = 0.5 * (a + b)
            if energy_at(mid) > floor:
                extra.append(mid)
    if extra:
        logger.debug("Gap fill added %d onsets", len(extra))
    return sorted(times + extra)
