import logging

import numpy as np

from .chart import Note
from .config import Frequency, LaneStrategy, Random, Sequential
from .errors import InvalidLaneCount

logger = logging.getLogger(__name__)


class SimpleLcg:
    """Linear-congruential generator with the classic ANSI C constants."""

    MULTIPLIER = 1103515245
    INCREMENT = 12345
    MASK = (1 << 64) - 1

    def __init__(self, seed: int):
        self.state = seed & self.MASK

    def next(self) -> int:
        self.state = (self.state * self.MULTIPLIER + self.INCREMENT) & self.MASK
        return (self.state // 65536) % 32768


def sequential_lanes(count: int, lane_count: int) -> list[int]:
    return [i % lane_count for i in range(count)]


def random_lanes(count: int, lane_count: int, seed: int) -> list[int]:
    rng = SimpleLcg(seed)
    return [rng.next() % lane_count for _ in range(count)]


def frequency_lanes(band_energies) -> list[int]:
    # argmax returns the first maximum, so ties go to the lowest band
    energies = np.asarray(band_energies, dtype=np.float64)
    if energies.size == 0:
        return []
    return [int(i) for i in np.argmax(energies, axis=1)]


def assign_lanes(times, lane_count: int, strategy: LaneStrategy, band_energies=None) -> tuple[Note, ...]:
    if lane_count <= 0:
        raise InvalidLaneCount(f"Lane count must be positive, got {lane_count}")
    times = list(times)

    if isinstance(strategy, Sequential):
        lanes = sequential_lanes(len(times), lane_count)
    elif isinstance(strategy, Random):
        lanes = random_lanes(len(times), lane_count, strategy.seed)
    elif isinstance(strategy, Frequency):
        if band_energies is None or len(band_energies) != len(times):
            logger.warning("No band energies for frequency lanes; assigning sequentially")
            lanes = sequential_lanes(len(times), lane_count)
        else:
            lanes = [lane % lane_count for lane in frequency_lanes(band_energies)]
    else:
        raise TypeError(f"Unknown lane strategy: {strategy!r}")

    return tuple(Note(time=t, lane=lane) for t, lane in zip(times, lanes))
