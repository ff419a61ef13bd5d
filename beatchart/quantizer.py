import logging
import math

logger = logging.getLogger(__name__)

DEDUP_TOLERANCE = 0.01


def subdivision_duration(bpm: float, grid_division: int) -> float:
    return 60.0 / bpm / grid_division


def grid_time(beat: float, subdivision: int, bpm: float, grid_division: int) -> float:
    """Time of `subdivision` within `beat` on the grid."""
    beat_duration = 60.0 / bpm
    return beat * beat_duration + subdivision * subdivision_duration(bpm, grid_division)


def snap(time: float, step: float, max_time: float | None = None) -> float:
    k = max(math.floor(time / step + 0.5), 0)
    if max_time is not None and k * step > max_time:
        k = max(math.floor(max_time / step), 0)
    return k * step


def dedupe(times, tolerance: float = DEDUP_TOLERANCE) -> tuple[float, ...]:
    """Drop any time within `tolerance` of the last kept one; the earlier wins."""
    kept = []
    for t in times:
        if kept and t - kept[-1] <= tolerance:
            continue
        kept.append(t)
    return tuple(kept)


def quantize(
    times,
    bpm: float,
    grid_division: int,
    tolerance: float = DEDUP_TOLERANCE,
    max_time: float | None = None,
) -> tuple[float, ...]:
    step = subdivision_duration(bpm, grid_division)
    snapped = sorted(snap(t, step, max_time) for t in times)
    result = dedupe(snapped, tolerance)
    logger.debug("Quantized %d times to %d grid points (step %.4fs)", len(snapped), len(result), step)
    return result
