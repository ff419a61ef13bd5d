import logging
from dataclasses import replace

import numpy as np

logger = logging.getLogger(__name__)

LOOKAHEAD_FRAMES = 2


def sustained_frames(energy, start: int, floor: float):
    """Yield frame indices from `start` while energy stays at or above `floor`."""
    for idx in range(start, len(energy)):
        if energy[idx] <= 0 or energy[idx] < floor:
            return
        yield idx


def hold_duration(
    energy,
    frame_times,
    note_time: float,
    start: int,
    sustain_threshold: float,
    signal_duration: float,
    lookahead_frames: int = LOOKAHEAD_FRAMES,
) -> float:
    """
    Seconds from `note_time` until the band energy first drops below
    `sustain_threshold` times the onset's reference energy.

    The reference is the loudest frame among the note's frame and the next
    `lookahead_frames`, which absorbs the small offset left by quantization.
    """
    window = energy[start: start + lookahead_frames + 1]
    if len(window) == 0:
        return 0.0
    peak = start + int(np.argmax(window))
    reference = float(energy[peak])
    if reference <= 0:
        return 0.0

    last = peak - 1
    for last in sustained_frames(energy, peak, sustain_threshold * reference):
        pass
    if last + 1 >= len(energy):
        end = signal_duration
    else:
        end = float(frame_times[last + 1])
    return max(end - note_time, 0.0)


def detect_holds(
    notes,
    lane_energy,
    frame_times,
    sustain_threshold: float,
    min_hold_duration: float,
    signal_duration: float,
    lookahead_frames: int = LOOKAHEAD_FRAMES,
) -> tuple:
    """
    Return `notes` with `duration` set where the lane's band stays loud for at
    least `min_hold_duration`.

    `lane_energy` is (frames, lanes). Holds are computed independently per
    note; overlapping holds in one lane are not merged.
    """
    lane_energy = np.asarray(lane_energy)
    frame_times = np.asarray(frame_times)
    if len(frame_times) == 0:
        return tuple(notes)
    period = float(frame_times[1] - frame_times[0]) if len(frame_times) > 1 else 1.0

    result = []
    holds = 0
    for note in notes:
        start = min(max(int(np.floor(note.time / period + 0.5)), 0), len(frame_times) - 1)
        duration = hold_duration(
            lane_energy[:, note.lane], frame_times, note.time, start,
            sustain_threshold, signal_duration, lookahead_frames,
        )
        if duration >= min_hold_duration:
            result.append(replace(note, duration=duration))
            holds += 1
        else:
            result.append(replace(note, duration=None))
    logger.debug("%d of %d notes are holds", holds, len(result))
    return tuple(result)
