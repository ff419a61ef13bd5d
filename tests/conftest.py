import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

# Make the repository root importable when the package is not installed.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

CLICK_LENGTH = 0.06


def make_click_track(bpm, duration, sr=22050, offset=0.3, freq=1000.0, decay=0.02, amplitude=0.8):
    """Evenly spaced decaying sine clicks. Returns (audio, click times)."""
    n = int(duration * sr)
    audio = np.zeros(n)
    t = np.arange(int(CLICK_LENGTH * sr)) / sr
    click = amplitude * np.sin(2 * np.pi * freq * t) * np.exp(-t / decay)

    step = int(round(60.0 / bpm * sr))
    starts = range(int(offset * sr), n - click.size, step)
    for s in starts:
        audio[s: s + click.size] += click
    return audio, [s / sr for s in starts]


@pytest.fixture
def click_track():
    return make_click_track


@pytest.fixture
def write_wav(tmp_path):
    def _write(name, audio, sr=22050, subtype=None):
        path = tmp_path / name
        sf.write(str(path), audio, sr, subtype=subtype)
        return path

    return _write
