import numpy as np
import pytest

from beatchart.audio import Samples
from beatchart.beats import PeakCandidate, detect_beats, estimate_bpm, find_peaks, merge_close_peaks, refine_peak
from beatchart.errors import NoBeatsDetected
from beatchart.spectral import EnergyEnvelope, SpectralAnalyzer


def envelope_of(values, period=0.01):
    values = np.asarray(values, dtype=float)
    return EnergyEnvelope(np.arange(values.size) * period, values)


def test_find_peaks_local_maxima_above_floor():
    data = [0.0, 1.0, 0.5, 2.0, 0.5, 1.5, 0.0]
    assert find_peaks(data, 0.3) == [1, 3, 5]
    assert find_peaks(data, 0.6) == [3, 5]


def test_flat_top_reports_first_frame():
    assert find_peaks([0, 1, 1, 0], 0.5) == [1]


def test_silence_has_no_peaks():
    assert find_peaks(np.zeros(50), 0.5) == []
    assert find_peaks([], 0.5) == []


def test_refine_peak_towards_larger_neighbour():
    assert refine_peak([1.0, 2.0, 1.0], 1) == 0.0
    assert refine_peak([1.0, 2.0, 1.5], 1) > 0
    assert refine_peak([1.5, 2.0, 1.0], 1) < 0
    assert refine_peak([1.0, 2.0], 1) == 0.0


def test_merge_keeps_higher_energy():
    peaks = [PeakCandidate(1.0, 3.0), PeakCandidate(1.05, 5.0), PeakCandidate(2.0, 1.0)]
    merged = merge_close_peaks(peaks, 0.1)
    assert merged == [PeakCandidate(1.05, 5.0), PeakCandidate(2.0, 1.0)]


def test_estimate_bpm_from_median_gap():
    bpm, source = estimate_bpm([0.0, 0.5, 1.0, 1.5, 2.6])
    assert bpm == pytest.approx(120.0)
    assert source == "detected"


def test_estimate_bpm_falls_back_with_one_peak():
    assert estimate_bpm([3.0]) == (120.0, "fallback")
    assert estimate_bpm([1.0, 1.0], default_bpm=90.0) == (90.0, "fallback")


def test_estimate_bpm_is_clamped():
    bpm, _ = estimate_bpm([0.0, 0.1, 0.2])
    assert bpm == 240.0


def test_silence_raises_no_beats():
    with pytest.raises(NoBeatsDetected):
        detect_beats(envelope_of(np.zeros(100)))


def test_override_allows_silence_and_wins():
    result = detect_beats(envelope_of(np.zeros(100)), bpm_override=95.0)
    assert result.peaks == ()
    assert result.bpm == 95.0

    values = np.zeros(200)
    values[[20, 70, 120, 170]] = 1.0
    result = detect_beats(envelope_of(values), bpm_override=100.0)
    assert len(result.peaks) == 4
    assert result.estimated_bpm == pytest.approx(120.0)
    assert result.bpm == 100.0
    assert result.bpm_source == "override"


def test_single_peak_reports_fallback():
    values = np.zeros(100)
    values[40] = 1.0
    result = detect_beats(envelope_of(values))
    assert result.bpm == 120.0
    assert result.bpm_source == "fallback"
    assert result.times == [pytest.approx(0.4)]


def test_click_track_at_120_bpm(click_track):
    sr = 22050
    audio, clicks = click_track(120, 8.0, sr=sr, offset=0.25)
    analyzer = SpectralAnalyzer(window_size=1024, hop_size=441, smooth_frames=3)

    result = detect_beats(analyzer.envelope(Samples.from_array(audio, sr)), 0.5)

    assert len(result.peaks) == len(clicks)
    assert result.bpm == pytest.approx(120.0, abs=2.0)
    for peak, click in zip(result.times, clicks):
        assert abs(peak - click) < 0.06

