import numpy as np
import pytest

from beatchart.audio import Samples
from beatchart.frequency import FrequencyBand, bandpass_filter, lane_bands
from beatchart.spectral import SpectralAnalyzer, smooth

SR = 22050


def tone(freq, seconds=1.0, sr=SR, amplitude=0.5):
    t = np.arange(int(seconds * sr)) / sr
    return Samples.from_array(amplitude * np.sin(2 * np.pi * freq * t), sr)


def test_frames_cover_signal():
    samples = tone(440, 1.0)
    spec = SpectralAnalyzer(2048, 512).analyze(samples)

    assert len(spec) == 1 + len(samples) // 512
    assert spec.times[0] == 0.0
    assert spec.times[-1] <= samples.duration
    assert np.all(np.diff(spec.times) > 0)
    assert spec.power.shape[1] == 2048 // 2 + 1


def test_signal_shorter_than_window_is_zero_padded():
    samples = Samples.from_array(np.ones(100) * 0.1, SR)
    spec = SpectralAnalyzer(2048, 512).analyze(samples)
    assert len(spec) == 1
    assert spec.envelope().energy[0] > 0


def test_envelope_is_non_negative_and_deterministic():
    rng = np.random.default_rng(3)
    samples = Samples.from_array(rng.uniform(-0.5, 0.5, SR), SR)
    analyzer = SpectralAnalyzer(1024, 256)

    first = analyzer.envelope(samples)
    second = analyzer.envelope(samples)

    assert np.all(first.energy >= 0)
    np.testing.assert_array_equal(first.energy, second.energy)
    np.testing.assert_array_equal(first.times, second.times)


def test_threaded_blocks_match_serial():
    rng = np.random.default_rng(11)
    samples = Samples.from_array(rng.uniform(-0.5, 0.5, 70000), SR)

    serial = SpectralAnalyzer(256, 64, workers=1).analyze(samples)
    threaded = SpectralAnalyzer(256, 64, workers=4).analyze(samples)

    assert len(serial) > 1024
    np.testing.assert_array_equal(serial.power, threaded.power)


def test_band_energy_follows_the_tone():
    spec = SpectralAnalyzer(2048, 512).analyze(tone(1000))
    energies = spec.band_energies([(30, 500), (500, 2000), (2000, 5000)])

    mid = energies[len(spec) // 2]
    assert int(np.argmax(mid)) == 1
    assert mid[1] > 100 * mid[0]


def test_band_narrower_than_a_bin_uses_nearest_bin():
    spec = SpectralAnalyzer(512, 128).analyze(tone(1000))
    energy = spec.band_energy(1001.0, 1002.0)
    assert energy.shape == (len(spec),)
    assert energy.max() > 0


def test_smooth_shrinks_at_edges():
    np.testing.assert_allclose(smooth([1, 2, 3, 4, 5], 3), [1.5, 2, 3, 4, 4.5])
    np.testing.assert_allclose(smooth([2.0], 3), [2.0])
    np.testing.assert_allclose(smooth([1, 2, 3], 1), [1, 2, 3])


def test_hop_must_be_smaller_than_window():
    with pytest.raises(ValueError):
        SpectralAnalyzer(512, 512)


def test_frame_index_clamps():
    spec = SpectralAnalyzer(1024, 256).analyze(tone(440, 0.5))
    assert spec.frame_index(-1.0) == 0
    assert spec.frame_index(100.0) == len(spec) - 1
    assert spec.frame_index(spec.times[5]) == 5


def test_bandpass_keeps_in_band_tone_and_silence():
    mix = Samples.from_array(
        0.5 * np.sin(2 * np.pi * 100 * np.arange(SR) / SR)
        + 0.5 * np.sin(2 * np.pi * 3000 * np.arange(SR) / SR),
        SR,
    )
    bass = bandpass_filter(mix, FrequencyBand.for_instrument("bass"))
    spectrum = np.abs(np.fft.rfft(bass.data))
    freqs = np.fft.rfftfreq(len(bass), 1 / SR)

    assert spectrum[np.argmin(np.abs(freqs - 100))] > 0
    assert spectrum[np.argmin(np.abs(freqs - 3000))] == pytest.approx(0, abs=1e-6)
    assert np.max(np.abs(bass.data)) == pytest.approx(1.0)

    silent = bandpass_filter(Samples.from_array(np.zeros(1000), SR), FrequencyBand.for_instrument("bass"))
    assert not silent.data.any()


def test_lane_bands_split_instrument_band():
    band = FrequencyBand.for_instrument("drums")
    bands = lane_bands(band, 5)
    assert len(bands) == 5
    assert bands[0][0] == pytest.approx(band.low_hz)
    assert bands[-1][1] == pytest.approx(band.high_hz)
    assert all(a[1] == pytest.approx(b[0]) for a, b in zip(bands, bands[1:]))


def test_unknown_instrument_gets_default_band():
    assert FrequencyBand.for_instrument("kazoo").name == "default"
    for name in ("vocals", "bass", "drums", "lead"):
        band = FrequencyBand.for_instrument(name)
        assert band.name == name
        assert band.high_hz > band.low_hz
