import logging
from dataclasses import dataclass

import numpy as np

from .audio import Samples
from .errors import InvalidLaneCount

logger = logging.getLogger(__name__)

INSTRUMENTS = ("vocals", "bass", "drums", "lead")

INSTRUMENT_BANDS = {
    "vocals": (200.0, 4000.0),
    "bass": (40.0, 250.0),
    "drums": (30.0, 5000.0),
    "lead": (400.0, 8000.0),
}
DEFAULT_BAND = (40.0, 8000.0)


@dataclass(frozen=True)
class FrequencyBand:
    name: str
    low_hz: float
    high_hz: float

    @classmethod
    def for_instrument(cls, instrument: str) -> "FrequencyBand":
        key = instrument.lower()
        if key in INSTRUMENT_BANDS:
            return cls(key, *INSTRUMENT_BANDS[key])
        return cls("default", *DEFAULT_BAND)


def lane_bands(band: FrequencyBand, lane_count: int) -> list[tuple[float, float]]:
    """Split an instrument band into `lane_count` log-spaced sub-bands, low lanes first."""
    if lane_count <= 0:
        raise InvalidLaneCount(f"Lane count must be positive, got {lane_count}")
    edges = np.geomspace(band.low_hz, band.high_hz, lane_count + 1)
    return [(float(lo), float(hi)) for lo, hi in zip(edges[:-1], edges[1:])]


def bandpass_filter(samples: Samples, band: FrequencyBand) -> Samples:
    """
    Zero every spectral bin outside the band and rescale to unit peak.

    A silent input stays silent.
    """
    spectrum = np.fft.rfft(samples.data)
    freqs = np.fft.rfftfreq(len(samples), d=1.0 / samples.sample_rate)
    spectrum[(freqs < band.low_hz) | (freqs > band.high_hz)] = 0.0
    filtered = np.fft.irfft(spectrum, n=len(samples))

    peak = np.max(np.abs(filtered))
    if peak > 0:
        filtered = filtered / peak
    logger.debug("Band-passed %d samples to %s (%.0f-%.0f Hz)",
                 len(samples), band.name, band.low_hz, band.high_hz)
    return Samples(filtered, samples.sample_rate)
