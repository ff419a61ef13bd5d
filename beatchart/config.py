from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Union

from .errors import InvalidConfig


# ------------------------------
# Lane strategies
# ------------------------------
@dataclass(frozen=True)
class Sequential:
    name = "sequential"


@dataclass(frozen=True)
class Frequency:
    name = "frequency"


@dataclass(frozen=True)
class Random:
    seed: int = 42
    name = "random"


LaneStrategy = Union[Sequential, Frequency, Random]

LANE_STRATEGIES = ("sequential", "frequency", "random")


def parse_lane_strategy(name: str, seed: int = 42) -> LaneStrategy:
    key = name.strip().lower()
    if key == "sequential":
        return Sequential()
    if key == "frequency":
        return Frequency()
    if key == "random":
        return Random(seed=seed)
    raise InvalidConfig(f"Unknown lane strategy: {name}")


# ------------------------------
# Output formats
# ------------------------------
class ChartFormat(Enum):
    JSON = "json"
    CHART = "chart"

    @classmethod
    def parse(cls, value: "str | ChartFormat") -> "ChartFormat":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in ("chart", "chart-text", "text"):
            return cls.CHART
        if key == "json":
            return cls.JSON
        raise InvalidConfig(f"Invalid format: {value}")

    @property
    def extension(self) -> str:
        return self.value


# ------------------------------
# Charter configuration
# ------------------------------
@dataclass(frozen=True)
class CharterConfig:
    bpm: Optional[float] = None
    grid_division: int = 4
    sustain_threshold: float = 0.5
    min_hold_duration: float = 0.25
    lane_strategy: LaneStrategy = field(default_factory=Sequential)

    # Analysis
    window_size: int = 2048
    hop_size: int = 512
    smooth_frames: int = 3

    # Beat detection
    peak_threshold: float = 0.5
    min_peak_interval: float = 0.1
    default_bpm: float = 120.0
    min_bpm: float = 60.0
    max_bpm: float = 240.0

    # Quantizer
    dedup_tolerance: float = 0.01

    workers: int = 1

    def validate(self) -> "CharterConfig":
        if self.bpm is not None and not self.bpm > 0:
            raise InvalidConfig(f"bpm override must be positive, got {self.bpm}")
        if not isinstance(self.grid_division, int) or self.grid_division <= 0:
            raise InvalidConfig(f"grid_division must be a positive integer, got {self.grid_division}")
        if not 0.0 <= self.sustain_threshold <= 1.0:
            raise InvalidConfig(f"sustain_threshold must lie in [0, 1], got {self.sustain_threshold}")
        if not self.min_hold_duration > 0:
            raise InvalidConfig(f"min_hold_duration must be positive, got {self.min_hold_duration}")
        if not isinstance(self.lane_strategy, (Sequential, Frequency, Random)):
            raise InvalidConfig(f"Unknown lane strategy: {self.lane_strategy!r}")
        if self.window_size <= 0 or self.hop_size <= 0:
            raise InvalidConfig("window_size and hop_size must be positive")
        if self.hop_size >= self.window_size:
            raise InvalidConfig(
                f"hop_size ({self.hop_size}) must be smaller than window_size ({self.window_size})"
            )
        if self.smooth_frames < 1:
            raise InvalidConfig(f"smooth_frames must be at least 1, got {self.smooth_frames}")
        if not 0.0 <= self.peak_threshold <= 1.0:
            raise InvalidConfig(f"peak_threshold must lie in [0, 1], got {self.peak_threshold}")
        if self.min_peak_interval < 0:
            raise InvalidConfig("min_peak_interval must not be negative")
        if not 0 < self.min_bpm <= self.default_bpm <= self.max_bpm:
            raise InvalidConfig(
                f"expected 0 < min_bpm <= default_bpm <= max_bpm, got "
                f"{self.min_bpm}, {self.default_bpm}, {self.max_bpm}"
            )
        if self.dedup_tolerance < 0:
            raise InvalidConfig("dedup_tolerance must not be negative")
        if self.workers < 1:
            raise InvalidConfig(f"workers must be at least 1, got {self.workers}")
        return self

    def to_dict(self) -> dict:
        data = asdict(self)
        data["lane_strategy"] = self.lane_strategy.name
        if isinstance(self.lane_strategy, Random):
            data["seed"] = self.lane_strategy.seed
        return data
