"""
Beatchart: generate rhythm-game charts from audio at four difficulty levels.

Usage:

    from beatchart import Charter, CharterConfig

    charter = Charter(CharterConfig(grid_division=4))
    charts = charter.generate_all_difficulties("song.wav", "my_song", "drums")
    report = charter.run("song.wav", "my_song", "drums", output_dir="charts")
    charter.preview(charts[0], "easy.png")
"""

from .audio import Samples, load_audio
from .chart import Chart, Note, load_chart, parse_chart_text, render_chart_text, save_chart
from .config import CharterConfig, ChartFormat, Frequency, Random, Sequential
from .core import Charter, RunReport
from .errors import (
    CharterError,
    ChartIOError,
    DecodeError,
    EmptySignal,
    InvalidConfig,
    InvalidLaneCount,
    NoBeatsDetected,
    UnsupportedFormat,
)

__all__ = [
    "Charter",
    "CharterConfig",
    "ChartFormat",
    "Chart",
    "Note",
    "RunReport",
    "Samples",
    "Sequential",
    "Frequency",
    "Random",
    "load_audio",
    "load_chart",
    "parse_chart_text",
    "render_chart_text",
    "save_chart",
    "CharterError",
    "ChartIOError",
    "DecodeError",
    "EmptySignal",
    "InvalidConfig",
    "InvalidLaneCount",
    "NoBeatsDetected",
    "UnsupportedFormat",
]
