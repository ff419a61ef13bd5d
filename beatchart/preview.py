import logging
from pathlib import Path

from matplotlib.figure import Figure

from .chart import Chart

logger = logging.getLogger(__name__)

TAP_HEIGHT = 0.05


def render_chart(chart: Chart, output_path: str | Path | None = None) -> Figure:
    """
    Draw the chart as a highway: lanes across, time upwards. Holds are bars.

    Saves to `output_path` when given and returns the figure either way. The
    figure is not registered with pyplot, so nothing is left open between calls.
    """
    length = max((n.time + (n.duration or 0.0) for n in chart.notes), default=1.0)
    fig = Figure(figsize=(2 + chart.column_count, 8))
    ax = fig.subplots()

    for note in chart.notes:
        height = note.duration if note.is_hold else TAP_HEIGHT
        ax.bar(
            note.lane,
            height,
            bottom=note.time,
            width=0.8,
            color=f"C{note.lane}",
            alpha=0.6 if note.is_hold else 1.0,
        )

    ax.set_xlim(-0.5, chart.column_count - 0.5)
    ax.set_ylim(0, length + TAP_HEIGHT)
    ax.set_xticks(range(chart.column_count))
    ax.set_xlabel("Lane")
    ax.set_ylabel("Time (s)")
    ax.set_title(f"{chart.song_id} - {chart.instrument} {chart.difficulty} ({chart.bpm:.1f} BPM)")
    fig.tight_layout()

    if output_path is not None:
        fig.savefig(str(output_path))
        logger.info("Saved preview to %s", output_path)
    return fig
