import argparse
import logging
import sys
from pathlib import Path

from beatchart.chart import chart_filename
from beatchart.config import LANE_STRATEGIES, CharterConfig, ChartFormat, parse_lane_strategy
from beatchart.core import Charter
from beatchart.errors import InvalidConfig
from beatchart.frequency import INSTRUMENTS


def build_arg_parser():
    p = argparse.ArgumentParser("beatchart", description="Generate rhythm-game charts from audio")

    p.add_argument("audio", help="Path to audio file")
    p.add_argument("-s", "--song-id", required=True)
    p.add_argument("-i", "--instrument", required=True, choices=INSTRUMENTS + ("all",))
    p.add_argument("-o", "--output", default=".", help="Output directory for charts")
    p.add_argument("--format", default="json", choices=[f.value for f in ChartFormat])

    # ------------------
    # Grid
    # ------------------
    p.add_argument("--bpm", type=float, default=None, help="BPM override (detected if omitted)")
    p.add_argument("--grid-division", type=int, default=4)

    # ------------------
    # Holds
    # ------------------
    p.add_argument("--sustain-threshold", type=float, default=0.5)
    p.add_argument("--min-hold-duration", type=float, default=0.25)

    # ------------------
    # Lanes
    # ------------------
    p.add_argument("--lane-strategy", default="sequential", choices=LANE_STRATEGIES)
    p.add_argument("--seed", type=int, default=42)

    # ------------------
    # Analysis
    # ------------------
    p.add_argument("--window-size", type=int, default=2048)
    p.add_argument("--hop-size", type=int, default=512)
    p.add_argument("--smooth-frames", type=int, default=3)
    p.add_argument("--peak-threshold", type=float, default=0.5)
    p.add_argument("--workers", type=int, default=1)

    p.add_argument("--preview", action="store_true", help="Also save a PNG preview per chart")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def build_cfg_from_args(args) -> CharterConfig:
    return CharterConfig(
        bpm=args.bpm,
        grid_division=args.grid_division,
        sustain_threshold=args.sustain_threshold,
        min_hold_duration=args.min_hold_duration,
        lane_strategy=parse_lane_strategy(args.lane_strategy, args.seed),
        window_size=args.window_size,
        hop_size=args.hop_size,
        smooth_frames=args.smooth_frames,
        peak_threshold=args.peak_threshold,
        workers=args.workers,
    )


def main(argv=None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        charter = Charter(build_cfg_from_args(args))
    except InvalidConfig as exc:
        parser.error(str(exc))

    instruments = INSTRUMENTS if args.instrument == "all" else (args.instrument,)
    report = charter.run_batch(args.audio, args.song_id, instruments, args.output, args.format)

    if args.preview:
        for (instrument, difficulty), chart in report.charts.items():
            name = Path(chart_filename(args.song_id, instrument, difficulty, ChartFormat.JSON)).stem
            charter.preview(chart, Path(args.output) / f"{name}.png")

    print(report.summary())
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
