import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .audio import Samples, load_audio
from .beats import detect_beats
from .chart import Chart, build_chart, save_chart
from .config import CharterConfig, ChartFormat, Frequency
from .difficulty import DIFFICULTY_PRESETS, DifficultyPreset, fill_gaps, preset_for, thin_onsets
from .errors import CharterError
from .frequency import INSTRUMENTS, FrequencyBand, bandpass_filter, lane_bands
from .holds import detect_holds
from .lanes import assign_lanes
from .quantizer import quantize
from .spectral import SpectralAnalyzer, Spectrogram

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Analysis:
    """Read-only inputs shared by every difficulty run of one instrument."""

    band: FrequencyBand
    samples: Samples
    spectrogram: Spectrogram

    @property
    def duration(self) -> float:
        return self.samples.duration


@dataclass
class RunReport:
    succeeded: dict = field(default_factory=dict)  # (instrument, difficulty) -> Path
    failed: dict = field(default_factory=dict)     # (instrument, difficulty) -> exception
    charts: dict = field(default_factory=dict)     # (instrument, difficulty) -> Chart

    @property
    def ok(self) -> bool:
        return bool(self.succeeded) and not self.failed

    @property
    def fallbacks(self) -> list:
        return [unit for unit, chart in self.charts.items() if chart.bpm_source == "fallback"]

    def fail(self, unit, exc: Exception):
        logger.error("%s/%s failed: %s", unit[0], unit[1], exc)
        self.failed[unit] = exc

    def summary(self) -> str:
        lines = ["=== Chart Summary ==="]
        for (instrument, difficulty), chart in self.charts.items():
            lines.append(
                f"{instrument:<7} {difficulty:<7} | {len(chart.notes):>4} notes "
                f"| {chart.hold_count:>3} holds | {chart.column_count} columns | {chart.bpm:.1f} BPM"
                + (" (fallback)" if chart.bpm_source == "fallback" else "")
            )
        for (instrument, difficulty), exc in self.failed.items():
            lines.append(f"{instrument:<7} {difficulty:<7} | FAILED: {exc}")
        lines.append("=== End Summary ===")
        return "\n".join(lines)


class Charter:
    def __init__(self, cfg: CharterConfig | None = None):
        self.cfg = (cfg or CharterConfig()).validate()
        self.analyzer = SpectralAnalyzer.from_config(self.cfg)
        logger.debug("Charter config: %s", self.cfg.to_dict())

    # ------------------------------
    # ANALYSIS
    # ------------------------------
    def analyze(self, samples: Samples, instrument: str) -> Analysis:
        band = FrequencyBand.for_instrument(instrument)
        logger.info("Filtering audio to %s frequency band (%.0f-%.0f Hz)", band.name, band.low_hz, band.high_hz)
        filtered = bandpass_filter(samples, band)
        return Analysis(band, filtered, self.analyzer.analyze(filtered))

    def generate_chart(self, analysis: Analysis, song_id: str, instrument: str, difficulty) -> Chart:
        preset = difficulty if isinstance(difficulty, DifficultyPreset) else preset_for(difficulty)
        cfg = self.cfg
        spectro = analysis.spectrogram

        envelope = spectro.envelope().smoothed(cfg.smooth_frames)
        threshold = preset.peak_threshold(cfg.peak_threshold)
        beats = detect_beats(
            envelope,
            threshold,
            min_interval=cfg.min_peak_interval,
            default_bpm=cfg.default_bpm,
            bpm_override=cfg.bpm,
            min_bpm=cfg.min_bpm,
            max_bpm=cfg.max_bpm,
        )

        onsets = thin_onsets(beats.times, preset.min_note_gap)
        if preset.gap_fill and len(envelope):
            floor = threshold * float(envelope.energy.max())
            onsets = fill_gaps(onsets, lambda t: envelope.energy[spectro.frame_index(t)], floor)

        grid_division = preset.grid_division(cfg.grid_division)
        times = quantize(onsets, beats.bpm, grid_division, cfg.dedup_tolerance, max_time=analysis.duration)

        lane_energy = spectro.band_energies(lane_bands(analysis.band, preset.lane_count))
        note_energy = None
        if isinstance(cfg.lane_strategy, Frequency):
            note_energy = lane_energy[[spectro.frame_index(t) for t in times]]
        notes = assign_lanes(times, preset.lane_count, cfg.lane_strategy, note_energy)
        notes = detect_holds(
            notes, lane_energy, spectro.times,
            cfg.sustain_threshold, cfg.min_hold_duration, analysis.duration,
        )

        chart = build_chart(
            notes,
            song_id=song_id,
            instrument=instrument,
            difficulty=preset.name,
            column_count=preset.lane_count,
            bpm=beats.bpm,
            duration=analysis.duration,
            bpm_source=beats.bpm_source,
        )
        logger.info("%s %s: %d notes (%d holds) on a 1/%d grid",
                    instrument, preset.name, len(chart.notes), chart.hold_count, grid_division)
        return chart

    def _map(self, fn, items):
        # results come back in submission order
        if self.cfg.workers > 1:
            with ThreadPoolExecutor(max_workers=self.cfg.workers) as pool:
                return list(pool.map(fn, items))
        return [fn(item) for item in items]

    # ------------------------------
    # GENERATE
    # ------------------------------
    def generate_from_samples(self, samples: Samples, song_id: str, instrument: str) -> list[Chart]:
        analysis = self.analyze(samples, instrument)
        return self._map(
            lambda preset: self.generate_chart(analysis, song_id, instrument, preset),
            DIFFICULTY_PRESETS,
        )

    def generate_all_difficulties(self, audio_path: str | Path, song_id: str, instrument: str) -> list[Chart]:
        """Easy, Normal, Hard and Expert charts for one instrument; the first failure propagates."""
        return self.generate_from_samples(load_audio(audio_path), song_id, instrument)

    # ------------------------------
    # RUN & EXPORT
    # ------------------------------
    def _run_unit(self, analysis, song_id, instrument, preset, output_dir, fmt):
        try:
            chart = self.generate_chart(analysis, song_id, instrument, preset)
            return chart, save_chart(chart, output_dir, fmt), None
        except CharterError as exc:
            return None, None, exc

    def _run_instrument(self, samples, song_id, instrument, output_dir, fmt, report: RunReport):
        try:
            analysis = self.analyze(samples, instrument)
        except CharterError as exc:
            for preset in DIFFICULTY_PRESETS:
                report.fail((instrument, preset.name), exc)
            return

        results = self._map(
            lambda preset: self._run_unit(analysis, song_id, instrument, preset, output_dir, fmt),
            DIFFICULTY_PRESETS,
        )
        for preset, (chart, path, exc) in zip(DIFFICULTY_PRESETS, results):
            unit = (instrument, preset.name)
            if exc is not None:
                report.fail(unit, exc)
                continue
            report.charts[unit] = chart
            report.succeeded[unit] = path
            if chart.bpm_source == "fallback":
                logger.warning("%s/%s uses the fallback tempo of %.0f BPM", instrument, preset.name, chart.bpm)

    def run(
        self,
        audio_path: str | Path,
        song_id: str,
        instrument: str,
        output_dir: str | Path = ".",
        fmt: ChartFormat | str = ChartFormat.JSON,
    ) -> RunReport:
        return self.run_batch(audio_path, song_id, [instrument], output_dir, fmt)

    def run_batch(
        self,
        audio_path: str | Path,
        song_id: str,
        instruments=INSTRUMENTS,
        output_dir: str | Path = ".",
        fmt: ChartFormat | str = ChartFormat.JSON,
    ) -> RunReport:
        """Write one chart file per (instrument, difficulty); failures are isolated per unit."""
        fmt = ChartFormat.parse(fmt)
        report = RunReport()
        logger.info("Starting chart generation for %s (%s)", song_id, ", ".join(instruments))

        try:
            samples = load_audio(audio_path)
        except (CharterError, OSError) as exc:
            for instrument in instruments:
                for preset in DIFFICULTY_PRESETS:
                    report.fail((instrument, preset.name), exc)
            return report

        for instrument in instruments:
            self._run_instrument(samples, song_id, instrument, output_dir, fmt, report)
        logger.info("Wrote %d of %d charts", len(report.succeeded), len(report.succeeded) + len(report.failed))
        return report

    def preview(self, chart: Chart, output_path: str | Path | None = None):
        from .preview import render_chart

        return render_chart(chart, output_path)
