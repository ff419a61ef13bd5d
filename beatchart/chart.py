import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import ChartFormat
from .errors import ChartIOError, InvalidLaneCount

logger = logging.getLogger(__name__)

DIFFICULTIES = ("Easy", "Normal", "Hard", "Expert")
TAP, HOLD = 1, 2
TIME_DECIMALS = 3

SAFE_NAME = re.compile(r"[^A-Za-z0-9]")
NOTE_LINE = re.compile(r"^([12])\|(\d+)\|(-?\d+(?:\.\d+)?)(?:\|(\d+(?:\.\d+)?))?$")
KEY_VALUE = re.compile(r"^(\w+)\s*=\s*(.*)$")


@dataclass(frozen=True)
class Note:
    time: float
    lane: int
    duration: Optional[float] = None

    @property
    def is_hold(self) -> bool:
        return self.duration is not None

    def to_dict(self) -> dict:
        data = {"time": round(self.time, TIME_DECIMALS), "col": int(self.lane)}
        if self.duration is not None:
            data["duration"] = round(self.duration, TIME_DECIMALS)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        duration = data.get("duration")
        return cls(float(data["time"]), int(data["col"]), float(duration) if duration else None)


@dataclass(frozen=True)
class Chart:
    song_id: str
    instrument: str
    difficulty: str
    column_count: int
    bpm: float
    notes: tuple
    generated_at: Optional[int] = None
    bpm_source: str = "detected"

    def __len__(self):
        return len(self.notes)

    @property
    def hold_count(self) -> int:
        return sum(1 for n in self.notes if n.is_hold)

    # ------------------------------
    # JSON
    # ------------------------------
    def to_dict(self) -> dict:
        return {
            "songId": self.song_id,
            "instrument": self.instrument,
            "difficulty": self.difficulty,
            "columnCount": self.column_count,
            "bpm": self.bpm,
            "generatedAt": self.generated_at,
            "notes": [n.to_dict() for n in self.notes],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> "Chart":
        return build_chart(
            [Note.from_dict(n) for n in data.get("notes", [])],
            song_id=data["songId"],
            instrument=data["instrument"],
            difficulty=data["difficulty"],
            column_count=int(data["columnCount"]),
            bpm=float(data["bpm"]),
            generated_at=data.get("generatedAt"),
        )


def build_chart(
    notes,
    *,
    song_id: str,
    instrument: str,
    difficulty: str,
    column_count: int,
    bpm: float,
    duration: float | None = None,
    generated_at: int | None = None,
    bpm_source: str = "detected",
) -> Chart:
    """Round to millisecond precision, order notes by (time, lane), drop duplicates and check ranges."""
    rounded = []
    for note in notes:
        if not 0 <= note.lane < column_count:
            raise InvalidLaneCount(f"Lane {note.lane} outside 0..{column_count - 1}")
        if note.time < 0 or (duration is not None and note.time > duration):
            raise ValueError(f"Note time {note.time:.3f}s outside the signal")
        hold = round(note.duration, TIME_DECIMALS) if note.duration is not None else None
        rounded.append(Note(round(note.time, TIME_DECIMALS), note.lane, hold))

    ordered = []
    seen = set()
    for note in sorted(rounded, key=lambda n: (n.time, n.lane)):
        key = (note.time, note.lane)
        if key in seen:
            continue
        seen.add(key)
        ordered.append(note)

    return Chart(
        song_id=song_id,
        instrument=instrument,
        difficulty=difficulty,
        column_count=column_count,
        bpm=bpm,
        notes=tuple(ordered),
        generated_at=int(time.time()) if generated_at is None else generated_at,
        bpm_source=bpm_source,
    )


def load_json(text: str) -> Chart:
    return Chart.from_dict(json.loads(text))


# ------------------------------
# Chart-text
# ------------------------------
def _number(value: float) -> str:
    return f"{round(value, 3):g}"


def render_chart_text(charts) -> str:
    """Render one [SONG] block and a [NOTES] block per chart."""
    charts = list(charts)
    if not charts:
        raise ValueError("Nothing to render")
    head = charts[0]

    lines = [
        "[SONG]",
        f'  Title = "{head.song_id}"',
        '  Artist = ""',
        f"  BPM = {_number(head.bpm)}",
        "  Gap = 0",
        "",
    ]
    for chart in charts:
        lines += [
            "[NOTES]",
            f"  Instrument = {chart.instrument}",
            f"  Difficulty = {chart.difficulty}",
            f"  Columns = {chart.column_count}",
            f"  BPM = {_number(chart.bpm)}",
            f"  Notes = {len(chart.notes)}",
            ":",
        ]
        for note in chart.notes:
            if note.is_hold:
                lines.append(f"  {HOLD}|{note.lane}|{note.time:.3f}|{note.duration:.3f}")
            else:
                lines.append(f"  {TAP}|{note.lane}|{note.time:.3f}")
        lines += [";", ""]
    return "\n".join(lines)


def parse_chart_text(text: str) -> list[Chart]:
    song = {}
    blocks = []
    section = None
    current = None
    in_notes = False

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if line in ("[SONG]", "[NOTES]"):
            section = line
            if section == "[NOTES]":
                current = {"notes": []}
                blocks.append(current)
            continue
        if section == "[NOTES]" and line == ":":
            in_notes = True
            continue
        if section == "[NOTES]" and line == ";":
            in_notes = False
            continue
        if in_notes:
            match = NOTE_LINE.match(line)
            if not match:
                raise ValueError(f"Line {number}: malformed note {line!r}")
            kind, col, start, length = match.groups()
            if int(kind) == HOLD and length is None:
                raise ValueError(f"Line {number}: hold without a duration")
            current["notes"].append(Note(float(start), int(col), float(length) if length else None))
            continue
        match = KEY_VALUE.match(line)
        if not match:
            raise ValueError(f"Line {number}: unexpected {line!r}")
        key, value = match.group(1), match.group(2).strip().strip('"')
        (current if section == "[NOTES]" else song)[key] = value

    charts = []
    for block in blocks:
        declared = int(block.get("Notes", -1))
        if declared != len(block["notes"]):
            raise ValueError(f"Notes header says {declared}, found {len(block['notes'])}")
        charts.append(build_chart(
            block["notes"],
            song_id=song.get("Title", ""),
            instrument=block.get("Instrument", ""),
            difficulty=block.get("Difficulty", ""),
            column_count=int(block["Columns"]),
            bpm=float(block.get("BPM", song.get("BPM", 0))),
            generated_at=0,
        ))
    return charts


# ------------------------------
# Files
# ------------------------------
def chart_filename(song_id: str, instrument: str, difficulty: str, fmt: ChartFormat) -> str:
    safe_id = SAFE_NAME.sub("_", song_id)
    return f"{safe_id}_{instrument.lower()}_{difficulty.lower()}.{fmt.extension}"


def save_chart(chart: Chart, output_dir: str | Path, fmt: ChartFormat = ChartFormat.JSON) -> Path:
    output_file = Path(output_dir) / chart_filename(chart.song_id, chart.instrument, chart.difficulty, fmt)
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            if fmt is ChartFormat.JSON:
                json.dump(chart.to_dict(), f, indent=2)
            else:
                f.write(render_chart_text([chart]))
    except OSError as exc:
        raise ChartIOError(f"Cannot write {output_file}: {exc}") from exc
    logger.info("Exported %s chart to %s", chart.difficulty, output_file)
    return output_file


def load_chart(path: str | Path) -> list[Chart]:
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return [load_json(text)]
    return parse_chart_text(text)
