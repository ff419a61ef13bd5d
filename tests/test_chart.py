import json

import pytest

from beatchart.chart import (
    Note,
    build_chart,
    chart_filename,
    load_chart,
    load_json,
    parse_chart_text,
    render_chart_text,
    save_chart,
)
from beatchart.config import ChartFormat
from beatchart.errors import ChartIOError, InvalidLaneCount


def sample_chart(difficulty="Easy", columns=4):
    notes = [Note(1.0, 2), Note(0.5, 3, 0.75), Note(0.5, 1), Note(2.25, 0), Note(0.5, 1)]
    return build_chart(
        notes,
        song_id="test song",
        instrument="vocals",
        difficulty=difficulty,
        column_count=columns,
        bpm=120.0,
        duration=3.0,
        generated_at=1700000000,
    )


def test_notes_sorted_by_time_then_lane_without_duplicates():
    chart = sample_chart()
    assert [(n.time, n.lane) for n in chart.notes] == [(0.5, 1), (0.5, 3), (1.0, 2), (2.25, 0)]


def test_lane_out_of_range_is_rejected():
    with pytest.raises(InvalidLaneCount):
        build_chart([Note(0.0, 4)], song_id="s", instrument="bass", difficulty="Easy", column_count=4, bpm=100.0)


def test_note_outside_signal_is_rejected():
    with pytest.raises(ValueError):
        build_chart([Note(5.0, 0)], song_id="s", instrument="bass", difficulty="Easy",
                    column_count=4, bpm=100.0, duration=4.0)


def test_json_layout():
    data = json.loads(sample_chart().to_json())
    assert data["songId"] == "test song"
    assert data["columnCount"] == 4
    assert data["bpm"] == 120.0
    assert data["generatedAt"] == 1700000000
    assert data["notes"][0] == {"time": 0.5, "col": 1}
    assert data["notes"][1] == {"time": 0.5, "col": 3, "duration": 0.75}


def test_json_round_trip():
    original = sample_chart().to_json()
    parsed = load_json(original)
    assert parsed.to_json() == original
    assert parsed.notes == sample_chart().notes


def test_sub_millisecond_notes_keep_order_through_json():
    chart = build_chart(
        [Note(0.5001, 3), Note(0.5004, 1), Note(1.23456, 2, 0.50049)],
        song_id="s", instrument="drums", difficulty="Hard",
        column_count=4, bpm=120.0, generated_at=1700000000,
    )
    assert [(n.time, n.lane) for n in chart.notes] == [(0.5, 1), (0.5, 3), (1.235, 2)]
    assert chart.notes[2].duration == 0.5

    text = chart.to_json()
    parsed = load_json(text)
    assert parsed.notes == chart.notes
    assert parsed.to_json() == text


def test_chart_text_header_matches_note_lines():
    text = render_chart_text([sample_chart()])
    assert "BPM = 120" in text
    assert "Difficulty = Easy" in text
    assert "Columns = 4" in text
    assert "  Notes = 4" in text

    body = text.split(":\n", 1)[1].split(";", 1)[0]
    lines = [line for line in body.splitlines() if line.strip()]
    assert len(lines) == 4
    assert "  2|3|0.500|0.750" in lines
    assert "  1|1|0.500" in lines


def test_chart_text_parses_back():
    charts = [sample_chart("Hard"), sample_chart("Expert", 5)]
    parsed = parse_chart_text(render_chart_text(charts))

    assert [c.difficulty for c in parsed] == ["Hard", "Expert"]
    assert [c.column_count for c in parsed] == [4, 5]
    assert parsed[0].song_id == "test song"
    assert parsed[0].notes == charts[0].notes


def test_chart_text_count_mismatch_is_an_error():
    text = render_chart_text([sample_chart()]).replace("Notes = 4", "Notes = 5")
    with pytest.raises(ValueError):
        parse_chart_text(text)


def test_filename_is_sanitized():
    assert chart_filename("My Song!", "Drums", "Expert", ChartFormat.JSON) == "My_Song__drums_expert.json"
    assert chart_filename("a-b", "bass", "Easy", ChartFormat.CHART) == "a_b_bass_easy.chart"


@pytest.mark.parametrize("fmt", [ChartFormat.JSON, ChartFormat.CHART])
def test_save_writes_one_file(tmp_path, fmt):
    path = save_chart(sample_chart(), tmp_path, fmt)

    assert path == tmp_path / f"test_song_vocals_easy.{fmt.extension}"
    assert list(tmp_path.iterdir()) == [path]
    loaded = load_chart(path)
    assert len(loaded) == 1
    assert loaded[0].notes == sample_chart().notes


def test_unwritable_output_raises_io_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(ChartIOError):
        save_chart(sample_chart(), blocker / "charts")


def test_format_parsing():
    assert ChartFormat.parse("json") is ChartFormat.JSON
    assert ChartFormat.parse("chart-text") is ChartFormat.CHART
    assert ChartFormat.parse(ChartFormat.CHART) is ChartFormat.CHART
    with pytest.raises(ValueError):
        ChartFormat.parse("xml")
