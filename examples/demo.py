from beatchart import Charter, CharterConfig, Random

AUDIO_FILE_PATH = "path/to/your/audiofile.wav"
SONG_ID = "demo song"
INSTRUMENT = "drums"

charter = Charter(CharterConfig(grid_division=4, lane_strategy=Random(seed=7)))
charts = charter.generate_all_difficulties(AUDIO_FILE_PATH, SONG_ID, INSTRUMENT)

for chart in charts:
    print(chart.difficulty, len(chart.notes), "notes")

# Write every difficulty as chart-text
report = charter.run(AUDIO_FILE_PATH, SONG_ID, INSTRUMENT, output_dir="charts", fmt="chart")
print(report.summary())

# Optional preview
charter.preview(charts[-1], "demo_expert.png")
