
import json
import logging
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from moodcast import main as cli
from moodcast.adapters.repositories.mongo import MongoDBConnectionError


@pytest.fixture
def entries_file(tmp_path):
    start = datetime(2025, 5, 10, 20, 0)
    entries = [
        {"id": f"e{i}", "createdAt": (start + timedelta(days=i)).isoformat(), "mood": 5 + i % 3, "content": f"Day {i}"}
        for i in range(14)
    ]
    entries.append({"id": "broken", "mood": 4})
    path = tmp_path / "journal.json"
    path.write_text(json.dumps(entries), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keeps the console handler off stdout so JSON output stays parseable."""
    with patch("moodcast.main.setup_logger") as mock_setup:
        yield mock_setup


class TestArguments:

    def test_defaults(self):
        args = cli.parse_arguments([])
        assert args.days == 1
        assert args.date is None
        assert args.dry_run is False

    def test_lat_requires_lon(self):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["--lat", "48.8"])

    @pytest.mark.parametrize("days", ["0", "31"])
    def test_days_range(self, days):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["--days", days])

    def test_sources_are_exclusive(self):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["--entries", "a.json", "--from-db"])


class TestMainExecution:
    """Test suite for the CLI orchestration."""

    def test_json_forecast_from_file(self, entries_file, capsys):
        code = cli.main(["--entries", entries_file, "--date", "2025-06-03", "--days", "3", "--json"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert [p["date"] for p in data] == ["2025-06-03", "2025-06-04", "2025-06-05"]
        assert all(2.0 <= p["predicted_mood"] <= 10.0 for p in data)

    def test_text_forecast(self, entries_file, capsys):
        assert cli.main(["--entries", entries_file, "--date", "2025-06-03"]) == 0
        out = capsys.readouterr().out
        assert "Tue 03 Jun" in out
        assert "/10" in out

    def test_missing_entries_file(self, tmp_path):
        assert cli.main(["--entries", str(tmp_path / "missing.json")]) == 1

    def test_database_unavailable(self):
        with patch("moodcast.main.mongo_client.connect", side_effect=MongoDBConnectionError("timeout")):
            assert cli.main(["--from-db"]) == 1

    def test_database_source(self, capsys):
        repository = MagicMock()
        repository.load_entries.return_value = []
        repository.load_patterns.return_value = []
        repository.load_occupation.return_value = None
        with patch("moodcast.main.mongo_client.connect"), \
             patch("moodcast.main.mongo_client.MoodRepository", return_value=repository):
            assert cli.main(["--from-db", "--json", "--date", "2025-06-03"]) == 0

        repository.load_entries.assert_called_once()
        assert json.loads(capsys.readouterr().out)[0]["personal_baseline"] == 6.0

    def test_dry_run_writes_prompt(self, entries_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch("moodcast.main.gemini_client.create_text_generator") as mock_factory:
            assert cli.main(["--entries", entries_file, "--extract-patterns", "--dry-run"]) == 0

        mock_factory.assert_not_called()
        prompt = (tmp_path / cli.DRY_RUN_PROMPT_FILE).read_text(encoding="utf-8")
        assert "--- SYSTEM ---" in prompt
        assert "Day 13" in prompt

    def test_extract_patterns_before_forecast(self, entries_file, capsys, caplog):
        caplog.set_level(logging.INFO)
        response = json.dumps({
            "schemaVersion": "1",
            "weekdayPatterns": [
                {"dayName": "Tuesday", "description": "Tuesdays are choir night", "moodImpact": 1.0, "confidence": 0.9},
            ],
        })
        with patch("moodcast.main.gemini_client.create_text_generator", return_value=MagicMock(return_value=response)):
            assert cli.main(["--entries", entries_file, "--extract-patterns", "--date", "2025-06-03", "--json"]) == 0

        assert "1 new patterns learned" in caplog.text
        assert json.loads(capsys.readouterr().out)[0]["primary_insight"] == "Tuesdays are choir night"

    def test_weather_with_coordinates(self, entries_file, capsys):
        snapshot = MagicMock(return_value=None)
        with patch("moodcast.main.weather_client.fetch_weather_snapshot", snapshot):
            assert cli.main(["--entries", entries_file, "--date", "2025-06-03", "--lat", "48.85", "--lon", "2.35", "--json"]) == 0

        snapshot.assert_called_once()
        assert snapshot.call_args[0][1] == (48.85, 2.35)
