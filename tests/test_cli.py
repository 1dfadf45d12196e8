"""Tests for the command-line entrypoint."""

from __future__ import annotations

import json

import pytest

from emotion_nudge.config import Settings
from emotion_nudge.main import analyze_file, main


def _write_events(path, rows):
    path.write_text("\n".join(json.dumps(r) for r in rows) + "\n\n", encoding="utf-8")


def test_analyze_file(tmp_path):
    events = tmp_path / "events.jsonl"
    _write_events(
        events,
        [
            {"emotion": "fear", "confidence": 0.9, "intensity": 0.8, "timestamp": f"2026-03-0{d}T14:00:00Z"}
            for d in (2, 3, 4)
        ]
        + [{"emotion": "joy", "confidence": 0.9, "intensity": 0.3, "timestamp": "2026-03-04T16:00:00Z"}],
    )

    result = analyze_file(events, Settings())

    assert result["events"] == 4
    assert result["insights"]["dominant_emotion"] == "fear"
    assert result["insights"]["confidence"] == pytest.approx(0.2)
    triggers = result["emotional_patterns"]["trigger_patterns"]
    assert triggers == [{"hour": 14, "dominant_emotion": "fear", "frequency": 3, "confidence": 0.3}]
    assert result["emotional_patterns"]["recovery_patterns"][0]["method"] == "intervention_based"


def test_analyze_empty_file(tmp_path):
    events = tmp_path / "empty.jsonl"
    events.write_text("", encoding="utf-8")
    result = analyze_file(events, Settings())
    assert result["events"] == 0
    assert result["insights"]["dominant_emotion"] == "neutral"


def test_cli_without_command_exits(monkeypatch):
    monkeypatch.setattr("emotion_nudge.main.setup_logging", lambda level: None)
    with pytest.raises(SystemExit):
        main([])
