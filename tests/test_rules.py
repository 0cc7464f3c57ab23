from __future__ import annotations

import json
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from rules import baseline_rules, load_rules, normalize_rules, reset_rules, save_rules  # noqa: E402


def test_missing_file_gives_baseline(tmp_path):
    assert load_rules(tmp_path / "absent.json") == baseline_rules()


def test_partial_file_is_merged(tmp_path):
    target = tmp_path / "rules.json"
    target.write_text(json.dumps({"max_shift_hours": "10", "business_hours": {"end": "22:00"}, "unknown": 1}))
    rules = load_rules(target)
    assert rules["max_shift_hours"] == 10.0
    assert rules["business_hours"] == {"start": "08:00", "end": "22:00"}
    assert rules["overtime_threshold_hours"] == 40.0
    assert "unknown" not in rules


def test_unreadable_file_falls_back(tmp_path, caplog):
    target = tmp_path / "rules.json"
    target.write_text("[1, 2")
    assert load_rules(target) == baseline_rules()
    assert "Ignoring unreadable rules file" in caplog.text


def test_save_and_reset(tmp_path):
    target = tmp_path / "rules.json"
    save_rules({"min_rest_hours": 8}, target)
    assert load_rules(target)["min_rest_hours"] == 8.0
    reset_rules(target)
    assert load_rules(target) == baseline_rules()


def test_baseline_is_a_copy():
    rules = baseline_rules()
    rules["business_hours"]["end"] = "23:00"
    assert baseline_rules()["business_hours"]["end"] == "20:00"
    assert normalize_rules(None) == baseline_rules()
