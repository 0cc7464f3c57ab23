from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
RULES_FILE = DATA_DIR / "schedule_rules.json"

BASELINE_RULES: Dict[str, Any] = {
    "overtime_threshold_hours": 40.0,
    "overtime_multiplier": 1.5,
    "max_shift_hours": 12.0,
    "min_rest_hours": 11.0,
    "break_minutes": 30,
    "business_hours": {"start": "08:00", "end": "20:00"},
    "default_period": "week",
    "default_range_days": 7,
}

logger = logging.getLogger(__name__)


def baseline_rules() -> Dict[str, Any]:
    return copy.deepcopy(BASELINE_RULES)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if key not in base:
            continue
        if isinstance(base[key], dict) and isinstance(value, dict):
            _merge(base[key], value)
            continue
        if isinstance(base[key], (int, float)) and not isinstance(base[key], bool):
            try:
                value = type(base[key])(value)
            except (TypeError, ValueError):
                continue
        base[key] = value
    return base


def normalize_rules(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge a partial rules payload over the baseline, dropping unknown keys."""
    rules = baseline_rules()
    if isinstance(payload, dict):
        _merge(rules, payload)
    return rules


def load_rules(path: Optional[Path] = None) -> Dict[str, Any]:
    target = path or RULES_FILE
    if not target.exists():
        return baseline_rules()
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("rules file must hold a JSON object")
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable rules file %s: %s", target, exc)
        return baseline_rules()
    return normalize_rules(data)


def save_rules(rules: Dict[str, Any], path: Optional[Path] = None) -> Path:
    target = path or RULES_FILE
    target.write_text(json.dumps(normalize_rules(rules), indent=2, sort_keys=True), encoding="utf-8")
    return target


def reset_rules(path: Optional[Path] = None) -> None:
    save_rules(baseline_rules(), path)
