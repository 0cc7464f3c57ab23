from __future__ import annotations

from typing import Dict, Iterable, List, Tuple


DEPARTMENT_POSITIONS: Dict[str, List[str]] = {
    "service": [
        "serveur",
        "barista",
        "caissier",
    ],
    "cuisine": [
        "chef",
    ],
    "management": [
        "manager",
    ],
    "maintenance": [
        "nettoyage",
    ],
}

DEPARTMENT_LABELS: Dict[str, str] = {
    "service": "Service",
    "cuisine": "Kitchen",
    "management": "Management",
    "maintenance": "Maintenance",
}

POSITION_LABELS: Dict[str, str] = {
    "serveur": "Server",
    "barista": "Barista",
    "caissier": "Cashier",
    "chef": "Chef",
    "manager": "Manager",
    "nettoyage": "Cleaning",
}

DEPARTMENT_COLORS: Dict[str, str] = {
    "service": "#3B82F6",
    "cuisine": "#EF4444",
    "management": "#8B5CF6",
    "maintenance": "#F59E0B",
    "other": "#6B7280",
}

# Legacy labels still found in older exports.
_ALIASES: List[Tuple[str, str]] = [
    ("server", "serveur"),
    ("waiter", "serveur"),
    ("cashier", "caissier"),
    ("cleaner", "nettoyage"),
    ("cleaning", "nettoyage"),
    ("kitchen", "cuisine"),
    ("cook", "chef"),
]


def normalize_label(value: str) -> str:
    return (value or "").strip().lower()


def canonical(value: str) -> str:
    label = normalize_label(value)
    for alias, target in _ALIASES:
        if label == alias:
            return target
    return label


def defined_departments() -> List[str]:
    return list(DEPARTMENT_POSITIONS)


def defined_positions() -> List[str]:
    """Return a sorted list of positions explicitly supported by the app."""
    positions: List[str] = []
    for names in DEPARTMENT_POSITIONS.values():
        positions.extend(names)
    return sorted(set(positions))


def is_known_department(department: str) -> bool:
    return canonical(department) in DEPARTMENT_POSITIONS


def is_known_position(position: str) -> bool:
    return canonical(position) in POSITION_LABELS


def position_department(position: str) -> str:
    label = canonical(position)
    if not label:
        return "other"
    for department, names in DEPARTMENT_POSITIONS.items():
        if label in names:
            return department
    return "other"


def department_label(department: str) -> str:
    label = canonical(department)
    return DEPARTMENT_LABELS.get(label, department)


def position_label(position: str) -> str:
    label = canonical(position)
    return POSITION_LABELS.get(label, position)


def palette_for_department(department: str) -> str:
    return DEPARTMENT_COLORS.get(canonical(department), DEPARTMENT_COLORS["other"])


def grouped_positions(positions: Iterable[str]) -> Dict[str, List[str]]:
    mapping: Dict[str, List[str]] = {department: [] for department in DEPARTMENT_POSITIONS}
    mapping["other"] = []
    for position in positions:
        if not position:
            continue
        department = position_department(position)
        if position not in mapping.setdefault(department, []):
            mapping[department].append(position)
    for department in mapping:
        mapping[department].sort()
    return {department: entries for department, entries in mapping.items() if entries}
