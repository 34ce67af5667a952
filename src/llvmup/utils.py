from __future__ import annotations

import json
from hashlib import sha1
from pathlib import Path

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

_BYTE_UNITS = ("B", "kB", "MB", "GB", "TB")


def stable_id(*parts: str) -> str:
    joined = "|".join(parts)
    return sha1(joined.encode("utf-8")).hexdigest()[:16]


def write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def human_bytes(count: int) -> str:
    value = float(count)
    for unit in _BYTE_UNITS:
        if value < 1000 or unit == _BYTE_UNITS[-1]:
            if unit == "B":
                return f"{int(value)}{unit}"
            return f"{value:.1f}{unit}"
        value /= 1000
    return f"{count}B"


def parse_flag(value: str | None) -> bool | None:
    """Interpret an environment-style boolean; ``None`` when unset or unrecognised."""
    if value is None:
        return None
    clean = value.strip().lower()
    if clean in TRUE_VALUES:
        return True
    if clean in FALSE_VALUES:
        return False
    return None
