from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import json
from typing import Any

from .exceptions import MetadataError

GENERAL_SECTION = "General"


def parse_cfg_text(text: str, section: str = GENERAL_SECTION) -> dict[str, str]:
    """Parse Qt/QSettings style INI text into a flat mapping.

    Only keys of ``section`` are returned, plus keys that appear before any
    section header (MultiMC wrote instance.cfg without one). Comment lines,
    blank lines and lines without ``=`` are ignored. Quoted values are
    unquoted and their backslash escapes resolved.
    """
    values: dict[str, str] = {}
    current: str | None = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("[") and line.endswith("]"):
            current = line[1:-1].strip()
            continue
        if current is not None and current != section:
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = _unquote(value.strip())
    return values


def read_cfg_file(path: Path, section: str = GENERAL_SECTION) -> dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise MetadataError(f"Could not read {path.name}: {exc}") from exc
    return parse_cfg_text(text, section=section)


def read_json_file(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, UnicodeError) as exc:
        raise MetadataError(f"Could not read {path.name}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MetadataError(f"Invalid JSON in {path.name}") from exc


def _unquote(value: str) -> str:
    if len(value) < 2 or value[0] != '"' or value[-1] != '"':
        return value
    inner = value[1:-1]
    chars: list[str] = []
    escaped = False
    for char in inner:
        if escaped:
            chars.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        else:
            chars.append(char)
    return "".join(chars)


def parse_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def millis_to_datetime(value: object) -> datetime | None:
    millis = parse_int(value)
    if millis is None or millis <= 0:
        return None
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def format_last_played(when: datetime | None, now: datetime | None = None) -> str:
    if when is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    elapsed = (now - when).total_seconds()
    if elapsed < 0:
        return "Recently"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = int(elapsed // size)
        if count > 0:
            return f"{count} {unit}{'' if count == 1 else 's'} ago"
    return "Just now"
