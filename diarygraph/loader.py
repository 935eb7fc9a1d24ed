"""
Read entries from JSON files for indexing.

Accepted layouts:
- a JSON array of entry objects
- a JSON object with an "entries" array
- JSON Lines, one entry object per line (blank lines ignored)
"""

import json
from pathlib import Path
from typing import Iterator, Union


def _parse_document(text: str, source: str) -> list[dict]:
    data = json.loads(text)
    if isinstance(data, dict) and isinstance(data.get("entries"), list):
        data = data["entries"]
    elif isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{source}: expected a list of entries")
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"{source}: entry {i} is not an object")
    return data


def iter_jsonl(text: str, source: str = "<string>") -> Iterator[dict]:
    """Entries from JSON Lines text."""
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"{source}:{lineno}: invalid JSON: {e.msg}") from e
        if not isinstance(entry, dict):
            raise ValueError(f"{source}:{lineno}: entry is not an object")
        yield entry


def parse_entries(text: str, source: str = "<string>") -> list[dict]:
    """Entries from JSON or JSON Lines text.

    Raises:
        ValueError: if the text is neither
    """
    stripped = text.lstrip()
    if not stripped:
        return []
    try:
        return _parse_document(stripped, source)
    except json.JSONDecodeError:
        # More than one top-level value: treat as JSON Lines
        return list(iter_jsonl(text, source))


def load_entries(path: Union[str, Path]) -> list[dict]:
    """Read entries from a file (see module docstring for layouts)."""
    path = Path(path)
    return parse_entries(path.read_text(encoding="utf-8"), str(path))
