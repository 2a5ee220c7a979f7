"""Utility helpers for reading score record files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import orjson


def load_json(path: Path) -> Any:
    """Parse a whole score-record JSON file (a top-level array of documents)."""
    with path.open("rb") as f:
        return orjson.loads(f.read())


def load_jsonl(path: Path) -> Iterator[Any]:
    """Yield one score-record document per non-blank line of a JSON Lines file."""
    with path.open("rb") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            yield orjson.loads(line)


def dumps_json(data: Any) -> str:
    """Serialise a dumped result model to a JSON string for the CLI report."""
    return orjson.dumps(data).decode("utf-8")


def format_float(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)
