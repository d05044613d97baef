"""Result rendering for stdout."""

from __future__ import annotations

import json


def format_json(data: object) -> str:
    """Full JSON, pretty-printed."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_ndjson(data: object) -> list[str]:
    """One compact line per record of an array; a single line for anything else."""
    items = data if isinstance(data, list) else [data]
    return [json.dumps(item, separators=(",", ":"), ensure_ascii=False) for item in items]
