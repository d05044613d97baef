"""Structural classification of decoded API response bodies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

DATA_KEY = "data"
RESULTS_KEY = "results"


@dataclass(frozen=True)
class SingleValue:
    """A non-paginated payload, kept whole."""

    value: object


@dataclass(frozen=True)
class Window:
    """One offset-paged page: ``{"data": [...]}``."""

    records: list


@dataclass(frozen=True)
class CursorPage:
    """One cursor-paged page: ``{"data": {"results": [...], ...}}``."""

    records: list


ResponseShape = Union[SingleValue, Window, CursorPage]


def classify_response(body: object) -> ResponseShape:
    """Classify ``body`` by the fields it carries; never raises."""
    if isinstance(body, dict):
        data = body.get(DATA_KEY)
        if isinstance(data, dict) and isinstance(data.get(RESULTS_KEY), list):
            return CursorPage(data[RESULTS_KEY])
        if isinstance(data, list):
            return Window(data)
    return SingleValue(body)
