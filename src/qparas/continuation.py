"""Derive next-page cursor parameters from the last record of a page."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .query import SortSpec

IDENTITY_PATH = ("_id",)
NEXT_SUFFIX = "_next"


class ContinuationState(Enum):
    START = "start"
    CONTINUE = "continue"
    STOP = "stop"


@dataclass(frozen=True)
class Continuation:
    """Where the pagination loop stands before the next request.

    ``START`` means no request was made yet, ``CONTINUE`` carries the
    parameters to merge into the next request, ``STOP`` is terminal.
    """

    state: ContinuationState
    params: tuple[tuple[str, str], ...] = ()

    @classmethod
    def start(cls) -> Continuation:
        return cls(ContinuationState.START)

    @classmethod
    def stop(cls) -> Continuation:
        return cls(ContinuationState.STOP)

    @classmethod
    def of(cls, params) -> Continuation:
        """``CONTINUE`` with ``params``, or ``STOP`` if there are none."""
        params = tuple(params)
        if not params:
            return cls.stop()
        return cls(ContinuationState.CONTINUE, params)

    @property
    def stopped(self) -> bool:
        return self.state is ContinuationState.STOP


def resolve_path(record: object, path) -> object | None:
    """Follow ``path`` key by key; ``None`` if any segment is missing."""
    node = record
    for segment in path:
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return node


def format_cursor_value(value: object) -> str | None:
    """Render a string or number the way the API expects it back; else ``None``."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        # Shortest round-trip digits, no exponent, no trailing ".0": 1e24 -> "1000000000000000000000000".
        text = format(Decimal(repr(value)), "f")
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return None


def derive_continuation(last_record: object | None, sort: SortSpec | None = None) -> Continuation:
    """Cursor parameters for the page after the one ending in ``last_record``.

    The identity cursor ``_id_next`` is always attempted; a sort field
    ``a.b`` additionally yields ``b_next``. Paths that do not resolve, or
    resolve to something other than a string or number, are skipped.
    """
    if last_record is None:
        return Continuation.stop()

    paths = [IDENTITY_PATH]
    if sort is not None:
        paths.append(sort.path)

    params = []
    for path in paths:
        if not path:
            continue
        value = format_cursor_value(resolve_path(last_record, path))
        if value is None:
            continue
        name = f"{path[-1]}{NEXT_SUFFIX}"
        if any(existing == name for existing, _ in params):
            continue
        params.append((name, value))

    return Continuation.of(params)
