"""Parse ``key=value`` command-line tokens into query parameters and directives."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ParasError

SORT_KEY = "__sort"
MIN_KEY = "__min"
LIMIT_KEY = "__limit"
SKIP_KEY = "__skip"

DEFAULT_LIMIT = "30"
DEFAULT_SORT = "_id::1"


@dataclass(frozen=True)
class SortSpec:
    """Field path plus an opaque direction token, from ``__sort=a.b::-1``."""

    path: tuple[str, ...]
    direction: str

    @classmethod
    def parse(cls, raw: str) -> SortSpec:
        key, sep, direction = raw.partition("::")
        if not sep or "::" in direction:
            raise ParasError("VALIDATION", f"invalid sort key spec: {raw!r} (expected FIELD::DIRECTION)", 0)
        if not key:
            raise ParasError("VALIDATION", f"invalid sort key spec: {raw!r} (empty field path)", 0)
        return cls(tuple(key.split(".")), direction)


@dataclass(frozen=True)
class QuerySpec:
    pairs: tuple[tuple[str, str], ...]
    sort: SortSpec | None = None
    min_count: int | None = None
    skip: int = 0
    defaults: tuple[tuple[str, str], ...] = field(default=())

    def request_params(self) -> list[tuple[str, str]]:
        """Injected defaults first, then the caller's pairs in their original order."""
        return list(self.defaults) + list(self.pairs)


def _split_token(token: str) -> tuple[str, str]:
    key, sep, value = token.partition("=")
    if not sep:
        raise ParasError("VALIDATION", f"invalid query argument: {token!r} (expected KEY=VALUE)", 0)
    return key, value


def _parse_min(raw: str) -> int:
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ParasError("VALIDATION", f"{MIN_KEY} must be a non-negative integer, got: {raw}", 0) from exc
    if parsed < 0:
        raise ParasError("VALIDATION", f"{MIN_KEY} must be >= 0", 0)
    return parsed


def _parse_skip(raw: str) -> int:
    """Starting offset for window paging; 0 when the value is not a non-negative integer."""
    try:
        parsed = int(raw)
    except ValueError:
        return 0
    return max(parsed, 0)


def _first(pairs, key: str) -> str | None:
    for k, v in pairs:
        if k == key:
            return v
    return None


def parse_query_args(tokens) -> QuerySpec:
    """Build a :class:`QuerySpec` from raw ``key=value`` tokens.

    Every token is validated before anything else is inspected, so a single
    malformed token rejects the whole query. Reserved keys stay in the pair
    list and are forwarded to the server as-is.
    """
    pairs = tuple(_split_token(token) for token in tokens)

    defaults = []
    if _first(pairs, LIMIT_KEY) is None:
        defaults.append((LIMIT_KEY, DEFAULT_LIMIT))

    # The default sort only goes on the wire; the identity cursor already covers it.
    raw_sort = _first(pairs, SORT_KEY)
    if raw_sort is None:
        defaults.append((SORT_KEY, DEFAULT_SORT))
        sort = None
    else:
        sort = SortSpec.parse(raw_sort)

    raw_min = _first(pairs, MIN_KEY)
    min_count = _parse_min(raw_min) if raw_min is not None else None

    raw_skip = _first(pairs, SKIP_KEY)
    skip = _parse_skip(raw_skip) if raw_skip is not None else 0

    return QuerySpec(pairs=pairs, sort=sort, min_count=min_count, skip=skip, defaults=tuple(defaults))


def format_query_args(pairs) -> list[str]:
    """Inverse of the token split: ``[("a", "1")] -> ["a=1"]``."""
    return [f"{k}={v}" for k, v in pairs]


def merge_params(base: list[tuple[str, str]], extra: list[tuple[str, str]]) -> list[tuple[str, str]]:
    """Append ``extra`` after ``base``.

    Every base pair is kept, caller-supplied ``*_next`` cursors included,
    except ``__skip``: a window offset in ``extra`` replaces the caller's.
    """
    if not extra:
        return list(base)
    replaces_skip = any(k == SKIP_KEY for k, _ in extra)
    return [(k, v) for k, v in base if not (replaces_skip and k == SKIP_KEY)] + list(extra)
