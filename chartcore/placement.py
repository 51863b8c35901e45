from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class Bounds:
    """Closed 1-D pixel interval ``[lo, hi]``."""

    lo: float
    hi: float

    def __post_init__(self) -> None:
        if self.hi < self.lo:
            raise ValueError("bounds hi must be >= lo")

    @classmethod
    def of(cls, a: float, b: float) -> "Bounds":
        return cls(lo=float(min(a, b)), hi=float(max(a, b)))

    @property
    def extent(self) -> float:
        return self.hi - self.lo


BoundsLike: TypeAlias = Bounds | tuple[float, float]


def overlaps(prev: BoundsLike, candidate: BoundsLike, margin: float = 0.0) -> bool:
    """True if either interval's lower edge lies inside the other's span widened by ``margin``."""
    p = _as_bounds(prev)
    c = _as_bounds(candidate)
    m = float(margin)
    if p.lo - m <= c.lo <= p.hi + m:
        return True
    return c.lo - m <= p.lo <= c.hi + m


def accept_if_clear(prev: BoundsLike | None, candidate: BoundsLike, margin: float = 0.0) -> Bounds:
    """Return the bounds the next check should chain from.

    That is ``candidate`` when it is clear of ``prev`` (or there is no
    ``prev``), otherwise ``prev`` unchanged.
    """
    c = _as_bounds(candidate)
    if prev is None:
        return c
    p = _as_bounds(prev)
    if overlaps(p, c, margin):
        return p
    return c


class LabelPlacer:
    """Chains ``accept_if_clear`` over a run of labels, rows or titles."""

    def __init__(self, margin: float = 0.0) -> None:
        if margin < 0:
            raise ValueError("margin must be >= 0")
        self.margin = float(margin)
        self._last: Bounds | None = None

    @property
    def last(self) -> Bounds | None:
        return self._last

    def offer(self, candidate: BoundsLike) -> bool:
        accepted = accept_if_clear(self._last, candidate, self.margin)
        placed = self._last is None or accepted is not self._last
        self._last = accepted
        return placed

    def reset(self, start: BoundsLike | None = None) -> None:
        self._last = None if start is None else _as_bounds(start)


def _as_bounds(value: BoundsLike) -> Bounds:
    if isinstance(value, Bounds):
        return value
    lo, hi = value
    return Bounds.of(lo, hi)
