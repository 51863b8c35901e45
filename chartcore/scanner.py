from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Protocol, TypeAlias, runtime_checkable

import numpy as np

from chartcore.adapters import coerce_items, coerce_vector, is_array_like
from chartcore.errors import InvalidContainer


@runtime_checkable
class Scanner(Protocol):
    """Forward cursor over numeric items.

    ``next()`` yields a float while ``position < limit`` and ``None`` after
    that. ``reset()`` rewinds to position 0.
    """

    @property
    def position(self) -> int:
        ...

    @property
    def limit(self) -> int:
        ...

    def next(self) -> float | None:
        ...

    def reset(self) -> None:
        ...


@dataclass
class CountingScanner:
    """Implicit index domain ``0 .. limit - 1``."""

    limit: int
    position: int = 0

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("limit must be >= 0")

    def next(self) -> float | None:
        if self.position >= self.limit:
            return None
        value = float(self.position)
        self.position += 1
        return value

    def reset(self) -> None:
        self.position = 0

    def __iter__(self) -> Iterator[float]:
        return _drain(self)


@dataclass
class VectorScanner:
    values: np.ndarray
    limit: int = -1
    position: int = 0

    def __post_init__(self) -> None:
        if self.values.ndim != 1:
            raise ValueError("values must be 1-D")
        natural = int(self.values.shape[0])
        self.limit = natural if self.limit < 0 else min(self.limit, natural)

    def next(self) -> float | None:
        if self.position >= self.limit:
            return None
        value = float(self.values[self.position])
        self.position += 1
        return value

    def reset(self) -> None:
        self.position = 0

    def __iter__(self) -> Iterator[float]:
        return _drain(self)


@dataclass
class ListScanner:
    """Index cursor over an immutable snapshot of a sequence."""

    items: tuple[float, ...]
    limit: int = -1
    position: int = 0

    def __post_init__(self) -> None:
        natural = len(self.items)
        self.limit = natural if self.limit < 0 else min(self.limit, natural)

    def next(self) -> float | None:
        if self.position >= self.limit:
            return None
        value = self.items[self.position]
        self.position += 1
        return value

    def reset(self) -> None:
        self.position = 0

    def __iter__(self) -> Iterator[float]:
        return _drain(self)


@dataclass
class TransformScanner:
    """Applies ``fn`` lazily to each item of ``source``."""

    source: Scanner
    fn: Callable[[float], float]

    @property
    def position(self) -> int:
        return self.source.position

    @property
    def limit(self) -> int:
        return self.source.limit

    def next(self) -> float | None:
        value = self.source.next()
        if value is None:
            return None
        return float(self.fn(value))

    def reset(self) -> None:
        self.source.reset()

    def __iter__(self) -> Iterator[float]:
        return _drain(self)


@dataclass
class PairScanner:
    """Zips two scanners; stops at the first exhausted source."""

    x: Scanner
    y: Scanner
    _pairs: int = field(default=0, init=False, repr=False)

    @property
    def position(self) -> int:
        return self._pairs

    @property
    def limit(self) -> int:
        return min(self.x.limit, self.y.limit)

    def next(self) -> tuple[float, float] | None:
        xv = self.x.next()
        if xv is None:
            return None
        yv = self.y.next()
        if yv is None:
            return None
        self._pairs += 1
        return (xv, yv)

    def reset(self) -> None:
        self.x.reset()
        self.y.reset()
        self._pairs = 0

    def __iter__(self) -> Iterator[tuple[float, float]]:
        while True:
            pair = self.next()
            if pair is None:
                return
            yield pair


ScannerVariant: TypeAlias = CountingScanner | VectorScanner | ListScanner | TransformScanner


def scan(source: Any, max_items: int | None = None) -> Scanner:
    """Build the scanner variant matching ``source``.

    ``max_items`` clamps iteration below the source's natural length.
    Unsupported source types raise ``InvalidContainer``.
    """
    if max_items is not None and max_items < 0:
        raise ValueError("max_items must be >= 0")
    limit = -1 if max_items is None else int(max_items)

    if isinstance(source, (CountingScanner, VectorScanner, ListScanner, TransformScanner)):
        if max_items is None:
            return source
        return scan(list(_snapshot(source)), max_items=max_items)
    if isinstance(source, range):
        if source.start == 0 and source.step == 1:
            natural = max(0, source.stop)
            return CountingScanner(limit=natural if max_items is None else min(natural, limit))
        return ListScanner(items=tuple(float(v) for v in source), limit=limit)
    if is_array_like(source):
        return VectorScanner(values=coerce_vector(source), limit=limit)
    if isinstance(source, Sequence) and not isinstance(source, (str, bytes, bytearray)):
        return ListScanner(items=coerce_items(source), limit=limit)
    raise InvalidContainer(f"cannot scan container of type {type(source)!r}")


make_scanner = scan


def counting_scanner(limit: int) -> CountingScanner:
    return CountingScanner(limit=int(limit))


def transform_scanner(source: Any, fn: Callable[[float], float]) -> TransformScanner:
    return TransformScanner(source=scan(source), fn=fn)


def zip_scanners(x: Any, y: Any) -> PairScanner:
    """Pair two sources; containers are scanned first."""
    return PairScanner(x=_ensure_scanner(x), y=_ensure_scanner(y))


def _ensure_scanner(value: Any) -> Scanner:
    if isinstance(value, Scanner):
        return value
    return scan(value)


def _snapshot(scanner: Scanner) -> list[float]:
    # Reads every item from the start, then rewinds.
    scanner.reset()
    out = list(_drain(scanner))
    scanner.reset()
    return out


def _drain(scanner: Scanner) -> Iterator[float]:
    while True:
        value = scanner.next()
        if value is None:
            return
        yield value
