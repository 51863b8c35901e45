from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal


SeriesMode = Literal["markers", "lines", "lines+markers", "bars", "curve"]
LINE_MODES = frozenset({"lines", "lines+markers", "curve"})
MARKER_MODES = frozenset({"markers", "lines+markers"})


@dataclass(frozen=True)
class SeriesStyle:
    mode: SeriesMode
    color: tuple[int, int, int, int] = (62, 149, 255, 255)
    marker_size: int = 1
    line_width: int = 1
    bar_width: float = 0.8


@dataclass(frozen=True)
class DataSource:
    """Container-backed series; ``x=None`` plots against the index."""

    y: Any
    x: Any = None


@dataclass(frozen=True)
class CurveSource:
    x_fn: Callable[[float], Any]
    y_fn: Callable[[float], Any]
    t_domain: tuple[float, float]
    fixed_count: int | None = None


@dataclass(frozen=True)
class SeriesSpec:
    source: DataSource | CurveSource
    style: SeriesStyle
    label: str | None = None
