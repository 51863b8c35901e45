from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
import math
import sys
from typing import Any

import numpy as np

from chartcore.adapters import coerce_vector, is_array_like
from chartcore.config import EngineConfig, resolve_config
from chartcore.scanner import Scanner


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AxisRange:
    """Axis extent. On a log axis ``min``/``max`` are base-10 exponents."""

    min: float
    max: float
    is_log: bool = False

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def inverted(self) -> bool:
        return self.max < self.min

    def to_axis(self, value: float, *, config: EngineConfig | None = None) -> float:
        if not self.is_log:
            return float(value)
        return log_value(value, config=config)

    def from_axis(self, value: float) -> float:
        if not self.is_log:
            return float(value)
        return 10.0 ** value


@dataclass(frozen=True)
class Box:
    """Pixel rectangle; ``top < bottom`` in top-down pixel space."""

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        if not all(math.isfinite(v) for v in (self.left, self.top, self.right, self.bottom)):
            raise ValueError("box edges must be finite")
        if self.right <= self.left or self.bottom <= self.top:
            raise ValueError("box width and height must be > 0")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass(frozen=True)
class Affine2D:
    sx: float
    sy: float
    tx: float
    ty: float

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (self.sx * x + self.tx, self.sy * y + self.ty)

    def apply_arrays(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return (xs * self.sx + self.tx, ys * self.sy + self.ty)

    def inverted(self) -> "Affine2D":
        return Affine2D(
            sx=1.0 / self.sx,
            sy=1.0 / self.sy,
            tx=-self.tx / self.sx,
            ty=-self.ty / self.sy,
        )


@dataclass(frozen=True)
class Transform:
    """Data <-> pixel mapping for one render pass. Never mutated; rebuild instead."""

    x_range: AxisRange
    y_range: AxisRange
    box: Box
    forward: Affine2D
    inverse: Affine2D
    log_floor_exponent: float = -300.0

    @property
    def scale_x(self) -> float:
        return self.forward.sx

    @property
    def scale_y(self) -> float:
        return self.forward.sy

    @property
    def translate_x(self) -> float:
        return self.forward.tx

    @property
    def translate_y(self) -> float:
        return self.forward.ty

    @property
    def pixel_scale(self) -> tuple[float, float]:
        """Pixels per axis unit, as magnitudes."""
        return (abs(self.forward.sx), abs(self.forward.sy))

    def to_pixel(self, x: float, y: float) -> tuple[float, float]:
        return self.forward.apply(self._axis_x(x), self._axis_y(y))

    def to_data(self, px: float, py: float) -> tuple[float, float]:
        ax, ay = self.inverse.apply(px, py)
        return (self.x_range.from_axis(ax), self.y_range.from_axis(ay))

    def map_arrays(self, xs: Any, ys: Any) -> tuple[np.ndarray, np.ndarray]:
        """Vectorised ``to_pixel``; non-finite inputs stay non-finite."""
        ax = np.asarray(xs, dtype=np.float64)
        ay = np.asarray(ys, dtype=np.float64)
        if self.x_range.is_log:
            ax = log_values(ax, floor=self.log_floor_exponent)
        if self.y_range.is_log:
            ay = log_values(ay, floor=self.log_floor_exponent)
        return self.forward.apply_arrays(ax, ay)

    def _axis_x(self, x: float) -> float:
        if self.x_range.is_log:
            return log_value(x, floor=self.log_floor_exponent)
        return float(x)

    def _axis_y(self, y: float) -> float:
        if self.y_range.is_log:
            return log_value(y, floor=self.log_floor_exponent)
        return float(y)


def log_value(value: float, *, floor: float | None = None, config: EngineConfig | None = None) -> float:
    """log10 for log axes; non-positive values map to the floor exponent."""
    if floor is None:
        floor = resolve_config(config).log_floor_exponent
    v = float(value)
    if math.isnan(v):
        return v
    if v <= 0.0:
        return floor
    return math.log10(v)


def log_values(values: np.ndarray, *, floor: float) -> np.ndarray:
    out = np.full(values.shape, floor, dtype=np.float64)
    positive = values > 0.0
    out[positive] = np.log10(values[positive])
    out[np.isnan(values)] = np.nan
    return out


def qrange(span: float, *, config: EngineConfig | None = None) -> float:
    """Span safe to divide by: zero and subnormal spans become the default span."""
    if abs(span) < sys.float_info.min:
        cfg = resolve_config(config)
        LOGGER.debug("degenerate axis span; substituting %g", cfg.default_span)
        return cfg.default_span
    return span


def data_extrema(data: Any) -> tuple[float, float] | None:
    """Finite min/max across one or more series, or None when nothing is finite."""
    lows: list[float] = []
    highs: list[float] = []
    for values in _series_arrays(data):
        finite = values[np.isfinite(values)]
        if finite.size == 0:
            continue
        lows.append(float(np.min(finite)))
        highs.append(float(np.max(finite)))
    if not lows:
        return None
    return (min(lows), max(highs))


def series_length(data: Any) -> int:
    return max((int(values.size) for values in _series_arrays(data)), default=0)


def resolve_axis(
    explicit: tuple[float, float] | None,
    extrema: tuple[float, float] | None,
    *,
    is_log: bool = False,
    config: EngineConfig | None = None,
) -> AxisRange:
    """Explicit ranges are taken as given; derived ranges get span/pad_divisor padding."""
    cfg = resolve_config(config)
    floor = cfg.log_floor_exponent
    if explicit is not None:
        lo, hi = float(explicit[0]), float(explicit[1])
        if not (math.isfinite(lo) and math.isfinite(hi)):
            raise ValueError("explicit axis range must be finite")
        if is_log:
            lo, hi = log_value(lo, floor=floor), log_value(hi, floor=floor)
        return AxisRange(min=lo, max=hi, is_log=is_log)

    if extrema is None:
        lo, hi = (0.1, 1.0) if is_log else (0.0, 1.0)
        if is_log:
            lo, hi = log_value(lo, floor=floor), log_value(hi, floor=floor)
        return AxisRange(min=lo, max=hi, is_log=is_log)

    lo, hi = float(extrema[0]), float(extrema[1])
    if is_log:
        lo, hi = log_value(lo, floor=floor), log_value(hi, floor=floor)
    # Dividing before subtracting keeps the pad finite for extreme extents.
    pad = hi / cfg.pad_divisor - lo / cfg.pad_divisor
    return AxisRange(
        min=_clamp(lo - pad, cfg.numeric_ceiling),
        max=_clamp(hi + pad, cfg.numeric_ceiling),
        is_log=is_log,
    )


def resolve_ranges(
    *,
    data_y: Any = None,
    data_x: Any = None,
    x_range: tuple[float, float] | None = None,
    y_range: tuple[float, float] | None = None,
    x_log: bool = False,
    y_log: bool = False,
    config: EngineConfig | None = None,
) -> tuple[AxisRange, AxisRange]:
    """Resolve both axis ranges; without x data the x axis spans the indices."""
    if x_range is None:
        if data_x is None:
            n = series_length(data_y)
            x_extrema = (0.0, float(n - 1)) if n > 0 else None
        else:
            x_extrema = data_extrema(data_x)
    else:
        x_extrema = None
    y_extrema = data_extrema(data_y) if y_range is None else None
    return (
        resolve_axis(x_range, x_extrema, is_log=x_log, config=config),
        resolve_axis(y_range, y_extrema, is_log=y_log, config=config),
    )


def build_transform(
    x_range: AxisRange,
    y_range: AxisRange,
    box: Box,
    *,
    aspect: float | None = None,
    squeeze: bool = True,
    config: EngineConfig | None = None,
) -> Transform:
    cfg = resolve_config(config)
    sx = _pixels_per_unit(box.width, x_range.span, cfg)
    sy = _pixels_per_unit(box.height, y_range.span, cfg)

    if aspect is not None:
        if not math.isfinite(aspect) or aspect <= 0:
            raise ValueError("aspect must be > 0")
        # One data unit spans aspect:1 pixels (width:height).
        natural_y = abs(sy)
        conforming_y = abs(sx) / aspect
        chosen_y = min(natural_y, conforming_y) if squeeze else max(natural_y, conforming_y)
        if chosen_y == natural_y:
            sx = math.copysign(aspect * natural_y, sx)
        else:
            sy = math.copysign(conforming_y, sy)

    forward = Affine2D(
        sx=sx,
        sy=-sy,
        tx=box.left - x_range.min * sx,
        ty=box.bottom + y_range.min * sy,
    )
    return Transform(
        x_range=x_range,
        y_range=y_range,
        box=box,
        forward=forward,
        inverse=forward.inverted(),
        log_floor_exponent=cfg.log_floor_exponent,
    )


def compute_transform(
    *,
    box: Box,
    data_y: Any = None,
    data_x: Any = None,
    x_range: tuple[float, float] | None = None,
    y_range: tuple[float, float] | None = None,
    x_log: bool = False,
    y_log: bool = False,
    aspect: float | None = None,
    squeeze: bool = True,
    config: EngineConfig | None = None,
) -> Transform:
    xr, yr = resolve_ranges(
        data_y=data_y,
        data_x=data_x,
        x_range=x_range,
        y_range=y_range,
        x_log=x_log,
        y_log=y_log,
        config=config,
    )
    return build_transform(xr, yr, box, aspect=aspect, squeeze=squeeze, config=config)


def _pixels_per_unit(extent: float, span: float, cfg: EngineConfig) -> float:
    scale = extent / qrange(span, config=cfg)
    if not math.isfinite(scale):
        LOGGER.debug("axis span %g overflows the pixel scale; substituting %g", span, cfg.default_span)
        scale = extent / math.copysign(cfg.default_span, span)
    return scale


def _clamp(value: float, ceiling: float) -> float:
    if value > ceiling:
        LOGGER.debug("axis extent %g clamped to %g", value, ceiling)
        return ceiling
    if value < -ceiling:
        LOGGER.debug("axis extent %g clamped to %g", value, -ceiling)
        return -ceiling
    return value


def _series_arrays(data: Any) -> list[np.ndarray]:
    if data is None:
        return []
    if isinstance(data, Scanner) or is_array_like(data):
        return [_to_array(data)]
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray)):
        if len(data) == 0:
            return []
        if all(_is_series(item) for item in data):
            return [_to_array(item) for item in data]
    return [_to_array(data)]


def _is_series(value: Any) -> bool:
    if isinstance(value, Scanner) or is_array_like(value):
        return True
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _to_array(value: Any) -> np.ndarray:
    if isinstance(value, Scanner):
        value.reset()
        items: list[float] = []
        while True:
            item = value.next()
            if item is None:
                break
            items.append(item)
        value.reset()
        return np.asarray(items, dtype=np.float64)
    return coerce_vector(value)
