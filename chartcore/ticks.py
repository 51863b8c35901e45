from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Callable, Literal

from chartcore.config import EngineConfig, resolve_config
from chartcore.placement import Bounds, overlaps
from chartcore.scales import AxisRange, Transform


LOGGER = logging.getLogger(__name__)

MeasureFn = Callable[[str], tuple[float, float]]


@dataclass(frozen=True)
class TickPlan:
    """Ticks are ``start + k * increment`` for ``-count_below <= k <= count_after``."""

    start: float
    increment: float
    count_below: int
    count_after: int

    def __len__(self) -> int:
        return self.count_below + 1 + self.count_after

    def values(self) -> list[float]:
        out: list[float] = []
        for k in range(-self.count_below, self.count_after + 1):
            value = self.start + k * self.increment
            if abs(value) <= self.increment * 1e-9:
                value = 0.0
            out.append(value)
        return out


@dataclass(frozen=True)
class TickLabel:
    value: float
    text: str
    pixel: float
    bounds: Bounds
    visible: bool


def plan_ticks(vmin: float, vmax: float, *, config: EngineConfig | None = None) -> TickPlan:
    """Pick a start on the coarsest decade inside the range and a 1/2/5 step.

    ``vmin``/``vmax`` are axis-space values (exponents on a log axis). An
    inverted range is planned over its sorted bounds.
    """
    cfg = resolve_config(config)
    lo, hi = (float(vmin), float(vmax)) if vmin <= vmax else (float(vmax), float(vmin))
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return _fallback(lo, hi, cfg)
    span = hi - lo
    if span <= 0.0 or not math.isfinite(span):
        return _fallback(lo, hi, cfg)

    try:
        found = _search(lo, hi, span, cfg.max_tick_iterations)
    except OverflowError:
        found = None
    if found is None:
        LOGGER.warning("tick search hit iteration cap for range [%g, %g]; using midpoint", lo, hi)
        return _fallback(lo, hi, cfg)
    start, increment = found
    eps = 1e-9
    count_below = int(math.floor((start - lo) / increment + eps))
    count_after = int(math.floor((hi - start) / increment + eps))
    return TickPlan(
        start=start,
        increment=increment,
        count_below=max(0, count_below),
        count_after=max(0, count_after),
    )


def format_tick_label(value: float) -> str:
    """Fixed point for magnitudes in [0.01, 10000) or zero, else 2-decimal scientific."""
    if not math.isfinite(value):
        return str(value)
    magnitude = abs(value)
    if value == 0.0 or 0.01 <= magnitude < 10000.0:
        text = _trim(f"{value:.3f}")
        return "0" if text == "-0" else text
    mantissa, exponent = f"{value:.2e}".split("e")
    return f"{_trim(mantissa)}e{int(exponent)}"


def tick_label_text(value: float, axis: AxisRange) -> str:
    if axis.is_log:
        return format_tick_label(10.0 ** value)
    return format_tick_label(value)


def layout_tick_labels(
    plan: TickPlan,
    transform: Transform,
    *,
    axis: Literal["x", "y"],
    measure: MeasureFn,
    margin: float | None = None,
    config: EngineConfig | None = None,
) -> list[TickLabel]:
    """Place one label per tick, hiding any that collide with the last shown one.

    Labels are walked outward from ``plan.start``: first downward, then
    upward, each walk chained from the start label.
    """
    cfg = resolve_config(config)
    gap = cfg.label_margin if margin is None else float(margin)
    axis_range = transform.x_range if axis == "x" else transform.y_range
    lower = min(axis_range.min, axis_range.max)
    upper = max(axis_range.min, axis_range.max)
    values = [v for v in plan.values() if lower - plan.increment * 1e-9 <= v <= upper + plan.increment * 1e-9]
    if not values:
        return []

    def _label(value: float) -> tuple[str, float, Bounds]:
        text = tick_label_text(value, axis_range)
        w, h = measure(text)
        if axis == "x":
            pixel = transform.forward.sx * value + transform.forward.tx
            extent = w
        else:
            pixel = transform.forward.sy * value + transform.forward.ty
            extent = h
        return text, pixel, Bounds.of(pixel - extent / 2.0, pixel + extent / 2.0)

    start_idx = min(range(len(values)), key=lambda i: abs(values[i] - plan.start))
    placed: dict[int, TickLabel] = {}
    text, pixel, bounds = _label(values[start_idx])
    placed[start_idx] = TickLabel(value=values[start_idx], text=text, pixel=pixel, bounds=bounds, visible=True)
    for walk in (range(start_idx - 1, -1, -1), range(start_idx + 1, len(values))):
        prev = bounds
        for i in walk:
            text_i, pixel_i, bounds_i = _label(values[i])
            visible = not overlaps(prev, bounds_i, gap)
            if visible:
                prev = bounds_i
            placed[i] = TickLabel(value=values[i], text=text_i, pixel=pixel_i, bounds=bounds_i, visible=visible)
    return [placed[i] for i in range(len(values))]


def _search(lo: float, hi: float, span: float, max_iterations: int) -> tuple[float, float] | None:
    # Coarsest decade 10**k with a multiple inside [lo, hi].
    k = min(math.floor(math.log10(span)) + 1, 308)
    start: float | None = None
    for _ in range(max_iterations):
        candidate = _times_pow10(float(math.ceil(_times_pow10(lo, -k))), k)
        if candidate <= hi:
            start = candidate + 0.0
            break
        k -= 1
    if start is None:
        return None

    # Scale factor 10**m bringing the span into (1, 10].
    m = -k
    for _ in range(max_iterations):
        scaled = _times_pow10(span, m)
        if scaled <= 1.0:
            m += 1
        elif scaled > 10.0:
            m -= 1
        else:
            break
    else:
        return None

    if scaled > 5.0:
        step = 1.0
    elif scaled > 2.0:
        step = 0.5
    else:
        step = 0.2
    return start, _times_pow10(step, -m)


def _times_pow10(value: float, k: int) -> float:
    # Dividing by an exact power of ten rounds better than multiplying by 10**-k.
    if k >= 0:
        return value * (10.0 ** k)
    return value / (10.0 ** (-k))


def _fallback(lo: float, hi: float, cfg: EngineConfig) -> TickPlan:
    if math.isfinite(lo) and math.isfinite(hi):
        mid = lo / 2.0 + hi / 2.0
    elif math.isfinite(lo):
        mid = lo
    elif math.isfinite(hi):
        mid = hi
    else:
        mid = 0.0
    span = hi - lo
    increment = span if math.isfinite(span) and span > 0.0 else cfg.default_span
    return TickPlan(start=mid, increment=increment, count_below=0, count_after=0)


def _trim(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
