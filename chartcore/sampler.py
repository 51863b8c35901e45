from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Callable, Iterator

import numpy as np

from chartcore.config import EngineConfig, resolve_config
from chartcore.scales import Transform


LOGGER = logging.getLogger(__name__)

CurveFn = Callable[[float], Any]
Point = tuple[float, float]


class _Invalid:
    """Marks a sample whose evaluation failed or was not a finite real."""

    _instance: "_Invalid | None" = None

    def __new__(cls) -> "_Invalid":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "INVALID"


INVALID = _Invalid()
_GAP = object()


@dataclass(frozen=True)
class SampleSequence:
    """Valid samples in increasing ``t``.

    ``breaks`` holds indices ``i`` where a dropped sample or an unresolved
    jump lies between ``points[i - 1]`` and ``points[i]``; renderers must
    not connect across them.
    """

    ts: tuple[float, ...]
    points: tuple[Point, ...]
    breaks: tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    @property
    def xs(self) -> np.ndarray:
        return np.asarray([p[0] for p in self.points], dtype=np.float64)

    @property
    def ys(self) -> np.ndarray:
        return np.asarray([p[1] for p in self.points], dtype=np.float64)

    def segments(self) -> list[tuple[Point, ...]]:
        out: list[tuple[Point, ...]] = []
        start = 0
        for end in (*self.breaks, len(self.points)):
            if end > start:
                out.append(self.points[start:end])
            start = end
        return out


def evaluate(x_fn: CurveFn, y_fn: CurveFn, t: float) -> Point | _Invalid:
    x = _real_value(x_fn, t)
    if x is INVALID:
        return INVALID
    y = _real_value(y_fn, t)
    if y is INVALID:
        return INVALID
    return (x, y)  # type: ignore[return-value]


def sample_adaptive(
    x_fn: CurveFn,
    y_fn: CurveFn,
    t_domain: tuple[float, float],
    *,
    fixed_count: int | None = None,
    scale: tuple[float, float] = (1.0, 1.0),
    transform: Transform | None = None,
    config: EngineConfig | None = None,
) -> SampleSequence:
    """Sample the curve ``(x_fn(t), y_fn(t))`` over ``t_domain``.

    Starting from ``seed_samples`` uniform samples, each segment is split
    at its midpoint while the evaluated midpoint is more than
    ``pixel_tolerance`` pixels from the segment's linear midpoint, or while
    any of the three samples is invalid. ``scale`` gives pixels per data
    unit; passing ``transform`` measures in its pixel space instead, and
    on its log axes samples with a non-positive coordinate count as invalid.
    ``fixed_count`` samples uniformly and skips refinement.
    """
    cfg = resolve_config(config)
    tmin, tmax = float(t_domain[0]), float(t_domain[1])
    if not (math.isfinite(tmin) and math.isfinite(tmax)):
        raise ValueError("t_domain must be finite")
    if tmin > tmax:
        tmin, tmax = tmax, tmin
    if fixed_count is not None and fixed_count < 1:
        raise ValueError("fixed_count must be >= 1")

    if transform is not None:
        project = _pixel_projector(transform)
    else:
        sx, sy = abs(float(scale[0])), abs(float(scale[1]))
        if not (math.isfinite(sx) and math.isfinite(sy)):
            raise ValueError("scale must be finite")
        project = _scale_projector(sx, sy)

    sample = _sampler(x_fn, y_fn, transform)
    count = cfg.seed_samples if fixed_count is None else int(fixed_count)
    seeds = [(t, sample(t)) for t in _uniform(tmin, tmax, count)]
    if fixed_count is not None or len(seeds) < 2:
        return _collect(seeds)

    refiner = _Refiner(sample, project, cfg)
    entries: list[Any] = [seeds[0]]
    for (t0, p0), (t1, p1) in zip(seeds, seeds[1:]):
        refiner.refine(t0, p0, t1, p1, 0, entries)
        entries.append((t1, p1))
    if refiner.capped:
        LOGGER.debug("adaptive sampling hit depth cap %d on %d segments", cfg.max_depth, refiner.capped)
    return _collect(entries)


def sample_function(
    fn: CurveFn,
    domain: tuple[float, float],
    *,
    fixed_count: int | None = None,
    scale: tuple[float, float] = (1.0, 1.0),
    transform: Transform | None = None,
    config: EngineConfig | None = None,
) -> SampleSequence:
    """``y = fn(x)`` sampled as the parametric curve ``(t, fn(t))``."""
    return sample_adaptive(
        _identity,
        fn,
        domain,
        fixed_count=fixed_count,
        scale=scale,
        transform=transform,
        config=config,
    )


class _Refiner:
    def __init__(
        self,
        sample: Callable[[float], Any],
        project: Callable[[Point], Point],
        cfg: EngineConfig,
    ) -> None:
        self._sample = sample
        self._project = project
        self._tolerance = cfg.pixel_tolerance
        self._max_depth = cfg.max_depth
        self.capped = 0

    def refine(self, t0: float, p0: Any, t1: float, p1: Any, depth: int, out: list[Any]) -> None:
        tm = t0 + 0.5 * (t1 - t0)
        pm = self._sample(tm)
        valid = (p0 is not INVALID, pm is not INVALID, p1 is not INVALID)
        if not any(valid):
            return
        if all(valid) and not self._deviates(p0, pm, p1):
            return
        if depth >= self._max_depth:
            self.capped += 1
            if not all(valid) or self._jumps(p0, pm, p1):
                out.append(_GAP)
            return
        self.refine(t0, p0, tm, pm, depth + 1, out)
        out.append((tm, pm))
        self.refine(tm, pm, t1, p1, depth + 1, out)

    def _deviates(self, p0: Point, pm: Point, p1: Point) -> bool:
        a = self._project(p0)
        m = self._project(pm)
        b = self._project(p1)
        dx = m[0] - (a[0] / 2.0 + b[0] / 2.0)
        dy = m[1] - (a[1] / 2.0 + b[1] / 2.0)
        return not (abs(dx) <= self._tolerance and abs(dy) <= self._tolerance)

    def _jumps(self, p0: Point, pm: Point, p1: Point) -> bool:
        # Still deviating at full depth, with the midpoint outside the endpoint interval.
        for axis in (0, 1):
            lo = min(p0[axis], p1[axis])
            hi = max(p0[axis], p1[axis])
            if pm[axis] < lo or pm[axis] > hi:
                return True
        return False


def _collect(entries: list[Any]) -> SampleSequence:
    ts: list[float] = []
    points: list[Point] = []
    breaks: list[int] = []
    pending_break = False
    for entry in entries:
        if entry is _GAP or entry[1] is INVALID:
            pending_break = bool(points)
            continue
        t, point = entry
        if pending_break:
            breaks.append(len(points))
            pending_break = False
        ts.append(t)
        points.append(point)
    return SampleSequence(ts=tuple(ts), points=tuple(points), breaks=tuple(breaks))


def _uniform(tmin: float, tmax: float, count: int) -> list[float]:
    if count == 1 or tmin == tmax:
        return [tmin]
    return [float(t) for t in np.linspace(tmin, tmax, count, dtype=np.float64)]


def _sampler(x_fn: CurveFn, y_fn: CurveFn, transform: Transform | None) -> Callable[[float], Any]:
    log_x = transform is not None and transform.x_range.is_log
    log_y = transform is not None and transform.y_range.is_log

    def sample(t: float) -> Point | _Invalid:
        point = evaluate(x_fn, y_fn, t)
        if point is INVALID:
            return INVALID
        # Non-positive values have no position on a log axis.
        if (log_x and point[0] <= 0.0) or (log_y and point[1] <= 0.0):
            return INVALID
        return point

    return sample


def _scale_projector(sx: float, sy: float) -> Callable[[Point], Point]:
    def project(p: Point) -> Point:
        return (p[0] * sx, p[1] * sy)

    return project


def _pixel_projector(transform: Transform) -> Callable[[Point], Point]:
    def project(p: Point) -> Point:
        return transform.to_pixel(p[0], p[1])

    return project


def _identity(t: float) -> float:
    return t


def _real_value(fn: CurveFn, t: float) -> float | _Invalid:
    try:
        with np.errstate(all="ignore"):
            raw = fn(t)
    except Exception as exc:  # user callables may raise anything
        LOGGER.debug("curve evaluation failed at t=%r: %s", t, exc)
        return INVALID
    return _as_real(raw)


def _as_real(raw: Any) -> float | _Invalid:
    if isinstance(raw, (complex, np.complexfloating)):
        if raw.imag != 0:
            return INVALID
        raw = raw.real
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return INVALID
    if not math.isfinite(value):
        return INVALID
    return value
