from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Callable

import numpy as np

from chartcore.config import EngineConfig, resolve_config
from chartcore.errors import PlotDataError
from chartcore.placement import Bounds, LabelPlacer
from chartcore.renderer import DrawCommand, LineCommand, RectCommand, TextCommand
from chartcore.sampler import sample_adaptive
from chartcore.scales import AxisRange, Box, Transform, build_transform, data_extrema, resolve_axis
from chartcore.scanner import Scanner, counting_scanner, scan, zip_scanners
from chartcore.series import LINE_MODES, MARKER_MODES, CurveSource, DataSource, SeriesSpec, SeriesStyle
from chartcore.session import LegendEntry, PlotSession
from chartcore.text_metrics import measure_fn
from chartcore.ticks import MeasureFn, TickLabel, TickPlan, layout_tick_labels, plan_ticks


LOGGER = logging.getLogger(__name__)

PixelPoint = tuple[float, float]
Extent = tuple[float, float]


def _coerce_color(color: tuple[int, int, int] | tuple[int, int, int, int], alpha: float) -> tuple[int, int, int, int]:
    if len(color) == 3:
        r, g, b = color
        a = int(max(0.0, min(1.0, alpha)) * 255)
        return (r, g, b, a)
    r, g, b, a = color
    out_a = int(max(0.0, min(1.0, alpha)) * a)
    return (r, g, b, out_a)


def _contiguous_true_runs(mask: np.ndarray) -> list[tuple[int, int]]:
    idx = np.flatnonzero(mask)
    if idx.size == 0:
        return []
    runs: list[tuple[int, int]] = []
    start = int(idx[0])
    prev = int(idx[0])
    for v in idx[1:]:
        iv = int(v)
        if iv == prev + 1:
            prev = iv
            continue
        runs.append((start, prev + 1))
        start = iv
        prev = iv
    runs.append((start, prev + 1))
    return runs


def _merge(a: Extent | None, b: Extent | None) -> Extent | None:
    if a is None:
        return b
    if b is None:
        return a
    return (min(a[0], b[0]), max(a[1], b[1]))


def _plottable(values: np.ndarray, is_log: bool) -> np.ndarray:
    if not is_log:
        return values
    return np.where(values > 0.0, values, np.nan)


def _read(scanner: Scanner) -> list[Any]:
    scanner.reset()
    out: list[Any] = []
    while True:
        item = scanner.next()
        if item is None:
            break
        out.append(item)
    scanner.reset()
    return out


@dataclass(frozen=True)
class SeriesGeometry:
    """Pixel-space output for one series in one render pass."""

    label: str | None
    style: SeriesStyle
    polylines: tuple[tuple[PixelPoint, ...], ...] = ()
    markers: tuple[PixelPoint, ...] = ()
    rects: tuple[tuple[float, float, float, float], ...] = ()


@dataclass(frozen=True)
class LegendRow:
    label: str
    mode: str
    color: tuple[int, int, int, int]
    x: float
    y: float
    bounds: Bounds
    visible: bool


@dataclass(frozen=True)
class ChartPlan:
    transform: Transform
    x_plan: TickPlan
    y_plan: TickPlan
    x_ticks: tuple[TickLabel, ...]
    y_ticks: tuple[TickLabel, ...]
    series: tuple[SeriesGeometry, ...]
    legend: tuple[LegendRow, ...]

    @property
    def box(self) -> Box:
        return self.transform.box


@dataclass(frozen=True)
class _Materialized:
    spec: SeriesSpec
    xs: np.ndarray
    ys: np.ndarray
    offset: float = 0.0
    width: float = 0.0


@dataclass
class Chart:
    """One 2-D chart: series, axis state and per-pass planning."""

    title: str = ""
    x_label: str = ""
    y_label: str = ""
    x_log: bool = False
    y_log: bool = False
    aspect: float | None = None
    squeeze: bool = True
    config: EngineConfig | None = None

    _series: list[SeriesSpec] = field(default_factory=list)
    _x_range: tuple[float, float] | None = None
    _y_range: tuple[float, float] | None = None
    _last_x_range: AxisRange | None = None
    _last_y_range: AxisRange | None = None

    # style
    axis_color: tuple[int, int, int, int] = (124, 138, 156, 255)
    grid_color: tuple[int, int, int, int] = (44, 53, 66, 255)
    text_color: tuple[int, int, int, int] = (208, 218, 232, 255)
    tick_font_px: float = 12.0
    title_font_px: float = 14.0
    tick_pad_px: float = 4.0
    legend_inset_px: float = 8.0
    legend_row_px: float = 16.0
    legend_swatch_px: float = 14.0

    def plot(
        self,
        y: Any,
        *,
        x: Any = None,
        label: str | None = None,
        mode: str = "lines",
        color: tuple[int, int, int] | tuple[int, int, int, int] = (255, 165, 0),
        width: int = 1,
        alpha: float = 1.0,
    ) -> "Chart":
        if mode not in {"line", "lines", "lines+markers"}:
            raise PlotDataError(f"unsupported plot mode: {mode}")
        style_mode = "lines+markers" if mode == "lines+markers" else "lines"
        style = SeriesStyle(mode=style_mode, color=_coerce_color(color, alpha), line_width=max(1, width))
        return self._add(DataSource(y=y, x=x), style, label)

    def scatter(
        self,
        y: Any,
        *,
        x: Any = None,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (62, 149, 255),
        size: int = 2,
        alpha: float = 1.0,
    ) -> "Chart":
        style = SeriesStyle(mode="markers", color=_coerce_color(color, alpha), marker_size=max(1, size))
        return self._add(DataSource(y=y, x=x), style, label)

    def bar(
        self,
        y: Any,
        *,
        x: Any = None,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (110, 169, 255),
        width: float = 0.8,
        alpha: float = 1.0,
    ) -> "Chart":
        if width <= 0:
            raise ValueError("bar width must be > 0")
        style = SeriesStyle(mode="bars", color=_coerce_color(color, alpha), bar_width=float(width))
        return self._add(DataSource(y=y, x=x), style, label)

    def parametric(
        self,
        x_fn: Callable[[float], Any],
        y_fn: Callable[[float], Any],
        t_domain: tuple[float, float],
        *,
        fixed_count: int | None = None,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (120, 220, 140),
        width: int = 1,
        alpha: float = 1.0,
    ) -> "Chart":
        lo, hi = float(t_domain[0]), float(t_domain[1])
        if not (math.isfinite(lo) and math.isfinite(hi)):
            raise ValueError("t_domain must be finite")
        if fixed_count is not None and fixed_count < 1:
            raise ValueError("fixed_count must be >= 1")
        style = SeriesStyle(mode="curve", color=_coerce_color(color, alpha), line_width=max(1, width))
        source = CurveSource(x_fn=x_fn, y_fn=y_fn, t_domain=(lo, hi), fixed_count=fixed_count)
        self._series.append(SeriesSpec(source=source, style=style, label=label))
        return self

    def function(
        self,
        fn: Callable[[float], Any],
        domain: tuple[float, float],
        *,
        fixed_count: int | None = None,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (120, 220, 140),
        width: int = 1,
        alpha: float = 1.0,
    ) -> "Chart":
        return self.parametric(
            _identity,
            fn,
            domain,
            fixed_count=fixed_count,
            label=label,
            color=color,
            width=width,
            alpha=alpha,
        )

    def _add(self, source: DataSource, style: SeriesStyle, label: str | None) -> "Chart":
        # Fail on unsupported containers at registration, not mid-render.
        y_scanner = scan(source.y)
        x_scanner = scan(source.x) if source.x is not None else None
        self._series.append(SeriesSpec(source=DataSource(y=y_scanner, x=x_scanner), style=style, label=label))
        return self

    @property
    def series(self) -> tuple[SeriesSpec, ...]:
        return tuple(self._series)

    def set_x_range(self, lo: float | None = None, hi: float | None = None) -> "Chart":
        self._x_range = self._explicit(lo, hi)
        return self

    def set_y_range(self, lo: float | None = None, hi: float | None = None) -> "Chart":
        self._y_range = self._explicit(lo, hi)
        return self

    @staticmethod
    def _explicit(lo: float | None, hi: float | None) -> tuple[float, float] | None:
        if lo is None and hi is None:
            return None
        if lo is None or hi is None:
            raise ValueError("explicit range needs both bounds")
        lo_f, hi_f = float(lo), float(hi)
        if not (math.isfinite(lo_f) and math.isfinite(hi_f)):
            raise ValueError("explicit range must be finite")
        return (lo_f, hi_f)

    def set_log(self, *, x: bool | None = None, y: bool | None = None) -> "Chart":
        if x is not None:
            self.x_log = bool(x)
        if y is not None:
            self.y_log = bool(y)
        return self

    def set_aspect(self, aspect: float | None, *, squeeze: bool = True) -> "Chart":
        if aspect is not None and (not math.isfinite(aspect) or aspect <= 0):
            raise ValueError("aspect must be > 0")
        self.aspect = None if aspect is None else float(aspect)
        self.squeeze = bool(squeeze)
        return self

    def zoom(self, factor: float, *, anchor: tuple[float, float] | None = None) -> "Chart":
        """Scale both axes about ``anchor`` (data coordinates); factor > 1 zooms in."""
        if not math.isfinite(factor) or factor <= 0:
            raise ValueError("zoom factor must be > 0")
        xr, yr = self._current_ranges()
        if anchor is None:
            ax = xr.min / 2.0 + xr.max / 2.0
            ay = yr.min / 2.0 + yr.max / 2.0
        else:
            cfg = resolve_config(self.config)
            ax = xr.to_axis(anchor[0], config=cfg)
            ay = yr.to_axis(anchor[1], config=cfg)
        self._x_range = self._to_data_range(
            xr, ax + (xr.min - ax) / factor, ax + (xr.max - ax) / factor
        )
        self._y_range = self._to_data_range(
            yr, ay + (yr.min - ay) / factor, ay + (yr.max - ay) / factor
        )
        return self

    def pan(self, dx: float = 0.0, dy: float = 0.0) -> "Chart":
        """Shift the view by axis units (decades on a log axis)."""
        xr, yr = self._current_ranges()
        self._x_range = self._to_data_range(xr, xr.min + float(dx), xr.max + float(dx))
        self._y_range = self._to_data_range(yr, yr.min + float(dy), yr.max + float(dy))
        return self

    def reset_view(self) -> "Chart":
        self._x_range = None
        self._y_range = None
        return self

    def last_resolved_ranges(self) -> tuple[AxisRange, AxisRange] | None:
        if self._last_x_range is None or self._last_y_range is None:
            return None
        return (self._last_x_range, self._last_y_range)

    def _current_ranges(self) -> tuple[AxisRange, AxisRange]:
        cfg = resolve_config(self.config)
        if self._x_range is not None:
            xr = resolve_axis(self._x_range, None, is_log=self.x_log, config=cfg)
        else:
            xr = self._last_x_range
        if self._y_range is not None:
            yr = resolve_axis(self._y_range, None, is_log=self.y_log, config=cfg)
        else:
            yr = self._last_y_range
        if xr is None or yr is None:
            raise PlotDataError("view is not resolved; plan the chart or set explicit ranges first")
        return xr, yr

    @staticmethod
    def _to_data_range(axis: AxisRange, lo: float, hi: float) -> tuple[float, float]:
        out = (axis.from_axis(lo), axis.from_axis(hi))
        if not (math.isfinite(out[0]) and math.isfinite(out[1])):
            raise PlotDataError("view change leaves the representable range")
        return out

    def plan(self, box: Box, *, measure: MeasureFn | None = None) -> ChartPlan:
        cfg = resolve_config(self.config)
        measure = measure if measure is not None else measure_fn(self.tick_font_px)
        items = self._materialize()
        curves = [spec for spec in self._series if isinstance(spec.source, CurveSource)]

        x_ext, y_ext = self._extents(items, curves, cfg)
        x_range = resolve_axis(self._x_range, x_ext, is_log=self.x_log, config=cfg)
        y_range = resolve_axis(self._y_range, y_ext, is_log=self.y_log, config=cfg)
        transform = build_transform(x_range, y_range, box, aspect=self.aspect, squeeze=self.squeeze, config=cfg)
        self._last_x_range = x_range
        self._last_y_range = y_range

        x_plan = plan_ticks(x_range.min, x_range.max, config=cfg)
        y_plan = plan_ticks(y_range.min, y_range.max, config=cfg)
        x_ticks = layout_tick_labels(x_plan, transform, axis="x", measure=measure, config=cfg)
        y_ticks = layout_tick_labels(y_plan, transform, axis="y", measure=measure, config=cfg)

        geometry: list[SeriesGeometry] = []
        by_spec = {id(item.spec): item for item in items}
        for spec in self._series:
            if isinstance(spec.source, CurveSource):
                geometry.append(self._curve_geometry(spec, transform, cfg))
            else:
                geometry.append(self._data_geometry(by_spec[id(spec)], transform))

        LOGGER.debug(
            "planned chart: %d series, %d x ticks, %d y ticks",
            len(geometry),
            len(x_ticks),
            len(y_ticks),
        )
        return ChartPlan(
            transform=transform,
            x_plan=x_plan,
            y_plan=y_plan,
            x_ticks=tuple(x_ticks),
            y_ticks=tuple(y_ticks),
            series=tuple(geometry),
            legend=tuple(self._legend_rows(box, measure)),
        )

    def render(self, session: PlotSession, box: Box, *, measure: MeasureFn | None = None) -> ChartPlan:
        """Plan one pass and publish it to ``session`` as a single invalidation."""
        measure = measure if measure is not None else measure_fn(self.tick_font_px)
        plan = self.plan(box, measure=measure)
        commands = self._commands(plan, measure)
        with session.batch():
            session.clear()
            session.extend_commands(commands)
            for row in plan.legend:
                if row.visible:
                    session.add_legend_entry(LegendEntry(label=row.label, mode=row.mode, color=row.color))
            session.swap_transform(plan.transform)
        return plan

    def _materialize(self) -> list[_Materialized]:
        data = [spec for spec in self._series if isinstance(spec.source, DataSource)]
        bars = [spec for spec in data if spec.style.mode == "bars"]
        bar_limit = min((_source_limit(spec) for spec in bars), default=None)
        if bars and any(_source_limit(spec) != bar_limit for spec in bars):
            LOGGER.debug("aligning %d bar series to %d items", len(bars), bar_limit)

        groups = {id(spec): i for i, spec in enumerate(bars)}
        out: list[_Materialized] = []
        for spec in data:
            if spec.style.mode == "bars":
                group = groups[id(spec)]
                slot = spec.style.bar_width
                width = slot / len(bars)
                offset = -slot / 2.0 + (group + 0.5) * width
                xs, ys = self._pairs(spec.source, bar_limit)
                out.append(_Materialized(spec=spec, xs=xs, ys=ys, offset=offset, width=width))
            else:
                xs, ys = self._pairs(spec.source, None)
                out.append(_Materialized(spec=spec, xs=xs, ys=ys))
        return out

    @staticmethod
    def _pairs(source: DataSource, limit: int | None) -> tuple[np.ndarray, np.ndarray]:
        y_scanner = scan(source.y, max_items=limit)
        if source.x is None:
            x_scanner: Scanner = counting_scanner(y_scanner.limit)
        else:
            x_scanner = scan(source.x, max_items=limit)
        pairs = _read(zip_scanners(x_scanner, y_scanner))
        if not pairs:
            return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)
        arr = np.asarray(pairs, dtype=np.float64)
        return arr[:, 0], arr[:, 1]

    def _extents(
        self,
        items: list[_Materialized],
        curves: list[SeriesSpec],
        cfg: EngineConfig,
    ) -> tuple[Extent | None, Extent | None]:
        x_ext: Extent | None = None
        y_ext: Extent | None = None
        for item in items:
            x_part = data_extrema(_plottable(item.xs, self.x_log))
            y_part = data_extrema(_plottable(item.ys, self.y_log))
            if item.spec.style.mode == "bars" and x_part is not None:
                half = item.spec.style.bar_width / 2.0
                x_part = (x_part[0] - half, x_part[1] + half)
                if not self.y_log and y_part is not None:
                    y_part = (min(y_part[0], 0.0), max(y_part[1], 0.0))
            x_ext = _merge(x_ext, x_part)
            y_ext = _merge(y_ext, y_part)

        for spec in curves:
            source = spec.source
            assert isinstance(source, CurveSource)
            # Coarse uniform pass; the adaptive pass needs the transform this feeds.
            coarse = sample_adaptive(
                source.x_fn,
                source.y_fn,
                source.t_domain,
                fixed_count=source.fixed_count or cfg.seed_samples * 4,
                config=cfg,
            )
            if len(coarse) == 0:
                continue
            x_ext = _merge(x_ext, data_extrema(_plottable(coarse.xs, self.x_log)))
            y_ext = _merge(y_ext, data_extrema(_plottable(coarse.ys, self.y_log)))
        return x_ext, y_ext

    def _data_geometry(self, item: _Materialized, transform: Transform) -> SeriesGeometry:
        spec = item.spec
        xs, ys = item.xs, item.ys
        mask = np.isfinite(xs) & np.isfinite(ys)
        if self.x_log:
            mask &= xs > 0.0
        if self.y_log:
            mask &= ys > 0.0
        if spec.style.mode == "bars":
            return SeriesGeometry(label=spec.label, style=spec.style, rects=self._bar_rects(item, mask, transform))

        px, py = transform.map_arrays(xs, ys)
        polylines: list[tuple[PixelPoint, ...]] = []
        if spec.style.mode in LINE_MODES:
            for start, end in _contiguous_true_runs(mask):
                if end - start < 2:
                    continue
                polylines.append(tuple((float(a), float(b)) for a, b in zip(px[start:end], py[start:end])))
        markers: tuple[PixelPoint, ...] = ()
        if spec.style.mode in MARKER_MODES:
            markers = tuple((float(a), float(b)) for a, b in zip(px[mask], py[mask]))
        return SeriesGeometry(label=spec.label, style=spec.style, polylines=tuple(polylines), markers=markers)

    def _bar_rects(
        self,
        item: _Materialized,
        mask: np.ndarray,
        transform: Transform,
    ) -> tuple[tuple[float, float, float, float], ...]:
        fwd = transform.forward
        base = transform.y_range.min if self.y_log else 0.0
        base_py = fwd.sy * base + fwd.ty
        rects: list[tuple[float, float, float, float]] = []
        for x, y in zip(item.xs[mask], item.ys[mask]):
            left = float(x) + item.offset - item.width / 2.0
            right = float(x) + item.offset + item.width / 2.0
            if self.x_log and left <= 0.0:
                continue
            lx, top = transform.to_pixel(left, float(y))
            rx, _ = transform.to_pixel(right, float(y))
            rects.append((min(lx, rx), min(top, base_py), max(lx, rx), max(top, base_py)))
        return tuple(rects)

    def _curve_geometry(self, spec: SeriesSpec, transform: Transform, cfg: EngineConfig) -> SeriesGeometry:
        source = spec.source
        assert isinstance(source, CurveSource)
        samples = sample_adaptive(
            source.x_fn,
            source.y_fn,
            source.t_domain,
            fixed_count=source.fixed_count,
            transform=transform,
            config=cfg,
        )
        polylines = []
        for segment in samples.segments():
            if len(segment) < 2:
                continue
            polylines.append(tuple(transform.to_pixel(x, y) for x, y in segment))
        return SeriesGeometry(label=spec.label, style=spec.style, polylines=tuple(polylines))

    def _legend_rows(self, box: Box, measure: MeasureFn) -> list[LegendRow]:
        labelled = [spec for spec in self._series if spec.label]
        placer = LabelPlacer(margin=0.0)
        rows: list[LegendRow] = []
        for i, spec in enumerate(labelled):
            assert spec.label is not None
            w, h = measure(spec.label)
            top = box.top + self.legend_inset_px + i * self.legend_row_px
            x = box.right - self.legend_inset_px - w
            bounds = Bounds.of(top, top + h)
            inside = bounds.hi <= box.bottom and x - self.legend_swatch_px >= box.left
            visible = inside and placer.offer(bounds)
            rows.append(
                LegendRow(
                    label=spec.label,
                    mode=spec.style.mode,
                    color=spec.style.color,
                    x=x,
                    y=top,
                    bounds=bounds,
                    visible=visible,
                )
            )
        hidden = sum(1 for row in rows if not row.visible)
        if hidden:
            LOGGER.debug("legend: %d of %d rows hidden", hidden, len(rows))
        return rows

    def _commands(self, plan: ChartPlan, measure: MeasureFn) -> list[DrawCommand]:
        box = plan.box
        out: list[DrawCommand] = []
        for tick in plan.x_ticks:
            out.append(LineCommand(points=((tick.pixel, box.top), (tick.pixel, box.bottom)), color=self.grid_color))
        for tick in plan.y_ticks:
            out.append(LineCommand(points=((box.left, tick.pixel), (box.right, tick.pixel)), color=self.grid_color))
        out.append(LineCommand(points=((box.left, box.bottom), (box.right, box.bottom)), color=self.axis_color))
        out.append(LineCommand(points=((box.left, box.top), (box.left, box.bottom)), color=self.axis_color))

        for geom in plan.series:
            color = geom.style.color
            for left, top, right, bottom in geom.rects:
                out.append(RectCommand(left=left, top=top, right=right, bottom=bottom, color=color))
            for line in geom.polylines:
                out.append(LineCommand(points=line, color=color, width=geom.style.line_width))
            r = float(geom.style.marker_size)
            for mx, my in geom.markers:
                out.append(RectCommand(left=mx - r, top=my - r, right=mx + r, bottom=my + r, color=color))

        max_x_label_h = 0.0
        for tick in plan.x_ticks:
            if not tick.visible:
                continue
            _, h = measure(tick.text)
            max_x_label_h = max(max_x_label_h, float(h))
            out.append(self._text(tick.bounds.lo, box.bottom + self.tick_pad_px, tick.text, self.tick_font_px))
        for tick in plan.y_ticks:
            if not tick.visible:
                continue
            w, _ = measure(tick.text)
            out.append(self._text(box.left - self.tick_pad_px - w, tick.bounds.lo, tick.text, self.tick_font_px))

        for row in plan.legend:
            if not row.visible:
                continue
            mid = row.bounds.lo / 2.0 + row.bounds.hi / 2.0
            swatch_right = row.x - self.tick_pad_px
            out.append(
                LineCommand(
                    points=((swatch_right - self.legend_swatch_px, mid), (swatch_right, mid)),
                    color=row.color,
                    width=2,
                )
            )
            out.append(self._text(row.x, row.y, row.label, self.tick_font_px))

        # Title and y-axis title share the row above the box; the title wins.
        header = LabelPlacer(margin=resolve_config(self.config).label_margin)
        if self.title:
            w, h = measure(self.title)
            x = box.left + box.width / 2.0 - w / 2.0
            header.offer((x, x + w))
            out.append(self._text(x, box.top - self.tick_pad_px - h, self.title, self.title_font_px))
        if self.y_label:
            w, h = measure(self.y_label)
            if header.offer((box.left, box.left + w)):
                out.append(self._text(box.left, box.top - self.tick_pad_px - h, self.y_label, self.tick_font_px))
            else:
                LOGGER.debug("y-axis title %r hidden by chart title", self.y_label)
        if self.x_label:
            w, _ = measure(self.x_label)
            y = box.bottom + 2.0 * self.tick_pad_px + max_x_label_h
            out.append(self._text(box.left + box.width / 2.0 - w / 2.0, y, self.x_label, self.tick_font_px))
        return out

    def _text(self, x: float, y: float, text: str, font_size_px: float) -> TextCommand:
        return TextCommand(x=float(x), y=float(y), text=text, color=self.text_color, font_size_px=font_size_px)


def _source_limit(spec: SeriesSpec) -> int:
    source = spec.source
    assert isinstance(source, DataSource)
    return scan(source.y).limit


def _identity(t: float) -> float:
    return t
