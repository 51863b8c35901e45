from chartcore.api import chart
from chartcore.chart import Chart, ChartPlan, LegendRow, SeriesGeometry
from chartcore.config import DEFAULT_CONFIG, EngineConfig
from chartcore.errors import ChartCoreError, InvalidContainer, PlotDataError
from chartcore.placement import Bounds, LabelPlacer, accept_if_clear, overlaps
from chartcore.renderer import Renderer, RendererCapabilities
from chartcore.sampler import INVALID, SampleSequence, sample_adaptive, sample_function
from chartcore.scales import AxisRange, Box, Transform, build_transform, compute_transform, qrange
from chartcore.scanner import PairScanner, Scanner, counting_scanner, make_scanner, scan, transform_scanner, zip_scanners
from chartcore.session import LegendEntry, PlotSession
from chartcore.ticks import TickLabel, TickPlan, format_tick_label, layout_tick_labels, plan_ticks

__all__ = [
    "AxisRange",
    "Bounds",
    "Box",
    "Chart",
    "ChartCoreError",
    "ChartPlan",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "INVALID",
    "InvalidContainer",
    "LabelPlacer",
    "LegendEntry",
    "LegendRow",
    "PairScanner",
    "PlotDataError",
    "PlotSession",
    "Renderer",
    "RendererCapabilities",
    "SampleSequence",
    "Scanner",
    "SeriesGeometry",
    "TickLabel",
    "TickPlan",
    "Transform",
    "accept_if_clear",
    "build_transform",
    "chart",
    "compute_transform",
    "counting_scanner",
    "format_tick_label",
    "layout_tick_labels",
    "make_scanner",
    "overlaps",
    "plan_ticks",
    "qrange",
    "sample_adaptive",
    "sample_function",
    "scan",
    "transform_scanner",
    "zip_scanners",
]
