from __future__ import annotations


class ChartCoreError(Exception):
    """Base class for errors raised by chartcore."""


class InvalidContainer(ChartCoreError, TypeError):
    """Raised when a data source cannot be scanned."""


class PlotDataError(ChartCoreError, ValueError):
    pass
