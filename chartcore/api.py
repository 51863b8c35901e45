from __future__ import annotations

from chartcore.chart import Chart
from chartcore.config import EngineConfig


def chart(
    *,
    title: str = "",
    x_label: str = "",
    y_label: str = "",
    x_log: bool = False,
    y_log: bool = False,
    aspect: float | None = None,
    squeeze: bool = True,
    config: EngineConfig | None = None,
    from_env: bool = False,
) -> Chart:
    """Create a chart; ``from_env`` reads engine settings from ``CHARTCORE_*``."""
    if config is not None and from_env:
        raise ValueError("pass either config or from_env, not both")
    if from_env:
        config = EngineConfig.from_env()
    out = Chart(title=title, x_label=x_label, y_label=y_label, x_log=x_log, y_log=y_log, config=config)
    if aspect is not None:
        out.set_aspect(aspect, squeeze=squeeze)
    return out
