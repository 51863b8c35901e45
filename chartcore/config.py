from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import os
import sys


LOGGER = logging.getLogger(__name__)

DEFAULT_LOG_FLOOR_EXPONENT = -300.0
DEFAULT_PAD_DIVISOR = 18.0
DEFAULT_SPAN = 0.1
DEFAULT_NUMERIC_CEILING = sys.float_info.max / 4.0
DEFAULT_SEED_SAMPLES = 16
DEFAULT_MAX_DEPTH = 10
DEFAULT_PIXEL_TOLERANCE = 0.5
DEFAULT_MAX_TICK_ITERATIONS = 64
DEFAULT_LABEL_MARGIN = 2.0
DEFAULT_ENV_PREFIX = "CHARTCORE_"


@dataclass(frozen=True)
class EngineConfig:
    log_floor_exponent: float = DEFAULT_LOG_FLOOR_EXPONENT
    pad_divisor: float = DEFAULT_PAD_DIVISOR
    default_span: float = DEFAULT_SPAN
    numeric_ceiling: float = DEFAULT_NUMERIC_CEILING
    seed_samples: int = DEFAULT_SEED_SAMPLES
    max_depth: int = DEFAULT_MAX_DEPTH
    pixel_tolerance: float = DEFAULT_PIXEL_TOLERANCE
    max_tick_iterations: int = DEFAULT_MAX_TICK_ITERATIONS
    label_margin: float = DEFAULT_LABEL_MARGIN

    def __post_init__(self) -> None:
        if not math.isfinite(self.log_floor_exponent):
            raise ValueError("log_floor_exponent must be finite")
        if not math.isfinite(self.pad_divisor) or self.pad_divisor <= 0:
            raise ValueError("pad_divisor must be > 0")
        if not math.isfinite(self.default_span) or self.default_span <= 0:
            raise ValueError("default_span must be > 0")
        if not math.isfinite(self.numeric_ceiling) or self.numeric_ceiling <= 0:
            raise ValueError("numeric_ceiling must be finite and > 0")
        if self.seed_samples < 2:
            raise ValueError("seed_samples must be >= 2")
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if not math.isfinite(self.pixel_tolerance) or self.pixel_tolerance <= 0:
            raise ValueError("pixel_tolerance must be > 0")
        if self.max_tick_iterations <= 0:
            raise ValueError("max_tick_iterations must be > 0")
        if not math.isfinite(self.label_margin) or self.label_margin < 0:
            raise ValueError("label_margin must be >= 0")

    @classmethod
    def from_env(cls, *, prefix: str = DEFAULT_ENV_PREFIX) -> "EngineConfig":
        """Build a config from ``<prefix><FIELD>`` environment overrides.

        Unparsable or out-of-range values are logged and the default is kept.
        """
        return cls(
            log_floor_exponent=_env_float(prefix + "LOG_FLOOR_EXPONENT", DEFAULT_LOG_FLOOR_EXPONENT, allow_negative=True),
            pad_divisor=_env_float(prefix + "PAD_DIVISOR", DEFAULT_PAD_DIVISOR),
            default_span=_env_float(prefix + "DEFAULT_SPAN", DEFAULT_SPAN),
            numeric_ceiling=_env_float(prefix + "NUMERIC_CEILING", DEFAULT_NUMERIC_CEILING),
            seed_samples=_env_int(prefix + "SEED_SAMPLES", DEFAULT_SEED_SAMPLES, minimum=2),
            max_depth=_env_int(prefix + "MAX_DEPTH", DEFAULT_MAX_DEPTH, minimum=0),
            pixel_tolerance=_env_float(prefix + "PIXEL_TOLERANCE", DEFAULT_PIXEL_TOLERANCE),
            max_tick_iterations=_env_int(prefix + "MAX_TICK_ITERATIONS", DEFAULT_MAX_TICK_ITERATIONS, minimum=1),
            label_margin=_env_float(prefix + "LABEL_MARGIN", DEFAULT_LABEL_MARGIN, allow_zero=True),
        )


DEFAULT_CONFIG = EngineConfig()


def resolve_config(config: EngineConfig | None) -> EngineConfig:
    return DEFAULT_CONFIG if config is None else config


def _env_float(env_var: str, default: float, *, allow_negative: bool = False, allow_zero: bool = False) -> float:
    raw = os.getenv(env_var, "").strip()
    if raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("ignoring %s=%r: not a number", env_var, raw)
        return default
    if not math.isfinite(value):
        LOGGER.warning("ignoring %s=%r: not finite", env_var, raw)
        return default
    if not allow_negative and (value < 0 or (value == 0 and not allow_zero)):
        LOGGER.warning("ignoring %s=%r: out of range", env_var, raw)
        return default
    return value


def _env_int(env_var: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("ignoring %s=%r: not an integer", env_var, raw)
        return default
    if value < minimum:
        LOGGER.warning("ignoring %s=%r: must be >= %d", env_var, raw, minimum)
        return default
    return value
