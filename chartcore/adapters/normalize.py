from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from numbers import Real
from typing import Any

import numpy as np

from chartcore.errors import InvalidContainer


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def is_array_like(value: Any) -> bool:
    """True for containers scanned in storage order (ndarray, tensor, pandas)."""
    if isinstance(value, np.ndarray):
        return True
    if torch is not None and isinstance(value, torch.Tensor):
        return True
    if pd is not None and isinstance(value, (pd.Series, pd.DataFrame)):
        return True
    return False


def coerce_vector(value: Any, *, label: str = "values") -> np.ndarray:
    """Flatten an array-like or numeric sequence into a 1-D float64 array.

    Multi-dimensional arrays are flattened in storage order. ``None`` items
    become NaN so callers can mask them out.
    """
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.is_cuda:
            tensor = tensor.cpu()
        if tensor.is_complex():
            raise InvalidContainer(f"{label} must be real-valued")
        return tensor.to(torch.float64).reshape(-1).numpy()

    if pd is not None and isinstance(value, pd.DataFrame):
        numeric_cols = [c for c in value.columns if _is_numeric_dtype(value[c])]
        if len(numeric_cols) != 1:
            raise InvalidContainer(f"{label} DataFrame must contain exactly one numeric column")
        return _coerce_ndarray(value[numeric_cols[0]].to_numpy(), label=label)

    if pd is not None and isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        return _coerce_ndarray(value.ravel(order="K"), label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return np.asarray(coerce_items(value, label=label), dtype=np.float64)

    raise InvalidContainer(f"unsupported {label} container type: {type(value)!r}")


def coerce_items(items: Sequence[Any], *, label: str = "values") -> tuple[float, ...]:
    out: list[float] = []
    for i, raw in enumerate(items):
        if raw is None:
            out.append(float("nan"))
            continue
        if isinstance(raw, (bool, np.bool_)):
            out.append(float(raw))
            continue
        if isinstance(raw, (Real, Decimal, np.number)) and not isinstance(raw, (complex, np.complexfloating)):
            out.append(float(raw))
            continue
        raise InvalidContainer(f"{label} contains non-numeric value at index {i}: {raw!r}")
    return tuple(out)


def _is_numeric_dtype(series: Any) -> bool:
    if pd is None:
        return False
    try:
        return bool(pd.api.types.is_numeric_dtype(series))
    except Exception:
        return False


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=False).reshape(-1)
    if arr.dtype.kind == "c":
        raise InvalidContainer(f"{label} must be real-valued")
    if arr.dtype.kind != "O":
        raise InvalidContainer(f"{label} has non-numeric dtype {arr.dtype}")
    return np.asarray(coerce_items(arr.reshape(-1).tolist(), label=label), dtype=np.float64)
