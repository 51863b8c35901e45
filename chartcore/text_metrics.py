from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from PIL import ImageFont


DEFAULT_FONT_FAMILY = "DejaVu Sans Mono"
DEFAULT_FONT_SIZE_PX = 12.0
MONO_FONT_FALLBACK_PATTERNS = (
    "dejavusansmono",
    "dejavu sans mono",
    "menlo",
    "monaco",
    "courier new",
    "courier",
)
FONT_DIRS = (
    Path.home() / "Library" / "Fonts",
    Path("/Library/Fonts"),
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
)


def text_extent(
    text: str,
    font_size_px: float = DEFAULT_FONT_SIZE_PX,
    *,
    font_family: str = DEFAULT_FONT_FAMILY,
) -> tuple[int, int]:
    """Pixel (width, height) of ``text`` in the resolved font."""
    font = _load_font(font_family=font_family, font_size_px=float(font_size_px))
    if not text:
        _, top, _, bottom = font.getbbox("Ag")
        return (0, max(1, int(bottom - top)))
    left, top, right, bottom = font.getbbox(text)
    return (max(0, int(right - left)), max(1, int(bottom - top)))


def measure_fn(font_size_px: float = DEFAULT_FONT_SIZE_PX, *, font_family: str = DEFAULT_FONT_FAMILY):
    """Bind a size and family into the ``text -> (w, h)`` callable label layout expects."""

    def measure(text: str) -> tuple[float, float]:
        return text_extent(text, font_size_px, font_family=font_family)

    return measure


@lru_cache(maxsize=64)
def _load_font(font_family: str, font_size_px: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    font_path = _resolve_font_path(font_family)
    if font_path is None:
        return ImageFont.load_default()
    try:
        return ImageFont.truetype(str(font_path), size=size)
    except OSError:
        return ImageFont.load_default()


@lru_cache(maxsize=16)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + MONO_FONT_FALLBACK_PATTERNS

    candidates: list[Path] = []
    for base in FONT_DIRS:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(base.rglob(ext))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            if p in stem:
                return path
    return None
