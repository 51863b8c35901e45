from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, TypeAlias


RGBA = tuple[int, int, int, int]
PixelPoint = tuple[float, float]


@dataclass(frozen=True)
class RendererCapabilities:
    supports_fractional_coordinates: bool = True
    supports_alpha_blend: bool = True
    supports_xor_cursor: bool = False


@dataclass(frozen=True)
class LineCommand:
    points: tuple[PixelPoint, ...]
    color: RGBA
    width: int = 1


@dataclass(frozen=True)
class PolygonCommand:
    points: tuple[PixelPoint, ...]
    color: RGBA


@dataclass(frozen=True)
class RectCommand:
    left: float
    top: float
    right: float
    bottom: float
    color: RGBA


@dataclass(frozen=True)
class TextCommand:
    x: float
    y: float
    text: str
    color: RGBA
    font_size_px: float = 12.0


DrawCommand: TypeAlias = LineCommand | PolygonCommand | RectCommand | TextCommand


class Renderer(ABC):
    """Platform drawing surface that executes chart plans.

    Backend quirks are declared through ``capabilities``; geometry never
    branches on the platform.
    """

    capabilities: RendererCapabilities = RendererCapabilities()

    @abstractmethod
    def draw_line(self, points: tuple[PixelPoint, ...], color: RGBA, width: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def draw_polygon(self, points: tuple[PixelPoint, ...], color: RGBA) -> None:
        raise NotImplementedError

    @abstractmethod
    def draw_rect(self, left: float, top: float, right: float, bottom: float, color: RGBA) -> None:
        raise NotImplementedError

    @abstractmethod
    def draw_text(self, x: float, y: float, text: str, color: RGBA, font_size_px: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def text_extent(self, text: str, font_size_px: float) -> tuple[float, float]:
        raise NotImplementedError

    def execute(self, commands: Iterable[DrawCommand]) -> int:
        count = 0
        for command in commands:
            self._execute_one(command)
            count += 1
        return count

    def _execute_one(self, command: DrawCommand) -> None:
        caps = self.capabilities
        if isinstance(command, LineCommand):
            self.draw_line(snap_points(command.points, caps), _color(command.color, caps), command.width)
            return
        if isinstance(command, PolygonCommand):
            self.draw_polygon(snap_points(command.points, caps), _color(command.color, caps))
            return
        if isinstance(command, RectCommand):
            left, top = _snap((command.left, command.top), caps)
            right, bottom = _snap((command.right, command.bottom), caps)
            self.draw_rect(left, top, right, bottom, _color(command.color, caps))
            return
        if isinstance(command, TextCommand):
            x, y = _snap((command.x, command.y), caps)
            self.draw_text(x, y, command.text, _color(command.color, caps), command.font_size_px)
            return
        raise TypeError(f"Unsupported draw command: {type(command)!r}")


def snap_points(points: Iterable[PixelPoint], capabilities: RendererCapabilities) -> tuple[PixelPoint, ...]:
    return tuple(_snap(p, capabilities) for p in points)


def _snap(point: PixelPoint, capabilities: RendererCapabilities) -> PixelPoint:
    if capabilities.supports_fractional_coordinates:
        return point
    return (float(round(point[0])), float(round(point[1])))


def _color(color: RGBA, capabilities: RendererCapabilities) -> RGBA:
    if capabilities.supports_alpha_blend:
        return color
    r, g, b, _ = color
    return (r, g, b, 255)
