from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
import threading
from typing import Callable, Iterable, Iterator

from chartcore.renderer import DrawCommand
from chartcore.scales import Transform


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegendEntry:
    label: str
    mode: str
    color: tuple[int, int, int, int]


class PlotSession:
    """Per-plot context holding pending draw commands, legend entries and the current transform.

    Mutations are grouped with ``batch()``. Batches nest; when the outermost
    one exits after a change, ``on_invalidate`` runs exactly once. A
    mutation outside any batch counts as a batch of its own.
    """

    def __init__(self, on_invalidate: Callable[[], None] | None = None) -> None:
        self._on_invalidate = on_invalidate
        self._lock = threading.RLock()
        self._commands: list[DrawCommand] = []
        self._legend: list[LegendEntry] = []
        self._transform: Transform | None = None
        self._depth = 0
        self._revision = 0
        self._entry_revision = 0
        self._invalidations = 0

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def invalidation_count(self) -> int:
        with self._lock:
            return self._invalidations

    @property
    def in_batch(self) -> bool:
        return self._depth > 0

    @contextmanager
    def batch(self) -> Iterator["PlotSession"]:
        with self._lock:
            if self._depth == 0:
                self._entry_revision = self._revision
            self._depth += 1
        try:
            yield self
        finally:
            with self._lock:
                self._depth -= 1
                fire = self._depth == 0 and self._revision != self._entry_revision
            if fire:
                self._invalidate()

    def add_command(self, command: DrawCommand) -> None:
        with self.batch():
            with self._lock:
                self._commands.append(command)
                self._revision += 1

    def extend_commands(self, commands: Iterable[DrawCommand]) -> None:
        items = list(commands)
        if not items:
            return
        with self.batch():
            with self._lock:
                self._commands.extend(items)
                self._revision += 1

    def add_legend_entry(self, entry: LegendEntry) -> None:
        with self.batch():
            with self._lock:
                self._legend.append(entry)
                self._revision += 1

    def clear(self) -> None:
        with self.batch():
            with self._lock:
                if not self._commands and not self._legend:
                    return
                self._commands.clear()
                self._legend.clear()
                self._revision += 1

    def commands(self) -> tuple[DrawCommand, ...]:
        with self._lock:
            return tuple(self._commands)

    def legend_entries(self) -> tuple[LegendEntry, ...]:
        with self._lock:
            return tuple(self._legend)

    def take_commands(self) -> list[DrawCommand]:
        """Drain pending commands for execution; draining does not invalidate."""
        with self._lock:
            out = self._commands
            self._commands = []
            return out

    @property
    def transform(self) -> Transform | None:
        with self._lock:
            return self._transform

    def swap_transform(self, transform: Transform) -> Transform | None:
        """Replace the current transform record whole; returns the previous one."""
        with self._lock:
            previous = self._transform
            self._transform = transform
            return previous

    def pointer_to_data(self, px: float, py: float) -> tuple[float, float] | None:
        snapshot = self.transform
        if snapshot is None:
            return None
        return snapshot.to_data(px, py)

    def _invalidate(self) -> None:
        with self._lock:
            self._invalidations += 1
            revision = self._revision
        LOGGER.debug("plot session invalidated; revision=%d", revision)
        if self._on_invalidate is not None:
            self._on_invalidate()
