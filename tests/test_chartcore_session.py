from __future__ import annotations

import threading
import unittest

from chartcore import AxisRange, Box, LegendEntry, PlotSession, build_transform
from chartcore.renderer import LineCommand, TextCommand


WHITE = (255, 255, 255, 255)


def _line(x: float) -> LineCommand:
    return LineCommand(points=((x, 0.0), (x, 1.0)), color=WHITE)


class PlotSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.calls = 0
        self.session = PlotSession(on_invalidate=self._on_invalidate)

    def _on_invalidate(self) -> None:
        self.calls += 1

    def test_batch_invalidates_once(self) -> None:
        with self.session.batch():
            self.session.add_command(_line(0.0))
            self.session.add_command(_line(1.0))
            self.session.add_legend_entry(LegendEntry(label="a", mode="lines", color=WHITE))
            self.assertEqual(self.calls, 0)
        self.assertEqual(self.calls, 1)
        self.assertEqual(len(self.session.commands()), 2)
        self.assertEqual(self.session.legend_entries()[0].label, "a")

    def test_nested_batches_invalidate_once(self) -> None:
        with self.session.batch():
            with self.session.batch():
                self.session.add_command(_line(0.0))
            self.assertTrue(self.session.in_batch)
            self.assertEqual(self.calls, 0)
            self.session.extend_commands([_line(1.0), _line(2.0)])
        self.assertFalse(self.session.in_batch)
        self.assertEqual(self.calls, 1)
        self.assertEqual(self.session.invalidation_count, 1)

    def test_unbatched_mutations_invalidate_each(self) -> None:
        self.session.add_command(_line(0.0))
        self.session.add_command(_line(1.0))
        self.assertEqual(self.calls, 2)

    def test_unchanged_batch_does_not_invalidate(self) -> None:
        with self.session.batch():
            self.session.extend_commands([])
            self.session.clear()
        self.assertEqual(self.calls, 0)
        self.assertEqual(self.session.revision, 0)

    def test_batch_exits_cleanly_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with self.session.batch():
                self.session.add_command(_line(0.0))
                raise RuntimeError("boom")
        self.assertFalse(self.session.in_batch)
        self.assertEqual(self.calls, 1)

    def test_take_commands_drains_without_invalidating(self) -> None:
        self.session.extend_commands([_line(0.0), TextCommand(x=0.0, y=0.0, text="t", color=WHITE)])
        self.assertEqual(self.calls, 1)
        taken = self.session.take_commands()
        self.assertEqual(len(taken), 2)
        self.assertEqual(self.session.commands(), ())
        self.assertEqual(self.calls, 1)

    def test_clear_removes_commands_and_legend(self) -> None:
        self.session.add_command(_line(0.0))
        self.session.add_legend_entry(LegendEntry(label="a", mode="lines", color=WHITE))
        self.session.clear()
        self.assertEqual(self.session.commands(), ())
        self.assertEqual(self.session.legend_entries(), ())
        self.assertEqual(self.calls, 3)

    def test_swap_transform_and_pointer_mapping(self) -> None:
        self.assertIsNone(self.session.pointer_to_data(5.0, 5.0))
        box = Box(left=0.0, top=0.0, right=100.0, bottom=100.0)
        first = build_transform(AxisRange(0.0, 10.0), AxisRange(0.0, 10.0), box)
        second = build_transform(AxisRange(0.0, 20.0), AxisRange(0.0, 20.0), box)
        self.assertIsNone(self.session.swap_transform(first))
        x, y = self.session.pointer_to_data(50.0, 50.0)
        self.assertAlmostEqual(x, 5.0)
        self.assertAlmostEqual(y, 5.0)
        self.assertIs(self.session.swap_transform(second), first)
        self.assertIs(self.session.transform, second)
        x, _ = self.session.pointer_to_data(50.0, 50.0)
        self.assertAlmostEqual(x, 10.0)

    def test_session_without_callback(self) -> None:
        session = PlotSession()
        session.add_command(_line(0.0))
        self.assertEqual(session.invalidation_count, 1)

    def test_concurrent_batches_keep_every_command(self) -> None:
        def worker(offset: int) -> None:
            for i in range(50):
                with self.session.batch():
                    self.session.add_command(_line(float(offset + i)))

        threads = [threading.Thread(target=worker, args=(k * 100,)) for k in range(4)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()
        self.assertEqual(len(self.session.commands()), 200)
        self.assertEqual(self.session.revision, 200)

    def test_concurrent_invalidations_are_all_counted(self) -> None:
        fired = []
        guard = threading.Lock()

        def on_invalidate() -> None:
            with guard:
                fired.append(1)

        session = PlotSession(on_invalidate=on_invalidate)

        def worker(offset: int) -> None:
            for i in range(100):
                session.add_command(_line(float(offset + i)))

        threads = [threading.Thread(target=worker, args=(k * 1000,)) for k in range(8)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()
        self.assertEqual(session.revision, 800)
        self.assertGreaterEqual(len(fired), 1)
        self.assertEqual(session.invalidation_count, len(fired))


if __name__ == "__main__":
    unittest.main()
