from __future__ import annotations

import math
import unittest

from chartcore import AxisRange, Box, EngineConfig, build_transform, format_tick_label, layout_tick_labels, plan_ticks
from chartcore.ticks import tick_label_text


def _fixed_measure(width: float, height: float = 10.0):
    def measure(text: str) -> tuple[float, float]:
        return (width, height)

    return measure


class PlanTicksTests(unittest.TestCase):
    def test_plan_for_small_range(self) -> None:
        plan = plan_ticks(1.23, 3.28)
        self.assertGreaterEqual(plan.start, 1.23)
        self.assertLessEqual(plan.start, 3.28)
        self.assertGreater(plan.increment, 0.0)
        self.assertEqual(plan.start, 2.0)
        self.assertEqual(plan.increment, 0.5)
        values = plan.values()
        self.assertEqual(values, [1.5, 2.0, 2.5, 3.0])
        for a, b in zip(values, values[1:]):
            self.assertEqual(b - a, plan.increment)

    def test_plan_counts_ticks_on_each_side(self) -> None:
        plan = plan_ticks(1.23, 3.28)
        self.assertEqual(plan.count_below, 1)
        self.assertEqual(plan.count_after, 2)
        self.assertEqual(len(plan), 4)

    def test_plan_for_padded_range(self) -> None:
        plan = plan_ticks(-0.5, 9.5)
        self.assertEqual(plan.start, 0.0)
        self.assertEqual(plan.increment, 1.0)
        self.assertEqual(plan.values(), [float(v) for v in range(10)])

    def test_plan_for_unit_range(self) -> None:
        plan = plan_ticks(0.0, 1.0)
        self.assertEqual(plan.start, 0.0)
        self.assertAlmostEqual(plan.increment, 0.1)
        self.assertEqual(len(plan), 11)

    def test_ticks_stay_inside_range(self) -> None:
        for lo, hi in ((-7.3, 12.9), (0.001, 0.0042), (1234.0, 98765.0), (-1e-5, -2e-6)):
            with self.subTest(lo=lo, hi=hi):
                plan = plan_ticks(lo, hi)
                self.assertGreater(plan.increment, 0.0)
                for value in plan.values():
                    self.assertGreaterEqual(value, lo - plan.increment * 1e-6)
                    self.assertLessEqual(value, hi + plan.increment * 1e-6)

    def test_inverted_range_is_planned_sorted(self) -> None:
        self.assertEqual(plan_ticks(3.28, 1.23), plan_ticks(1.23, 3.28))

    def test_zero_span_falls_back_to_single_tick(self) -> None:
        plan = plan_ticks(5.0, 5.0)
        self.assertEqual(plan.start, 5.0)
        self.assertEqual(len(plan), 1)
        self.assertEqual(plan.increment, 0.1)

    def test_non_finite_range_falls_back(self) -> None:
        plan = plan_ticks(0.0, math.inf)
        self.assertEqual(len(plan), 1)
        self.assertEqual(plan.start, 0.0)

    def test_huge_magnitudes_terminate(self) -> None:
        plan = plan_ticks(1e300, 1.5e300)
        self.assertEqual(plan.start, 1e300)
        self.assertTrue(math.isfinite(plan.increment))
        self.assertGreater(len(plan), 1)

        full = plan_ticks(-1e308, 1e308)
        self.assertEqual(len(full), 1)
        self.assertEqual(full.start, 0.0)

    def test_subnormal_range_terminates(self) -> None:
        plan = plan_ticks(1e-310, 2e-310)
        self.assertGreaterEqual(len(plan), 1)
        self.assertGreaterEqual(plan.start, 1e-310)
        self.assertLessEqual(plan.start, 2e-310)

    def test_iteration_cap_uses_midpoint(self) -> None:
        cfg = EngineConfig(max_tick_iterations=1)
        with self.assertLogs("chartcore.ticks", level="WARNING"):
            plan = plan_ticks(1.23, 3.28, config=cfg)
        self.assertEqual(len(plan), 1)
        self.assertAlmostEqual(plan.start, (1.23 + 3.28) / 2.0)


class TickLabelTextTests(unittest.TestCase):
    def test_fixed_point_labels(self) -> None:
        self.assertEqual(format_tick_label(0.0), "0")
        self.assertEqual(format_tick_label(-0.0), "0")
        self.assertEqual(format_tick_label(2.5), "2.5")
        self.assertEqual(format_tick_label(-2.5), "-2.5")
        self.assertEqual(format_tick_label(0.125), "0.125")
        self.assertEqual(format_tick_label(1234.5), "1234.5")
        self.assertEqual(format_tick_label(3.0), "3")

    def test_scientific_labels(self) -> None:
        self.assertEqual(format_tick_label(12345.0), "1.23e4")
        self.assertEqual(format_tick_label(10000.0), "1e4")
        self.assertEqual(format_tick_label(0.001), "1e-3")
        self.assertEqual(format_tick_label(-2.5e-7), "-2.5e-7")

    def test_log_axis_labels_show_powers(self) -> None:
        axis = AxisRange(0.0, 3.0, is_log=True)
        self.assertEqual(tick_label_text(2.0, axis), "100")
        self.assertEqual(tick_label_text(0.0, axis), "1")
        self.assertEqual(tick_label_text(2.0, AxisRange(0.0, 3.0)), "2")


class TickLayoutTests(unittest.TestCase):
    def setUp(self) -> None:
        self.box = Box(left=0.0, top=0.0, right=100.0, bottom=50.0)

    def test_wide_labels_hide_every_other_tick(self) -> None:
        t = build_transform(AxisRange(0.0, 10.0), AxisRange(0.0, 1.0), self.box)
        plan = plan_ticks(0.0, 10.0)
        labels = layout_tick_labels(plan, t, axis="x", measure=_fixed_measure(15.0))
        self.assertEqual(len(labels), 11)
        visible = [label.value for label in labels if label.visible]
        self.assertEqual(visible, [0.0, 2.0, 4.0, 6.0, 8.0, 10.0])

    def test_narrow_labels_are_all_visible(self) -> None:
        t = build_transform(AxisRange(0.0, 10.0), AxisRange(0.0, 1.0), self.box)
        labels = layout_tick_labels(plan_ticks(0.0, 10.0), t, axis="x", measure=_fixed_measure(4.0))
        self.assertTrue(all(label.visible for label in labels))

    def test_walk_starts_at_plan_start(self) -> None:
        t = build_transform(AxisRange(-5.0, 5.0), AxisRange(0.0, 1.0), self.box)
        plan = plan_ticks(-5.0, 5.0)
        self.assertEqual(plan.start, 0.0)
        labels = layout_tick_labels(plan, t, axis="x", measure=_fixed_measure(15.0))
        visible = [label.value for label in labels if label.visible]
        self.assertEqual(visible, [-4.0, -2.0, 0.0, 2.0, 4.0])

    def test_label_pixels_and_bounds(self) -> None:
        t = build_transform(AxisRange(0.0, 10.0), AxisRange(0.0, 1.0), self.box)
        labels = layout_tick_labels(plan_ticks(0.0, 10.0), t, axis="x", measure=_fixed_measure(4.0))
        third = labels[3]
        self.assertEqual(third.text, "3")
        self.assertAlmostEqual(third.pixel, 30.0)
        self.assertAlmostEqual(third.bounds.lo, 28.0)
        self.assertAlmostEqual(third.bounds.hi, 32.0)

    def test_y_axis_uses_label_height(self) -> None:
        t = build_transform(AxisRange(0.0, 1.0), AxisRange(0.0, 10.0), self.box)
        plan = plan_ticks(0.0, 10.0)
        tall = layout_tick_labels(plan, t, axis="y", measure=_fixed_measure(1.0, 12.0))
        short = layout_tick_labels(plan, t, axis="y", measure=_fixed_measure(100.0, 2.0))
        self.assertLess(sum(label.visible for label in tall), len(tall))
        self.assertTrue(all(label.visible for label in short))
        self.assertAlmostEqual(tall[0].pixel, 50.0)

    def test_margin_widens_collision_check(self) -> None:
        t = build_transform(AxisRange(0.0, 10.0), AxisRange(0.0, 1.0), self.box)
        plan = plan_ticks(0.0, 10.0)
        loose = layout_tick_labels(plan, t, axis="x", measure=_fixed_measure(8.0), margin=0.0)
        tight = layout_tick_labels(plan, t, axis="x", measure=_fixed_measure(8.0), margin=5.0)
        self.assertTrue(all(label.visible for label in loose))
        self.assertFalse(all(label.visible for label in tight))


if __name__ == "__main__":
    unittest.main()
