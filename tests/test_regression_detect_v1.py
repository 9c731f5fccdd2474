from __future__ import annotations

import unittest

from api.engine.regression_detect_v1 import RegressionReport, detect_regression
from tests.progress_fixtures import snap


class RegressionDetectV1Tests(unittest.TestCase):
    def test_identical_snapshot_never_regresses(self) -> None:
        snapshots = [
            snap(stats={}, swords={}),
            snap(stats={"gold": 100, "xp": 2.5}, swords={"sword1": 2, "sword2": 0}),
            snap(stats={"debt": -40}, swords={"sword9": 7}),
        ]
        for snapshot in snapshots:
            with self.subTest(snapshot=snapshot):
                self.assertEqual(detect_regression(snapshot, snapshot), (False, set()))

    def test_report_unpacks_as_pair(self) -> None:
        is_regression, reasons = detect_regression(snap(stats={"gold": 5}), snap(stats={"gold": 4}))
        self.assertTrue(is_regression)
        self.assertEqual(reasons, {"stats.gold"})

    def test_stat_decrease_is_flagged(self) -> None:
        report = detect_regression(snap(stats={"gold": 150, "xp": 10}), snap(stats={"gold": 50, "xp": 10}))
        self.assertEqual(report, RegressionReport(True, frozenset({"stats.gold"})))

    def test_any_fractional_decrease_counts(self) -> None:
        report = detect_regression(snap(stats={"time": 10.0}), snap(stats={"time": 9.999999}))
        self.assertTrue(report.is_regression)

    def test_missing_stat_reads_as_zero(self) -> None:
        positive = detect_regression(snap(stats={"gold": 1}), snap(stats={}))
        self.assertEqual(positive.reasons, {"stats.gold"})

        zero = detect_regression(snap(stats={"gold": 0}), snap(stats={}))
        self.assertFalse(zero.is_regression)

        negative = detect_regression(snap(stats={"karma": -3}), snap(stats={}))
        self.assertFalse(negative.is_regression)

    def test_new_stat_in_current_never_regresses(self) -> None:
        for value in (-1000, -0.5, 0, 12):
            with self.subTest(value=value):
                report = detect_regression(snap(stats={"gold": 1}), snap(stats={"gold": 1, "kills": value}))
                self.assertFalse(report.is_regression)

    def test_held_item_decrease_is_flagged(self) -> None:
        report = detect_regression(snap(swords={"sword1": 2}), snap(swords={"sword1": 1}))
        self.assertEqual(report.reasons, {"items.sword1"})

    def test_held_item_missing_reads_as_zero(self) -> None:
        report = detect_regression(snap(swords={"sword1": 2, "sword2": 1}), snap(swords={"sword2": 1}))
        self.assertEqual(report.reasons, {"items.sword1"})

    def test_item_with_zero_prior_count_is_exempt(self) -> None:
        previous = snap(swords={"sword1": 0})
        for current in (snap(swords={}), snap(swords={"sword1": 0}), snap(swords={"sword1": 4})):
            with self.subTest(current=current):
                self.assertFalse(detect_regression(previous, current).is_regression)

    def test_item_without_prior_entry_is_exempt(self) -> None:
        report = detect_regression(snap(swords={}), snap(swords={"sword1": 0, "sword2": 3}))
        self.assertFalse(report.is_regression)

    def test_increases_everywhere_do_not_regress(self) -> None:
        previous = snap(stats={"gold": 100, "xp": 1.5}, swords={"sword1": 2, "sword2": 0})
        current = snap(stats={"gold": 100, "xp": 3.0, "kills": 1}, swords={"sword1": 5})
        self.assertEqual(detect_regression(previous, current), (False, frozenset()))

    def test_stat_and_item_reasons_are_qualified(self) -> None:
        previous = snap(stats={"sword1": 3}, swords={"sword1": 3})
        current = snap(stats={"sword1": 2}, swords={"sword1": 2})
        self.assertEqual(detect_regression(previous, current).reasons, {"stats.sword1", "items.sword1"})

    def test_inputs_are_not_mutated(self) -> None:
        previous = snap(stats={"gold": 10}, swords={"sword1": 1})
        current = snap(stats={}, swords={})
        detect_regression(previous, current)
        self.assertEqual(dict(previous.stats), {"gold": 10})
        self.assertEqual(dict(current.stats), {})
        self.assertEqual(dict(current.items), {})


if __name__ == "__main__":
    unittest.main()
