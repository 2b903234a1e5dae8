#!/usr/bin/env python3
"""
Unit Tests for the allocation strategies

Both strategies must pick the same spot for the same input, prefer the exact
size class, fall back to the smallest larger class and never touch their
input.
"""

import random
import unittest

from tests.support import make_spot, make_vehicle

from smartpark.domain.models import SizeClass
from smartpark.domain.registry import SpotRegistry
from smartpark.domain.strategies import (
    AllocationStrategy, LinearScanStrategy, OrderedIndexStrategy
)


def random_lot(rng: random.Random, count: int):
    return [
        make_spot(
            f"R-{i:03d}",
            rng.choice(SizeClass.ordered()),
            rng.randint(0, 20),
            rng.randint(0, 20),
            rng.randint(0, 2)
        )
        for i in range(count)
    ]


class StrategyContractMixin:
    """Contract checks run against every strategy"""

    def create_strategy(self) -> AllocationStrategy:
        raise NotImplementedError

    def setUp(self):
        self.strategy = self.create_strategy()

    def test_empty_input_returns_none(self):
        self.assertIsNone(self.strategy.select_spot([], make_vehicle("CAR1")))

    def test_exact_match_before_larger(self):
        far_small = make_spot("S-1", SizeClass.SMALL, 100, 0)
        near_medium = make_spot("M-1", SizeClass.MEDIUM, 1, 0)
        spot = self.strategy.select_spot([near_medium, far_small], make_vehicle("BIKE1", SizeClass.SMALL))
        self.assertIs(spot, far_small)

    def test_smallest_larger_class_first(self):
        far_medium = make_spot("M-1", SizeClass.MEDIUM, 50, 0)
        near_large = make_spot("L-1", SizeClass.LARGE, 1, 0)
        spot = self.strategy.select_spot([near_large, far_medium], make_vehicle("BIKE1", SizeClass.SMALL))
        self.assertIs(spot, far_medium)

    def test_nearest_within_class(self):
        spots = [
            make_spot("M-3", SizeClass.MEDIUM, 30, 0),
            make_spot("M-1", SizeClass.MEDIUM, 10, 0),
            make_spot("M-2", SizeClass.MEDIUM, 20, 0),
        ]
        self.assertEqual(self.strategy.select_spot(spots, make_vehicle("CAR1")).spot_id, "M-1")

    def test_tie_break_by_floor_then_id(self):
        upper = make_spot("A-1", SizeClass.MEDIUM, 0, 0, 1)
        ground = make_spot("Z-1", SizeClass.MEDIUM, 0, 10, 0)
        self.assertIs(self.strategy.select_spot([upper, ground], make_vehicle("CAR1")), ground)

        b = make_spot("B-1", SizeClass.MEDIUM, 3, 4)
        a = make_spot("A-1", SizeClass.MEDIUM, 4, 3)
        self.assertIs(self.strategy.select_spot([b, a], make_vehicle("CAR1")), a)
        self.assertIs(self.strategy.select_spot([a, b], make_vehicle("CAR1")), a)

    def test_never_smaller_class(self):
        spots = [make_spot("S-1", SizeClass.SMALL), make_spot("M-1", SizeClass.MEDIUM)]
        self.assertIsNone(self.strategy.select_spot(spots, make_vehicle("TRK1", SizeClass.LARGE)))

    def test_occupied_spots_ignored(self):
        near = make_spot("M-1", SizeClass.MEDIUM, 1, 0)
        far = make_spot("M-2", SizeClass.MEDIUM, 9, 0)
        near._occupy(make_vehicle("OTHER1"))
        self.assertIs(self.strategy.select_spot([near, far], make_vehicle("CAR1")), far)

    def test_input_not_modified(self):
        rng = random.Random(7)
        spots = random_lot(rng, 30)
        before = [s.to_dict() for s in spots]
        order = list(spots)

        self.strategy.select_spot(spots, make_vehicle("CAR1", SizeClass.SMALL))

        self.assertEqual(spots, order)
        self.assertEqual([s.to_dict() for s in spots], before)

    def test_metadata(self):
        self.assertTrue(self.strategy.get_strategy_name())
        self.assertTrue(self.strategy.get_time_complexity().startswith("O("))
        self.assertIn(self.strategy.get_strategy_name(), str(self.strategy))


class TestLinearScanStrategy(StrategyContractMixin, unittest.TestCase):

    def create_strategy(self):
        return LinearScanStrategy()


class TestOrderedIndexStrategy(StrategyContractMixin, unittest.TestCase):

    def create_strategy(self):
        return OrderedIndexStrategy()

    def test_live_index_serves_current_snapshot(self):
        registry = SpotRegistry(random_lot(random.Random(3), 20))
        self.strategy.attach(registry)

        snapshot = registry.free_spots()
        self.assertTrue(self.strategy._is_live_snapshot(snapshot))

        spot = self.strategy.select_spot(snapshot, make_vehicle("CAR1", SizeClass.SMALL))
        registry.mark_occupied(spot.spot_id, make_vehicle("CAR1", SizeClass.SMALL))
        self.assertFalse(self.strategy._is_live_snapshot(snapshot))
        self.assertTrue(self.strategy._is_live_snapshot(registry.free_spots()))

    def test_stale_snapshot_matches_linear_scan(self):
        registry = SpotRegistry(random_lot(random.Random(5), 25))
        self.strategy.attach(registry)
        stale = registry.free_spots()

        vehicle = make_vehicle("CAR1", SizeClass.SMALL)
        first = self.strategy.select_spot(registry.free_spots(), vehicle)
        registry.mark_occupied(first.spot_id, vehicle)

        other = make_vehicle("CAR2", SizeClass.SMALL)
        self.assertEqual(
            self.strategy.select_spot(stale, other),
            LinearScanStrategy().select_spot(stale, other)
        )

    def test_detach(self):
        registry = SpotRegistry([make_spot("M-1", SizeClass.MEDIUM)])
        self.strategy.attach(registry)
        self.strategy.detach()

        snapshot = registry.free_spots()
        self.assertFalse(self.strategy._is_live_snapshot(snapshot))
        self.assertEqual(self.strategy.select_spot(snapshot, make_vehicle("CAR1")).spot_id, "M-1")
        self.assertEqual(self.strategy.get_availability_stats(), "Index not attached")

    def test_availability_stats(self):
        registry = SpotRegistry([
            make_spot("S-1", SizeClass.SMALL),
            make_spot("M-1", SizeClass.MEDIUM),
            make_spot("M-2", SizeClass.MEDIUM),
        ])
        self.strategy.attach(registry)
        self.assertEqual(
            self.strategy.get_availability_stats(),
            "Available spots - Small: 1, Medium: 2, Large: 0"
        )


class TestStrategyEquivalence(unittest.TestCase):
    """Seeded random lots: both strategies choose the same spot"""

    def test_same_result_on_plain_sequences(self):
        rng = random.Random(20240101)
        linear = LinearScanStrategy()
        ordered = OrderedIndexStrategy()

        for trial in range(200):
            spots = random_lot(rng, rng.randint(0, 40))
            for spot in spots:
                if rng.random() < 0.3:
                    spot._occupy(make_vehicle("OCC1", SizeClass.SMALL))
            vehicle = make_vehicle("CAR1", rng.choice(SizeClass.ordered()))
            with self.subTest(trial=trial):
                self.assertEqual(
                    linear.select_spot(spots, vehicle),
                    ordered.select_spot(spots, vehicle)
                )

    def test_same_result_with_live_index(self):
        rng = random.Random(42)
        linear_registry = SpotRegistry(random_lot(random.Random(99), 50))
        ordered_registry = SpotRegistry(random_lot(random.Random(99), 50))
        linear = LinearScanStrategy()
        ordered = OrderedIndexStrategy()
        ordered.attach(ordered_registry)

        for step in range(300):
            vehicle = make_vehicle(f"V{step}", rng.choice(SizeClass.ordered()))
            expected = linear.select_spot(linear_registry.free_spots(), vehicle)
            actual = ordered.select_spot(ordered_registry.free_spots(), vehicle)
            self.assertEqual(
                expected.spot_id if expected else None,
                actual.spot_id if actual else None,
                f"step {step}"
            )
            if expected is not None:
                linear_registry.mark_occupied(expected.spot_id, vehicle)
                ordered_registry.mark_occupied(actual.spot_id, vehicle)
            occupied = linear_registry.occupied_spots()
            if occupied and rng.random() < 0.4:
                spot_id = rng.choice(occupied).spot_id
                linear_registry.mark_free(spot_id)
                ordered_registry.mark_free(spot_id)


if __name__ == '__main__':
    unittest.main()
