#!/usr/bin/env python3
"""
Unit Tests for the domain models

Value objects, size classes, spots, vehicles, tickets and the ranking key.
"""

import unittest
from datetime import datetime, timedelta
from decimal import Decimal

from tests.support import make_spot, make_vehicle

from smartpark.domain.models import (
    SizeClass, LicensePlate, Position, Money, Vehicle, ParkingSpot, Ticket,
    InvalidIdentifierError, ParkingError, ranking_key, FLOOR_WEIGHT
)


class TestSizeClass(unittest.TestCase):
    """Ordering and parsing of size classes"""

    def test_order_and_capacity(self):
        self.assertEqual(SizeClass.ordered(), [SizeClass.SMALL, SizeClass.MEDIUM, SizeClass.LARGE])
        self.assertEqual([c.capacity for c in SizeClass.ordered()], [1, 2, 3])

    def test_can_fit_in_same_or_larger_only(self):
        self.assertTrue(SizeClass.SMALL.can_fit_in(SizeClass.SMALL))
        self.assertTrue(SizeClass.SMALL.can_fit_in(SizeClass.LARGE))
        self.assertTrue(SizeClass.MEDIUM.can_fit_in(SizeClass.LARGE))
        self.assertFalse(SizeClass.LARGE.can_fit_in(SizeClass.MEDIUM))
        self.assertFalse(SizeClass.MEDIUM.can_fit_in(SizeClass.SMALL))

    def test_larger_classes_smallest_first(self):
        self.assertEqual(SizeClass.SMALL.larger_classes(), [SizeClass.MEDIUM, SizeClass.LARGE])
        self.assertEqual(SizeClass.LARGE.larger_classes(), [])

    def test_parse_names_and_aliases(self):
        self.assertIs(SizeClass.parse("small"), SizeClass.SMALL)
        self.assertIs(SizeClass.parse(" Medium "), SizeClass.MEDIUM)
        self.assertIs(SizeClass.parse("bike"), SizeClass.SMALL)
        self.assertIs(SizeClass.parse("CAR"), SizeClass.MEDIUM)
        self.assertIs(SizeClass.parse("truck_spot"), SizeClass.LARGE)
        self.assertIs(SizeClass.parse(SizeClass.LARGE), SizeClass.LARGE)

    def test_parse_rejects_unknown(self):
        for value in ("bus", "", None, 3):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    SizeClass.parse(value)


class TestLicensePlate(unittest.TestCase):

    def test_normalizes(self):
        self.assertEqual(LicensePlate("  abc-123 ").value, "ABC-123")

    def test_rejects_invalid(self):
        for value in ("", "   ", "A", "ABCDEFGHIJK", "AB_12", "AB.12"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidIdentifierError):
                    LicensePlate(value)

    def test_invalid_identifier_is_value_error(self):
        self.assertTrue(issubclass(InvalidIdentifierError, ValueError))
        self.assertTrue(issubclass(InvalidIdentifierError, ParkingError))


class TestPositionAndRanking(unittest.TestCase):

    def test_distance_weights_floor(self):
        self.assertEqual(Position(3, 4, 0).distance_from_origin(), 5.0)
        self.assertEqual(Position(0, 0, 1).distance_from_origin(), float(FLOOR_WEIGHT))
        self.assertEqual(Position(0, 0, 1).distance_from_origin(floor_weight=2), 2.0)

    def test_distance_between_positions(self):
        self.assertEqual(Position(1, 1, 0).distance_to(Position(4, 5, 0)), 5.0)

    def test_ranking_key_tuple(self):
        self.assertEqual(ranking_key("A-1", Position(3, 4, 0)), (5.0, 0, "A-1"))

    def test_ranking_prefers_lower_floor_on_equal_distance(self):
        ground = make_spot("Z-9", SizeClass.SMALL, 0, 10, 0)
        upper = make_spot("A-1", SizeClass.SMALL, 0, 0, 1)
        self.assertEqual(ground.distance_from_entry, upper.distance_from_entry)
        self.assertLess(ground.ranking_key, upper.ranking_key)


class TestMoney(unittest.TestCase):

    def test_arithmetic(self):
        total = Money(Decimal("10.00")) + Money(Decimal("2.50"))
        self.assertEqual(total.amount, Decimal("12.50"))
        self.assertEqual((total - Money(Decimal("0.50"))).amount, Decimal("12.00"))
        self.assertEqual((Money(Decimal("5")) * Decimal("3")).amount, Decimal("15"))

    def test_converts_non_decimal(self):
        self.assertEqual(Money("1.5").amount, Decimal("1.5"))

    def test_validation(self):
        with self.assertRaises(ValueError):
            Money(Decimal("-1"))
        with self.assertRaises(ValueError):
            Money(Decimal("1"), "US")
        with self.assertRaises(ValueError):
            Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")
        with self.assertRaises(ValueError):
            Money(Decimal("1")) - Money(Decimal("2"))

    def test_format(self):
        self.assertEqual(Money(Decimal("12.5")).format(), "$12.50 USD")


class TestParkingSpot(unittest.TestCase):

    def test_normalizes_id(self):
        spot = ParkingSpot(" s-0-001 ", SizeClass.SMALL, Position(1, 1, 0))
        self.assertEqual(spot.spot_id, "S-0-001")

    def test_rejects_empty_id(self):
        with self.assertRaises(InvalidIdentifierError):
            ParkingSpot("  ", SizeClass.SMALL, Position(1, 1, 0))

    def test_occupancy_flag_follows_occupant(self):
        spot = make_spot("M-1", SizeClass.MEDIUM)
        vehicle = make_vehicle("CAR1")
        self.assertFalse(spot.is_occupied)
        self.assertTrue(spot.can_accommodate(vehicle))

        spot._occupy(vehicle)
        self.assertTrue(spot.is_occupied)
        self.assertIs(spot.parked_vehicle, vehicle)
        self.assertFalse(spot.can_accommodate(make_vehicle("CAR2")))

        self.assertIs(spot._vacate(), vehicle)
        self.assertFalse(spot.is_occupied)
        self.assertIsNone(spot.parked_vehicle)

    def test_cannot_accommodate_larger_vehicle(self):
        spot = make_spot("S-1", SizeClass.SMALL)
        self.assertFalse(spot.can_accommodate(make_vehicle("TRK1", SizeClass.LARGE)))

    def test_identity_by_id(self):
        a = make_spot("A-1", SizeClass.SMALL, 1, 1)
        b = make_spot("a-1", SizeClass.LARGE, 9, 9)
        self.assertEqual(a, b)
        self.assertEqual(len({a, b}), 1)

    def test_to_dict(self):
        data = make_spot("L-1", SizeClass.LARGE, 1, 2, 3).to_dict()
        self.assertEqual(data["size_class"], "LARGE")
        self.assertEqual((data["x"], data["y"], data["z"]), (1, 2, 3))
        self.assertIsNone(data["parked_vehicle"])


class TestVehicle(unittest.TestCase):

    def test_vehicle_fit(self):
        bike = make_vehicle("BIKE1", SizeClass.SMALL)
        self.assertTrue(bike.can_park_in(make_spot("L-1", SizeClass.LARGE)))
        truck = make_vehicle("TRK1", SizeClass.LARGE)
        self.assertFalse(truck.can_park_in(make_spot("M-1", SizeClass.MEDIUM)))

    def test_vehicle_is_immutable(self):
        vehicle = make_vehicle("CAR1")
        with self.assertRaises(AttributeError):
            vehicle.size_class = SizeClass.LARGE

    def test_str(self):
        self.assertEqual(str(make_vehicle("car1", SizeClass.MEDIUM)), "MEDIUM[CAR1]")


class TestTicket(unittest.TestCase):

    def setUp(self):
        self.entry = datetime(2024, 1, 1, 10, 0, 0)
        self.ticket = Ticket("TKT-000001", make_vehicle("CAR1"), "M-0-001", SizeClass.MEDIUM, self.entry)

    def test_open_ticket_duration_uses_as_of(self):
        as_of = self.entry + timedelta(minutes=90)
        self.assertEqual(self.ticket.duration(as_of), timedelta(minutes=90))
        self.assertEqual(self.ticket.duration_hours(as_of), 1)
        self.assertFalse(self.ticket.is_closed)

    def test_closed_ticket_duration_uses_exit_time(self):
        self.ticket.exit_time = self.entry + timedelta(hours=3)
        self.assertEqual(self.ticket.duration(self.entry + timedelta(hours=10)), timedelta(hours=3))
        self.assertTrue(self.ticket.is_closed)

    def test_holds_spot_id_only(self):
        self.assertEqual(self.ticket.spot_id, "M-0-001")
        self.assertEqual(self.ticket.license_plate, "CAR1")
        data = self.ticket.to_dict()
        self.assertEqual(data["spot_id"], "M-0-001")
        self.assertFalse(data["is_paid"])
        self.assertIsNone(data["amount"])


if __name__ == '__main__':
    unittest.main()
