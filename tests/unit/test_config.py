#!/usr/bin/env python3
"""
Unit Tests for ParkingConfig and YAML loading
"""

import os
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from smartpark.config import ParkingConfig, load_config
from smartpark.domain.models import SizeClass
from smartpark.domain.strategies import OrderedIndexStrategy
from smartpark.infrastructure.factories import ParkingLotBuilder, VehicleFactory

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "parking.yaml"


class TestParkingConfig(unittest.TestCase):

    def test_defaults(self):
        config = ParkingConfig()
        self.assertEqual(config.floor_weight, 10)
        self.assertEqual(config.ticket_prefix, "TKT")
        self.assertEqual(config.ticket_number_width, 6)
        self.assertEqual(config.default_strategy, "linear")
        self.assertEqual(config.hourly_rates[SizeClass.LARGE], Decimal("20.00"))

    def test_rates_merged_with_defaults(self):
        config = ParkingConfig.from_dict({"hourly_rates": {"small": "2.5", "truck": 30}})
        self.assertEqual(config.hourly_rates[SizeClass.SMALL], Decimal("2.5"))
        self.assertEqual(config.hourly_rates[SizeClass.MEDIUM], Decimal("10.00"))
        self.assertEqual(config.hourly_rates[SizeClass.LARGE], Decimal("30"))

    def test_log_level_normalized(self):
        self.assertEqual(ParkingConfig(log_level="debug").log_level, "DEBUG")

    def test_invalid_values(self):
        bad = [
            {"floor_weight": -1},
            {"ticket_prefix": " "},
            {"ticket_number_width": 0},
            {"currency": "DOLLARS"},
            {"minimum_charge_hours": -2},
            {"log_level": "LOUD"},
            {"hourly_rates": {"small": "cheap"}},
            {"hourly_rates": {"small": -1}},
            {"hourly_rates": {"bus": 1}},
        ]
        for data in bad:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    ParkingConfig.from_dict(data)

    def test_unknown_keys_warned(self):
        with self.assertLogs("smartpark.config", level="WARNING") as logs:
            config = ParkingConfig.from_dict({"colour": "blue", "currency": "EUR"})
        self.assertEqual(config.currency, "EUR")
        self.assertIn("colour", logs.output[0])

    def test_to_dict(self):
        data = ParkingConfig().to_dict()
        self.assertEqual(data["hourly_rates"]["medium"], "10.00")
        self.assertEqual(ParkingConfig.from_dict(data).hourly_rates, ParkingConfig().hourly_rates)


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write(self, text: str) -> str:
        path = os.path.join(self.tmpdir.name, "parking.yaml")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(text)
        return path

    def test_load_yaml(self):
        path = self.write(
            "ticket_prefix: LOT\n"
            "default_strategy: ordered\n"
            "hourly_rates:\n"
            "  medium: 12.00\n"
            "layout:\n"
            "  name: Garage\n"
            "  floors:\n"
            "    - {floor: 0, small: 1}\n"
        )
        config = load_config(path)
        self.assertEqual(config.ticket_prefix, "LOT")
        self.assertEqual(config.default_strategy, "ordered")
        self.assertEqual(config.hourly_rates[SizeClass.MEDIUM], Decimal("12.00"))
        self.assertEqual(config.layout["name"], "Garage")

    def test_empty_file_gives_defaults(self):
        self.assertEqual(load_config(self.write("")).to_dict(), ParkingConfig().to_dict())

    def test_malformed_yaml(self):
        with self.assertRaises(ValueError):
            load_config(self.write("layout: [unclosed\n"))

    def test_non_mapping(self):
        with self.assertRaises(ValueError):
            load_config(self.write("- a\n- b\n"))

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmpdir.name, "missing.yaml"))


class TestExampleConfig(unittest.TestCase):
    """The example file shipped in config/ must load and build"""

    def test_example_builds_a_lot(self):
        config = load_config(str(EXAMPLE_CONFIG))
        self.assertEqual(config.default_strategy, "ordered")

        lot = ParkingLotBuilder.from_config(config).build()
        self.assertEqual(lot.name, "Downtown Garage")
        self.assertEqual(lot.total_capacity, 75)
        self.assertEqual([g.gate_id for g in lot.gates], ["ENTRY-1", "EXIT-1"])
        self.assertIsInstance(lot.service.allocation_strategy, OrderedIndexStrategy)

        ticket = lot.park_vehicle(VehicleFactory().create("car", "CAR1"))
        self.assertEqual(ticket.spot_id, "VIP-01")


if __name__ == '__main__':
    unittest.main()
