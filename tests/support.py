"""
Shared helpers for the SmartPark tests
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from smartpark.domain.models import (
    LicensePlate, Position, SizeClass, Vehicle, ParkingSpot
)
from smartpark.infrastructure.messaging import ParkingLotObserver


def make_spot(spot_id: str, size_class: SizeClass, x: int = 0, y: int = 0, z: int = 0) -> ParkingSpot:
    return ParkingSpot(spot_id, size_class, Position(x, y, z))


def make_vehicle(plate: str, size_class: SizeClass = SizeClass.MEDIUM) -> Vehicle:
    return Vehicle(LicensePlate(plate), size_class)


class FakeClock:
    """Manually advanced clock for deterministic ticket times"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingObserver(ParkingLotObserver):
    """Appends (name, event, plate, spot_id) to a shared journal"""

    def __init__(self, name: str = "observer", journal: Optional[List[Tuple]] = None):
        self.name = name
        self.journal = journal if journal is not None else []

    def on_vehicle_parked(self, vehicle, spot) -> None:
        self.journal.append((self.name, "parked", vehicle.plate, spot.spot_id))

    def on_vehicle_exit(self, vehicle, spot) -> None:
        self.journal.append((self.name, "exit", vehicle.plate, spot.spot_id))

    def on_lot_full(self) -> None:
        self.journal.append((self.name, "full", None, None))

    def on_lot_available(self) -> None:
        self.journal.append((self.name, "available", None, None))

    def events(self) -> List[str]:
        return [entry[1] for entry in self.journal if entry[0] == self.name]
