# File: src/smartpark/domain/aggregates.py
"""
Aggregate Root for the SmartPark allocation engine

Aggregates:
1. ParkingLot - facade over the spot registry, the gates and the
   ParkingService coordinator

Key Concepts:
- Every park/exit/payment goes through the coordinator
- Spots are owned by the registry; the lot only exposes read views of them
- Gates are descriptive: allocation ranks spots from the entry origin
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Any, Union, TYPE_CHECKING
import logging

from .models import (
    ParkingSpot, Vehicle, Ticket, Money, Position, LicensePlate,
    FLOOR_WEIGHT, normalize_spot_id
)
from .registry import SpotRegistry

if TYPE_CHECKING:
    from ..application.parking_service import (
        ParkingService, ParkingStatsDTO, PaymentResultDTO
    )
    from ..infrastructure.messaging import ParkingLotObserver


# ============================================================================
# GATES
# ============================================================================

class GateType(Enum):
    ENTRY = "entry"
    EXIT = "exit"
    BOTH = "both"


@dataclass(frozen=True)
class Gate:
    """Value Object: an entry/exit gate with a 3D position"""
    gate_id: str
    position: Position
    gate_type: GateType = GateType.BOTH

    def __post_init__(self):
        object.__setattr__(self, 'gate_id', normalize_spot_id(self.gate_id))

    @property
    def is_entry(self) -> bool:
        return self.gate_type in (GateType.ENTRY, GateType.BOTH)

    @property
    def is_exit(self) -> bool:
        return self.gate_type in (GateType.EXIT, GateType.BOTH)

    def distance_to_spot(self, spot: ParkingSpot, floor_weight: int = FLOOR_WEIGHT) -> float:
        return self.position.distance_to(spot.position, floor_weight)

    def __str__(self) -> str:
        return f"Gate[{self.gate_id}]{self.position} - {self.gate_type.name}"


# ============================================================================
# PARKING LOT AGGREGATE
# ============================================================================

class ParkingLot:
    """
    Aggregate Root: Parking lot facade
    Provides a simplified interface over registry, coordinator and pricing
    """

    def __init__(
        self,
        name: str,
        registry: SpotRegistry,
        service: 'ParkingService',
        gates: Optional[List[Gate]] = None
    ):
        if not name or not name.strip():
            raise ValueError("Parking lot name cannot be empty")
        if service.registry is not registry:
            raise ValueError("ParkingService must manage the lot's registry")

        self.name = name.strip()
        self.registry = registry
        self.service = service
        self._gates: List[Gate] = []
        self._logger = logging.getLogger(self.__class__.__name__)

        for gate in gates or []:
            self.add_gate(gate)

        self._logger.info(f"Created ParkingLot: {self.name} ({self.total_capacity} spots)")

    # ========================================================================
    # LAYOUT
    # ========================================================================

    def add_spot(self, spot: ParkingSpot) -> ParkingSpot:
        """Register a new spot; duplicate ids raise SpotRegistryError"""
        return self.registry.add_spot(spot)

    def add_gate(self, gate: Gate) -> None:
        """Add a gate; a gate with an existing id is ignored"""
        if gate is None or any(g.gate_id == gate.gate_id for g in self._gates):
            return
        self._gates.append(gate)

    @property
    def gates(self) -> List[Gate]:
        return list(self._gates)

    def nearest_gate(self, spot: ParkingSpot, exit_gate: bool = False) -> Optional[Gate]:
        """Closest entry (or exit) gate to a spot; ties go to the first added"""
        candidates = [g for g in self._gates if (g.is_exit if exit_gate else g.is_entry)]
        if not candidates:
            return None
        weight = self.service.config.floor_weight
        return min(candidates, key=lambda g: g.distance_to_spot(spot, weight))

    # ========================================================================
    # OPERATIONS (delegated to the coordinator)
    # ========================================================================

    def park_vehicle(self, vehicle: Vehicle) -> Optional[Ticket]:
        return self.service.park_vehicle(vehicle)

    def exit_vehicle(self, license_plate: Union[str, LicensePlate]) -> Ticket:
        return self.service.exit_vehicle(license_plate)

    def calculate_fee(self, ticket: Ticket, as_of: Optional[datetime] = None) -> Money:
        return self.service.calculate_fee(ticket, as_of)

    def process_payment(self, ticket: Ticket, amount_paid: Any) -> 'PaymentResultDTO':
        return self.service.process_payment(ticket, amount_paid)

    def get_active_ticket(self, license_plate: Union[str, LicensePlate]) -> Optional[Ticket]:
        return self.service.get_active_ticket(license_plate)

    def add_observer(self, observer: 'ParkingLotObserver') -> None:
        self.service.add_observer(observer)

    def remove_observer(self, observer: 'ParkingLotObserver') -> None:
        self.service.remove_observer(observer)

    # ========================================================================
    # QUERY METHODS (Read-only)
    # ========================================================================

    def available_spots(self) -> List[ParkingSpot]:
        return list(self.registry.free_spots())

    def occupied_spots(self) -> List[ParkingSpot]:
        return self.registry.occupied_spots()

    def all_spots(self) -> List[ParkingSpot]:
        return self.registry.all_spots()

    @property
    def is_full(self) -> bool:
        return self.registry.free_count == 0

    @property
    def total_capacity(self) -> int:
        return self.registry.total_count

    @property
    def current_occupancy(self) -> int:
        return self.registry.occupied_count

    def get_parking_stats(self) -> 'ParkingStatsDTO':
        return self.service.get_parking_stats()

    def get_pricing_info(self) -> str:
        return self.service.pricing_strategy.get_pricing_info()

    def __str__(self) -> str:
        return (
            f"ParkingLot[{self.name}] - Capacity: {self.total_capacity}, "
            f"Occupied: {self.current_occupancy}, Available: {self.registry.free_count}"
        )
