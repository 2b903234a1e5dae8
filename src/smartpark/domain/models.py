# File: src/smartpark/domain/models.py
"""
Domain Models for the SmartPark allocation engine

This module contains:
1. Value Objects: LicensePlate, Position, Money
2. Enums: SizeClass (ordered vehicle/spot classes)
3. Entities: ParkingSpot, Vehicle, Ticket
4. The ranking key shared by every allocation strategy

A vehicle may occupy a spot of its own size class or of any larger class,
never a smaller one. Spots are ordered for allocation by their weighted
distance from the entry gate, then by floor, then by spot id.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
import math
import re


# Floors are weighted so that a spot one floor up counts as 10 units away
FLOOR_WEIGHT = 10

RankingKey = Tuple[float, int, str]


# ============================================================================
# DOMAIN ERRORS
# ============================================================================

class ParkingError(Exception):
    """Base exception for all parking domain errors"""
    pass


class InvalidIdentifierError(ParkingError, ValueError):
    """Raised for an empty or malformed license plate or spot id"""
    pass


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class SizeClass(Enum):
    """
    Ordered size classes shared by vehicles and parking spots

    Each member carries (rank, capacity, label). Rank defines the order
    SMALL < MEDIUM < LARGE; capacity is the number of size units a spot of
    this class offers.
    """
    SMALL = (1, 1, "Small")
    MEDIUM = (2, 2, "Medium")
    LARGE = (3, 3, "Large")

    def __init__(self, rank: int, capacity: int, label: str):
        self.rank = rank
        self.capacity = capacity
        self.label = label

    def can_fit_in(self, spot_class: 'SizeClass') -> bool:
        """Check if a vehicle of this class may park in a spot of spot_class"""
        return self.rank <= spot_class.rank

    def larger_classes(self) -> List['SizeClass']:
        """Strictly larger classes, smallest first"""
        return [c for c in SizeClass.ordered() if c.rank > self.rank]

    @classmethod
    def ordered(cls) -> List['SizeClass']:
        """All classes in ascending rank"""
        return sorted(cls, key=lambda c: c.rank)

    @classmethod
    def parse(cls, value: Any) -> 'SizeClass':
        """
        Resolve a size class from an enum member or a name

        Accepts the class names ("small", "MEDIUM", ...) and the vehicle
        aliases "bike", "car" and "truck".
        """
        if isinstance(value, SizeClass):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Invalid size class: {value!r}")

        name = value.strip().upper()
        aliases = {
            "BIKE": cls.SMALL,
            "MOTORCYCLE": cls.SMALL,
            "CAR": cls.MEDIUM,
            "TRUCK": cls.LARGE,
        }
        if name in aliases:
            return aliases[name]
        # Spot-type spellings such as "CAR_SPOT"
        if name.endswith("_SPOT") and name[:-5] in aliases:
            return aliases[name[:-5]]
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Invalid size class: {value!r}") from None

    def __str__(self) -> str:
        return self.label


# ============================================================================
# DOMAIN PRIMITIVES / VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class LicensePlate:
    """
    Value Object: License plate number with validation
    Represents the unique identifier for a vehicle
    """
    value: str

    def __post_init__(self):
        """Normalize and validate the plate"""
        if not isinstance(self.value, str) or not self.value.strip():
            raise InvalidIdentifierError("License plate cannot be empty")

        object.__setattr__(self, 'value', normalize_plate(self.value))

        if len(self.value) < 2 or len(self.value) > 10:
            raise InvalidIdentifierError(
                f"License plate must be 2-10 characters, got: {self.value}"
            )

        if not re.match(r'^[A-Z0-9\s\-]+$', self.value):
            raise InvalidIdentifierError(
                f"License plate can only contain letters, numbers, spaces, and hyphens: {self.value}"
            )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Position:
    """Value Object: 3D position relative to the entry gate (z is the floor)"""
    x: int
    y: int
    z: int = 0

    def distance_from_origin(self, floor_weight: int = FLOOR_WEIGHT) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + (self.z * floor_weight) ** 2)

    def distance_to(self, other: 'Position', floor_weight: int = FLOOR_WEIGHT) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = (self.z - other.z) * floor_weight
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"


@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount with currency
    Provides arithmetic operations with validation
    """
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        """Validate money amount"""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money amounts (same currency only)"""
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract money amounts (same currency only)"""
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency} from {self.currency}")
        result = self.amount - other.amount
        if result < Decimal('0'):
            raise ValueError("Result cannot be negative")
        return Money(result, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        """Multiply money by a decimal"""
        if multiplier < Decimal('0'):
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * multiplier, self.currency)

    def format(self) -> str:
        """Format money for display"""
        return f"${self.amount:.2f} {self.currency}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "currency": self.currency
        }


def normalize_plate(value: str) -> str:
    """Trim and upper-case a license plate string"""
    return value.strip().upper()


def normalize_spot_id(value: str) -> str:
    """Trim and upper-case a spot id, rejecting empty ids"""
    if not isinstance(value, str) or not value.strip():
        raise InvalidIdentifierError("Spot ID cannot be empty")
    return value.strip().upper()


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

@dataclass(frozen=True)
class Vehicle:
    """
    Entity: a vehicle requesting a spot

    Immutable, identified by its license plate. Safe to share between the
    ticket map, spots and observers.
    """
    license_plate: LicensePlate
    size_class: SizeClass

    @property
    def plate(self) -> str:
        return self.license_plate.value

    def can_park_in(self, spot: 'ParkingSpot') -> bool:
        """Check class compatibility only (occupancy is the registry's concern)"""
        return self.size_class.can_fit_in(spot.size_class)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "license_plate": self.plate,
            "size_class": self.size_class.name,
        }

    def __str__(self) -> str:
        return f"{self.size_class.name}[{self.plate}]"


class ParkingSpot:
    """
    Entity: Individual parking space with a size class and fixed position
    Has identity (spot id) and lifecycle (occupied/vacant)

    Occupancy is changed only through the SpotRegistry that owns the spot.
    """

    def __init__(
        self,
        spot_id: str,
        size_class: SizeClass,
        position: Position,
        floor_weight: int = FLOOR_WEIGHT
    ):
        self._spot_id = normalize_spot_id(spot_id)
        self._size_class = size_class
        self._position = position
        self._parked_vehicle: Optional[Vehicle] = None
        self._ranking_key = ranking_key(self._spot_id, position, floor_weight)

    @property
    def spot_id(self) -> str:
        return self._spot_id

    @property
    def size_class(self) -> SizeClass:
        return self._size_class

    @property
    def position(self) -> Position:
        return self._position

    @property
    def floor(self) -> int:
        return self._position.z

    @property
    def is_occupied(self) -> bool:
        return self._parked_vehicle is not None

    @property
    def parked_vehicle(self) -> Optional[Vehicle]:
        return self._parked_vehicle

    @property
    def ranking_key(self) -> RankingKey:
        """Allocation order: weighted distance, then floor, then id"""
        return self._ranking_key

    @property
    def distance_from_entry(self) -> float:
        return self._ranking_key[0]

    def can_accommodate(self, vehicle: Vehicle) -> bool:
        """Check if the spot is free and large enough for the vehicle"""
        return not self.is_occupied and vehicle.size_class.can_fit_in(self._size_class)

    def _occupy(self, vehicle: Vehicle) -> None:
        # Flag and occupant are one field, so they can never disagree
        self._parked_vehicle = vehicle

    def _vacate(self) -> Optional[Vehicle]:
        vehicle = self._parked_vehicle
        self._parked_vehicle = None
        return vehicle

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "size_class": self.size_class.name,
            "x": self.position.x,
            "y": self.position.y,
            "z": self.position.z,
            "is_occupied": self.is_occupied,
            "parked_vehicle": self._parked_vehicle.plate if self._parked_vehicle else None,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParkingSpot):
            return False
        return self._spot_id == other._spot_id

    def __hash__(self) -> int:
        return hash(self._spot_id)

    def __repr__(self) -> str:
        return f"ParkingSpot(spot_id={self._spot_id!r}, size_class={self._size_class.name})"

    def __str__(self) -> str:
        state = "OCCUPIED" if self.is_occupied else "FREE"
        return f"{self._size_class.name}[{self._spot_id}]{self._position} - {state}"


class Ticket:
    """
    Entity: a parking ticket binding a vehicle to a spot

    The ticket holds the spot id, never the spot itself. Entry time is fixed at
    creation; exit time, amount and paid flag are written only by the
    ParkingService settlement path.
    """

    def __init__(
        self,
        ticket_id: str,
        vehicle: Vehicle,
        spot_id: str,
        spot_class: SizeClass,
        entry_time: Optional[datetime] = None
    ):
        self._ticket_id = ticket_id
        self._vehicle = vehicle
        self._spot_id = spot_id
        self._spot_class = spot_class
        self._entry_time = entry_time or datetime.now()
        self.exit_time: Optional[datetime] = None
        self.amount: Optional[Money] = None
        self.is_paid: bool = False

    @property
    def ticket_id(self) -> str:
        return self._ticket_id

    @property
    def vehicle(self) -> Vehicle:
        return self._vehicle

    @property
    def license_plate(self) -> str:
        return self._vehicle.plate

    @property
    def spot_id(self) -> str:
        return self._spot_id

    @property
    def spot_class(self) -> SizeClass:
        return self._spot_class

    @property
    def entry_time(self) -> datetime:
        return self._entry_time

    @property
    def is_closed(self) -> bool:
        return self.exit_time is not None

    def duration(self, as_of: Optional[datetime] = None) -> timedelta:
        """Elapsed time from entry to exit (or to as_of / now while open)"""
        end_time = self.exit_time or as_of or datetime.now()
        return end_time - self._entry_time

    def duration_hours(self, as_of: Optional[datetime] = None) -> int:
        """Whole hours parked, truncated"""
        return int(self.duration(as_of).total_seconds() // 3600)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "license_plate": self.license_plate,
            "size_class": self._vehicle.size_class.name,
            "spot_id": self.spot_id,
            "spot_class": self.spot_class.name,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "amount": self.amount.to_dict() if self.amount else None,
            "is_paid": self.is_paid,
        }

    def __repr__(self) -> str:
        return f"Ticket(ticket_id={self._ticket_id!r}, plate={self.license_plate!r}, spot_id={self._spot_id!r})"

    def __str__(self) -> str:
        entry = self._entry_time.strftime("%Y-%m-%d %H:%M:%S")
        return f"Ticket[{self._ticket_id}] - {self._vehicle} at {self._spot_id} (Entry: {entry})"


# ============================================================================
# RANKING
# ============================================================================

def ranking_key(spot_id: str, position: Position, floor_weight: int = FLOOR_WEIGHT) -> RankingKey:
    """
    Ranking key used by every allocation strategy

    (sqrt(x^2 + y^2 + (z * W)^2), z, spot_id): nearest first, lower floor on
    equal distance, lexicographically smaller id on a full tie.
    """
    return (position.distance_from_origin(floor_weight), position.z, spot_id)
