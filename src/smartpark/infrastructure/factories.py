# File: src/smartpark/infrastructure/factories.py
"""
Factory Pattern Implementation for the SmartPark allocation engine

This module implements the factories and the builder used to assemble a
parking lot:
1. Domain Object Factories - vehicles and parking spots with validation
2. Strategy Factories - allocation and pricing strategies by name
3. ParkingLotBuilder - fluent, declarative multi-floor layouts

Layout conventions:
- Floor spot ids are S-<floor>-<nnn>, M-<floor>-<nnn> and L-<floor>-<nnn>
- Small spots sit at (i*5, 10+5f, f), medium at (i*8, 20+5f, f) and large
  at (i*12, 30+5f, f), for i = 1..count on floor f
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, Dict, List, Any, Union, Tuple
import logging

from ..config import ParkingConfig
from ..domain.models import (
    Vehicle, ParkingSpot, LicensePlate, Position, SizeClass,
    InvalidIdentifierError
)
from ..domain.registry import SpotRegistry
from ..domain.strategies import (
    AllocationStrategy, PricingStrategy,
    LinearScanStrategy, OrderedIndexStrategy, HourlyPricingStrategy
)
from ..domain.aggregates import ParkingLot, Gate, GateType
from ..application.parking_service import ParkingService
from .messaging import ParkingLotObserver, ObserverBus


T = TypeVar('T')

logger = logging.getLogger(__name__)


# ============================================================================
# FACTORY INTERFACES
# ============================================================================

class Factory(ABC, Generic[T]):
    """Base factory interface"""

    @abstractmethod
    def create(self, *args, **kwargs) -> T:
        """Create an instance of T"""
        pass


class StrategyFactory(Factory[T], ABC):
    """Factory for strategy objects"""

    @abstractmethod
    def create_by_type(self, strategy_type: str) -> T:
        """Create strategy by type name"""
        pass


# ============================================================================
# DOMAIN OBJECT FACTORIES
# ============================================================================

class VehicleFactory(Factory[Vehicle]):
    """Factory for creating Vehicle domain objects"""

    def create(self, vehicle_type: Union[SizeClass, str], license_plate: str) -> Vehicle:
        """
        Create a Vehicle

        Args:
            vehicle_type: SizeClass or a name such as "bike", "car", "small"
            license_plate: Plate text, trimmed and upper-cased
        """
        if vehicle_type is None or (isinstance(vehicle_type, str) and not vehicle_type.strip()):
            raise ValueError("Vehicle type cannot be empty")
        try:
            size_class = SizeClass.parse(vehicle_type)
        except ValueError:
            raise ValueError(f"Invalid vehicle type: {vehicle_type}") from None

        return Vehicle(LicensePlate(license_plate), size_class)

    def create_many(self, vehicle_type: Union[SizeClass, str], count: int, prefix: str = "TEST") -> List[Vehicle]:
        """Create vehicles with plates PREFIX001, PREFIX002, ..."""
        return [self.create(vehicle_type, f"{prefix}{str(i + 1).zfill(3)}") for i in range(count)]


class ParkingSpotFactory(Factory[ParkingSpot]):
    """Factory for creating ParkingSpot domain objects"""

    def __init__(self, floor_weight: Optional[int] = None):
        self.floor_weight = ParkingConfig().floor_weight if floor_weight is None else floor_weight

    def create(
        self,
        spot_type: Union[SizeClass, str],
        spot_id: str,
        x: int,
        y: int,
        z: int = 0
    ) -> ParkingSpot:
        """
        Create a ParkingSpot

        Args:
            spot_type: SizeClass or a name such as "small", "car_spot", "truck"
            spot_id: Unique spot id, trimmed and upper-cased
            x, y: Coordinates on the floor
            z: Floor number (0 = ground floor)
        """
        if not isinstance(spot_id, str) or not spot_id.strip():
            raise InvalidIdentifierError("Spot ID cannot be empty")
        if spot_type is None or (isinstance(spot_type, str) and not spot_type.strip()):
            raise ValueError("Spot type cannot be empty")
        try:
            size_class = SizeClass.parse(spot_type)
        except ValueError:
            raise ValueError(f"Invalid spot type: {spot_type}") from None
        if z < 0:
            raise ValueError(f"Floor cannot be negative: {z}")

        return ParkingSpot(spot_id, size_class, Position(x, y, z), self.floor_weight)

    def create_floor(self, floor: int, small: int = 0, medium: int = 0, large: int = 0) -> List[ParkingSpot]:
        """Create the standard spot layout of one floor"""
        if floor < 0:
            raise ValueError(f"Floor cannot be negative: {floor}")
        if min(small, medium, large) < 0:
            raise ValueError("Spot counts cannot be negative")

        spots = []
        for size_class, count in ((SizeClass.SMALL, small), (SizeClass.MEDIUM, medium), (SizeClass.LARGE, large)):
            prefix, step, row = FLOOR_LAYOUT[size_class]
            for i in range(1, count + 1):
                spots.append(self.create(
                    size_class,
                    f"{prefix}-{floor}-{i:03d}",
                    i * step,
                    row + floor * 5,
                    floor
                ))
        return spots


# id prefix, x step, base y per size class
FLOOR_LAYOUT: Dict[SizeClass, Tuple[str, int, int]] = {
    SizeClass.SMALL: ("S", 5, 10),
    SizeClass.MEDIUM: ("M", 8, 20),
    SizeClass.LARGE: ("L", 12, 30),
}


# ============================================================================
# STRATEGY FACTORIES
# ============================================================================

class AllocationStrategyFactory(StrategyFactory[AllocationStrategy]):
    """Factory for creating AllocationStrategy instances"""

    strategy_map = {
        "linear": LinearScanStrategy,
        "linear_scan": LinearScanStrategy,
        "basic": LinearScanStrategy,
        "ordered": OrderedIndexStrategy,
        "ordered_index": OrderedIndexStrategy,
        "bst": OrderedIndexStrategy,
        "tree": OrderedIndexStrategy,
    }

    def create(self, *args, **kwargs) -> AllocationStrategy:
        """Create an allocation strategy"""
        # Default to linear scan
        return LinearScanStrategy()

    def create_by_type(self, strategy_type: str) -> AllocationStrategy:
        """Create strategy by type"""
        key = str(strategy_type or "").strip().lower().replace("-", "_")
        strategy_class = self.strategy_map.get(key)
        if not strategy_class:
            raise ValueError(f"Unknown allocation strategy type: {strategy_type}")
        return strategy_class()

    @classmethod
    def available_types(cls) -> List[str]:
        return ["linear", "ordered"]


class PricingStrategyFactory(StrategyFactory[PricingStrategy]):
    """Factory for creating PricingStrategy instances"""

    def create(self, config: Optional[ParkingConfig] = None) -> PricingStrategy:
        """Create the hourly pricing strategy described by a config"""
        config = config or ParkingConfig()
        return HourlyPricingStrategy(
            hourly_rates=config.hourly_rates,
            currency=config.currency,
            minimum_charge_hours=config.minimum_charge_hours
        )

    def create_by_type(self, strategy_type: str, config: Optional[ParkingConfig] = None) -> PricingStrategy:
        """Create strategy by type"""
        if str(strategy_type).strip().lower() != "hourly":
            raise ValueError(f"Unknown pricing strategy type: {strategy_type}")
        return self.create(config)


# ============================================================================
# BUILDER PATTERN
# ============================================================================

class ParkingLotBuilder:
    """
    Builder pattern for constructing ParkingLot layouts

    Every build() call produces an independent lot with its own registry and
    coordinator; floor spots are created fresh for each build. Spots passed
    to with_spots() are used as given.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> 'ParkingLotBuilder':
        """Reset builder state"""
        self._name = "Default Parking Lot"
        self._strategy: Union[AllocationStrategy, str, None] = None
        self._pricing: Optional[PricingStrategy] = None
        self._config: Optional[ParkingConfig] = None
        self._floors: List[Tuple[int, int, int, int]] = []
        self._spots: List[ParkingSpot] = []
        self._gates: List[Gate] = []
        self._observers: List[ParkingLotObserver] = []
        return self

    def with_name(self, name: str) -> 'ParkingLotBuilder':
        if name and name.strip():
            self._name = name.strip()
        return self

    def with_strategy(self, strategy: Union[AllocationStrategy, str]) -> 'ParkingLotBuilder':
        """Allocation strategy instance or type name ("linear", "ordered")"""
        if strategy is not None:
            self._strategy = strategy
        return self

    def with_pricing(self, pricing: PricingStrategy) -> 'ParkingLotBuilder':
        if pricing is not None:
            self._pricing = pricing
        return self

    def with_config(self, config: ParkingConfig) -> 'ParkingLotBuilder':
        if config is not None:
            self._config = config
        return self

    def with_floor(self, floor: int, small: int = 0, medium: int = 0, large: int = 0) -> 'ParkingLotBuilder':
        """Add a floor with the given number of spots per size class"""
        if floor < 0:
            raise ValueError(f"Floor cannot be negative: {floor}")
        if min(small, medium, large) < 0:
            raise ValueError("Spot counts cannot be negative")
        self._floors.append((floor, small, medium, large))
        return self

    def with_floors(
        self,
        start_floor: int,
        number_of_floors: int,
        small: int = 0,
        medium: int = 0,
        large: int = 0
    ) -> 'ParkingLotBuilder':
        """Add several floors with the same configuration"""
        for floor in range(start_floor, start_floor + number_of_floors):
            self.with_floor(floor, small, medium, large)
        return self

    def with_spots(self, *spots: ParkingSpot) -> 'ParkingLotBuilder':
        self._spots.extend(s for s in spots if s is not None)
        return self

    def with_gates(self, *gates: Gate) -> 'ParkingLotBuilder':
        self._gates.extend(g for g in gates if g is not None)
        return self

    def with_observers(self, *observers: ParkingLotObserver) -> 'ParkingLotBuilder':
        self._observers.extend(o for o in observers if o is not None)
        return self

    def build(self) -> ParkingLot:
        """Build and return a new ParkingLot"""
        config = self._config or ParkingConfig()
        spot_factory = ParkingSpotFactory(config.floor_weight)

        registry = SpotRegistry()
        for floor, small, medium, large in self._floors:
            for spot in spot_factory.create_floor(floor, small, medium, large):
                registry.add_spot(spot)
        for spot in self._spots:
            registry.add_spot(spot)

        strategy = self._strategy or config.default_strategy
        if isinstance(strategy, str):
            strategy = AllocationStrategyFactory().create_by_type(strategy)
        pricing = self._pricing or PricingStrategyFactory().create(config)

        bus = ObserverBus()
        for observer in self._observers:
            bus.add_observer(observer)

        service = ParkingService(
            registry,
            allocation_strategy=strategy,
            pricing_strategy=pricing,
            observer_bus=bus,
            config=config
        )
        lot = ParkingLot(self._name, registry, service, self._gates)
        logger.info(
            f"Built {lot.name}: {registry.total_count} spots on "
            f"{len({s.floor for s in registry.all_spots()})} floor(s), {strategy.get_strategy_name()}"
        )
        return lot

    # ========================================================================
    # PRESETS
    # ========================================================================

    @classmethod
    def small_lot(cls) -> 'ParkingLotBuilder':
        """One floor: 5 small, 10 medium, 2 large"""
        return cls().with_name("Small Parking Lot").with_floor(0, 5, 10, 2)

    @classmethod
    def medium_lot(cls) -> 'ParkingLotBuilder':
        """Two floors: 10 small, 20 medium, 5 large each"""
        return cls().with_name("Medium Parking Lot").with_floors(0, 2, 10, 20, 5)

    @classmethod
    def large_lot(cls) -> 'ParkingLotBuilder':
        """Five floors: 20 small, 50 medium, 10 large each"""
        return cls().with_name("Large Parking Lot").with_floors(0, 5, 20, 50, 10)

    @classmethod
    def from_config(cls, config: Union[ParkingConfig, Dict[str, Any]]) -> 'ParkingLotBuilder':
        """
        Create a builder from a config's layout section

        Layout keys: name, strategy, floors (each {floor, small, medium,
        large} or {start, count, small, medium, large}), spots (each {id,
        type, x, y, z}) and gates (each {id, x, y, z, type}).
        """
        if not isinstance(config, ParkingConfig):
            config = ParkingConfig.from_dict(config)
        layout = config.layout or {}
        if not isinstance(layout, dict):
            raise ValueError("Layout must be a mapping")

        builder = cls().with_config(config).with_name(layout.get("name", "Default Parking Lot"))
        builder.with_strategy(layout.get("strategy", config.default_strategy))

        for entry in layout.get("floors") or []:
            counts = (int(entry.get("small", 0)), int(entry.get("medium", 0)), int(entry.get("large", 0)))
            if "count" in entry:
                builder.with_floors(int(entry.get("start", 0)), int(entry["count"]), *counts)
            else:
                builder.with_floor(int(entry.get("floor", 0)), *counts)

        spot_factory = ParkingSpotFactory(config.floor_weight)
        for entry in layout.get("spots") or []:
            builder.with_spots(spot_factory.create(
                entry.get("type"), entry.get("id"),
                int(entry.get("x", 0)), int(entry.get("y", 0)), int(entry.get("z", 0))
            ))

        for entry in layout.get("gates") or []:
            try:
                gate_type = GateType[str(entry.get("type", "both")).strip().upper()]
            except KeyError:
                raise ValueError(f"Invalid gate type: {entry.get('type')}") from None
            builder.with_gates(Gate(
                entry.get("id"),
                Position(int(entry.get("x", 0)), int(entry.get("y", 0)), int(entry.get("z", 0))),
                gate_type
            ))

        return builder
