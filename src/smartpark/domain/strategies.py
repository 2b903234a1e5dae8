# File: src/smartpark/domain/strategies.py
"""
Strategy Pattern Implementation for the SmartPark allocation engine

This module implements the Strategy Pattern for the two pluggable policies of
a parking lot:

1. Allocation Strategies - choose a free spot for a vehicle
   - LinearScanStrategy: two passes over the free spots, O(N)
   - OrderedIndexStrategy: one sorted index per size class, O(log N)
2. Pricing Strategies - compute the fee owed for a ticket
   - HourlyPricingStrategy: flat hourly rate per vehicle size class

Every allocation strategy follows the same contract:
- exact size class first, nearest spot by ranking key
- otherwise the smallest larger class, nearest spot by ranking key
- None when nothing fits; the input spots are never modified

Both allocation strategies rank with ParkingSpot.ranking_key, so for the same
input they always return the same spot.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Sequence
from datetime import datetime
from decimal import Decimal, ROUND_CEILING
import logging
import threading

from sortedcontainers import SortedList

from .models import ParkingSpot, Vehicle, SizeClass, Ticket, Money, RankingKey
from .registry import SpotRegistry, OccupancyHook, FreeSpotSnapshot


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class AllocationStrategy(ABC):
    """
    Abstract base class for spot allocation strategies
    Defines the interface for placement algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def select_spot(
        self,
        free_spots: Sequence[ParkingSpot],
        vehicle: Vehicle
    ) -> Optional[ParkingSpot]:
        """
        Select the best free spot for the given vehicle
        Returns: ParkingSpot if one fits, None otherwise
        """
        pass

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get human-readable strategy name"""
        pass

    @abstractmethod
    def get_time_complexity(self) -> str:
        """Get the declared cost of one selection"""
        pass

    def attach(self, registry: SpotRegistry) -> None:
        """Bind the strategy to the registry it will be queried against"""
        pass

    def detach(self) -> None:
        pass

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} ({self.get_time_complexity()})"


class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def calculate_fee(self, ticket: Ticket, as_of: Optional[datetime] = None) -> Money:
        """
        Calculate the fee owed for a ticket
        Uses the ticket's exit time, or as_of / now while the ticket is open
        """
        pass

    @abstractmethod
    def get_pricing_info(self) -> str:
        """Human-readable price list"""
        pass


# ============================================================================
# ALLOCATION STRATEGIES
# ============================================================================

class LinearScanStrategy(AllocationStrategy):
    """
    Strategy: scan every free spot
    - First pass: nearest spot of the exact size class
    - Second pass: nearest spot of the smallest larger class
    """

    def select_spot(
        self,
        free_spots: Sequence[ParkingSpot],
        vehicle: Vehicle
    ) -> Optional[ParkingSpot]:
        if not free_spots:
            return None

        exact_match = self._find_exact_match(free_spots, vehicle)
        if exact_match is not None:
            return exact_match

        return self._find_larger_match(free_spots, vehicle)

    def _find_exact_match(
        self,
        free_spots: Sequence[ParkingSpot],
        vehicle: Vehicle
    ) -> Optional[ParkingSpot]:
        best: Optional[ParkingSpot] = None
        for spot in free_spots:
            if spot.is_occupied or spot.size_class is not vehicle.size_class:
                continue
            if best is None or spot.ranking_key < best.ranking_key:
                best = spot
        return best

    def _find_larger_match(
        self,
        free_spots: Sequence[ParkingSpot],
        vehicle: Vehicle
    ) -> Optional[ParkingSpot]:
        best: Optional[ParkingSpot] = None
        best_key = None
        for spot in free_spots:
            if spot.is_occupied or spot.size_class.rank <= vehicle.size_class.rank:
                continue
            key = (spot.size_class.rank, spot.ranking_key)
            if best_key is None or key < best_key:
                best, best_key = spot, key
        return best

    def get_strategy_name(self) -> str:
        return "Linear Scan Allocation Strategy"

    def get_time_complexity(self) -> str:
        return "O(N) - linear search through all free spots"


class _SpotIndex:
    """One SortedList of ranking keys per size class, plus id -> spot lookup"""

    def __init__(self, spots: Sequence[ParkingSpot] = ()):
        self._trees: Dict[SizeClass, SortedList] = {c: SortedList() for c in SizeClass}
        self._spots: Dict[str, ParkingSpot] = {}
        for spot in spots:
            if not spot.is_occupied:
                self.add(spot)

    def add(self, spot: ParkingSpot) -> None:
        if spot.spot_id in self._spots:
            return
        self._spots[spot.spot_id] = spot
        self._trees[spot.size_class].add(spot.ranking_key)

    def discard(self, spot: ParkingSpot) -> None:
        if self._spots.pop(spot.spot_id, None) is not None:
            self._trees[spot.size_class].discard(spot.ranking_key)

    def first(self, size_class: SizeClass) -> Optional[ParkingSpot]:
        tree = self._trees[size_class]
        if not tree:
            return None
        key: RankingKey = tree[0]
        return self._spots[key[2]]

    def counts(self) -> Dict[SizeClass, int]:
        return {c: len(tree) for c, tree in self._trees.items()}

    def __len__(self) -> int:
        return len(self._spots)


class OrderedIndexStrategy(AllocationStrategy, OccupancyHook):
    """
    Strategy: ordered index per size class

    Once attached to a registry the index follows occupancy changes through
    registry hooks, so a query is a minimum lookup in at most three sorted
    lists. A snapshot from another registry version (or any plain sequence)
    is served from an index built for that query alone.
    """

    def __init__(self):
        super().__init__()
        self._live: Optional[_SpotIndex] = None
        self._registry: Optional[SpotRegistry] = None
        self._version: Optional[int] = None
        self._lock = threading.Lock()

    def attach(self, registry: SpotRegistry) -> None:
        if self._registry is registry:
            return
        self.detach()
        with self._lock:
            self._live = _SpotIndex()
            self._registry = registry
            self._version = registry.version
        registry.add_hook(self)
        self.logger.debug(f"Attached ordered index to registry ({registry.free_count} free spots)")

    def detach(self) -> None:
        registry = self._registry
        if registry is None:
            return
        registry.remove_hook(self)
        with self._lock:
            self._live = None
            self._registry = None
            self._version = None

    # OccupancyHook

    def on_spot_freed(self, spot: ParkingSpot, version: int) -> None:
        with self._lock:
            if self._live is not None:
                self._live.add(spot)
                self._version = version

    def on_spot_occupied(self, spot: ParkingSpot, version: int) -> None:
        with self._lock:
            if self._live is not None:
                self._live.discard(spot)
                self._version = version

    def select_spot(
        self,
        free_spots: Sequence[ParkingSpot],
        vehicle: Vehicle
    ) -> Optional[ParkingSpot]:
        with self._lock:
            if self._is_live_snapshot(free_spots):
                return self._find(self._live, vehicle)

        self.logger.debug(f"Building one-off index over {len(free_spots)} spots")
        return self._find(_SpotIndex(free_spots), vehicle)

    def _is_live_snapshot(self, free_spots: Sequence[ParkingSpot]) -> bool:
        return (
            self._live is not None
            and isinstance(free_spots, FreeSpotSnapshot)
            and free_spots.registry is self._registry
            and free_spots.version == self._version
        )

    @staticmethod
    def _find(index: _SpotIndex, vehicle: Vehicle) -> Optional[ParkingSpot]:
        exact_match = index.first(vehicle.size_class)
        if exact_match is not None:
            return exact_match

        for size_class in vehicle.size_class.larger_classes():
            spot = index.first(size_class)
            if spot is not None:
                return spot
        return None

    def get_availability_stats(self) -> str:
        """Free spots per class as seen by the live index"""
        with self._lock:
            if self._live is None:
                return "Index not attached"
            counts = self._live.counts()
        parts = [f"{c.label}: {counts[c]}" for c in SizeClass.ordered()]
        return "Available spots - " + ", ".join(parts)

    def get_strategy_name(self) -> str:
        return "Ordered Index Allocation Strategy"

    def get_time_complexity(self) -> str:
        return "O(log N) - sorted index per size class, minimum lookup per query"


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

DEFAULT_HOURLY_RATES: Dict[SizeClass, Decimal] = {
    SizeClass.SMALL: Decimal('5.00'),
    SizeClass.MEDIUM: Decimal('10.00'),
    SizeClass.LARGE: Decimal('20.00'),
}


class HourlyPricingStrategy(PricingStrategy):
    """
    Flat hourly pricing by vehicle size class
    - Duration counted in whole minutes
    - Rounded up to whole hours, with a minimum charge
    """

    def __init__(
        self,
        hourly_rates: Optional[Dict[SizeClass, Decimal]] = None,
        currency: str = "USD",
        minimum_charge_hours: int = 1
    ):
        super().__init__()
        rates = dict(DEFAULT_HOURLY_RATES)
        if hourly_rates:
            rates.update({SizeClass.parse(k): Decimal(str(v)) for k, v in hourly_rates.items()})
        for size_class, rate in rates.items():
            if rate < Decimal('0'):
                raise ValueError(f"Hourly rate for {size_class.name} cannot be negative")
        if minimum_charge_hours < 0:
            raise ValueError("Minimum charge hours cannot be negative")

        self.hourly_rates = rates
        self.currency = currency
        self.minimum_charge_hours = minimum_charge_hours

    def billable_hours(self, ticket: Ticket, as_of: Optional[datetime] = None) -> int:
        minutes = max(int(ticket.duration(as_of).total_seconds() // 60), 0)
        hours = Decimal(minutes) / Decimal(60)
        hours = max(hours, Decimal(self.minimum_charge_hours))
        return int(hours.to_integral_value(rounding=ROUND_CEILING))

    def get_hourly_rate(self, size_class: SizeClass) -> Money:
        return Money(self.hourly_rates[size_class], self.currency)

    def calculate_fee(self, ticket: Ticket, as_of: Optional[datetime] = None) -> Money:
        hours = self.billable_hours(ticket, as_of)
        rate = self.hourly_rates[ticket.vehicle.size_class]
        fee = Money(rate * hours, self.currency)
        self.logger.debug(f"Fee for {ticket.ticket_id}: {hours}h x {rate} = {fee.format()}")
        return fee

    def get_pricing_info(self) -> str:
        rates = ", ".join(
            f"{c.label}: {self.get_hourly_rate(c).format()}" for c in SizeClass.ordered()
        )
        return (
            f"Pricing (per hour): {rates}\n"
            f"Minimum charge: {self.minimum_charge_hours} hour(s)"
        )
