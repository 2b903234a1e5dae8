# File: src/smartpark/domain/registry.py
"""
Spot Registry for the SmartPark allocation engine

The registry is the single owner of every ParkingSpot record. Spots are kept
in an arena keyed by spot id; tickets and indexes refer to spots by id only.
The registry holds occupancy state but no placement policy.

Every change to the free set bumps a version counter and is pushed to
registered occupancy hooks, which lets ordered indexes stay in sync without
rebuilding.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Tuple, Iterator
import logging
import threading

from .models import (
    ParkingSpot, Vehicle, SizeClass,
    ParkingError, normalize_spot_id
)


class SpotRegistryError(ParkingError):
    """Exception for unknown spots, duplicate ids and invalid occupancy changes"""
    pass


class OccupancyHook(ABC):
    """Receives registry changes as they happen (called under the registry lock)"""

    @abstractmethod
    def on_spot_freed(self, spot: ParkingSpot, version: int) -> None:
        """A spot became free (newly added spots are reported here too)"""
        pass

    @abstractmethod
    def on_spot_occupied(self, spot: ParkingSpot, version: int) -> None:
        """A free spot became occupied"""
        pass


class FreeSpotSnapshot(tuple):
    """
    Immutable snapshot of the free spots at one registry version

    Behaves as a plain tuple; the version lets an index check that it is in
    sync with the snapshot it is asked to search.
    """

    def __new__(cls, spots, version: int, registry: Optional['SpotRegistry'] = None):
        snapshot = super().__new__(cls, spots)
        snapshot.version = version
        snapshot.registry = registry
        return snapshot


class SpotRegistry:
    """
    Authoritative set of parking spots and their occupancy

    Thread-safe: all reads and writes go through one re-entrant lock, so
    builders may add spots while a coordinator is allocating.
    """

    def __init__(self, spots: Optional[List[ParkingSpot]] = None):
        self._spots: Dict[str, ParkingSpot] = {}
        self._free: Dict[str, ParkingSpot] = {}   # insertion ordered
        self._free_by_class: Dict[SizeClass, int] = {c: 0 for c in SizeClass}
        self._hooks: List[OccupancyHook] = []
        self._version = 0
        self._lock = threading.RLock()
        self._logger = logging.getLogger(self.__class__.__name__)

        for spot in spots or []:
            self.add_spot(spot)

    # ========================================================================
    # INGESTION
    # ========================================================================

    def add_spot(self, spot: ParkingSpot) -> ParkingSpot:
        """
        Add a spot to the registry
        Raises: SpotRegistryError if a spot with the same id exists
        """
        with self._lock:
            if spot.spot_id in self._spots:
                raise SpotRegistryError(f"Spot {spot.spot_id} already registered")

            self._spots[spot.spot_id] = spot
            if spot.is_occupied:
                self._logger.debug(f"Added occupied spot {spot.spot_id}")
            else:
                self._add_free(spot)
                self._logger.debug(f"Added free spot {spot.spot_id}")
            return spot

    def mark_occupied(self, spot_id: str, vehicle: Vehicle) -> ParkingSpot:
        """
        Occupy a free spot with a vehicle
        Raises: SpotRegistryError if the spot is unknown, occupied or too small
        """
        with self._lock:
            spot = self._require(spot_id)
            if spot.is_occupied:
                raise SpotRegistryError(f"Spot {spot.spot_id} is already occupied")
            if not vehicle.can_park_in(spot):
                raise SpotRegistryError(
                    f"Vehicle {vehicle} does not fit in {spot.size_class.name} spot {spot.spot_id}"
                )

            spot._occupy(vehicle)
            del self._free[spot.spot_id]
            self._free_by_class[spot.size_class] -= 1
            self._version += 1
            for hook in self._hooks:
                hook.on_spot_occupied(spot, self._version)
            return spot

    def mark_free(self, spot_id: str) -> Optional[Vehicle]:
        """
        Vacate a spot
        Returns: the vehicle that was parked, None if the spot was already free
        """
        with self._lock:
            spot = self._require(spot_id)
            if not spot.is_occupied:
                return None

            vehicle = spot._vacate()
            self._add_free(spot)
            return vehicle

    def _add_free(self, spot: ParkingSpot) -> None:
        self._version += 1
        self._free[spot.spot_id] = spot
        self._free_by_class[spot.size_class] += 1
        for hook in self._hooks:
            hook.on_spot_freed(spot, self._version)

    def _require(self, spot_id: str) -> ParkingSpot:
        key = normalize_spot_id(spot_id)
        spot = self._spots.get(key)
        if spot is None:
            raise SpotRegistryError(f"Spot {key} not found")
        return spot

    # ========================================================================
    # HOOKS
    # ========================================================================

    def add_hook(self, hook: OccupancyHook) -> None:
        """Register an occupancy hook; it is seeded with every free spot"""
        with self._lock:
            if hook in self._hooks:
                return
            self._hooks.append(hook)
            for spot in self._free.values():
                hook.on_spot_freed(spot, self._version)

    def remove_hook(self, hook: OccupancyHook) -> None:
        with self._lock:
            try:
                self._hooks.remove(hook)
            except ValueError:
                pass

    # ========================================================================
    # QUERY METHODS (Read-only)
    # ========================================================================

    def free_spots(self) -> FreeSpotSnapshot:
        """Snapshot of currently free spots"""
        with self._lock:
            return FreeSpotSnapshot(self._free.values(), self._version, self)

    def occupied_spots(self) -> List[ParkingSpot]:
        with self._lock:
            return [s for s in self._spots.values() if s.is_occupied]

    def all_spots(self) -> List[ParkingSpot]:
        with self._lock:
            return list(self._spots.values())

    def get_spot(self, spot_id: str) -> Optional[ParkingSpot]:
        with self._lock:
            return self._spots.get(normalize_spot_id(spot_id))

    def free_count_by_class(self) -> Dict[SizeClass, int]:
        with self._lock:
            return dict(self._free_by_class)

    def snapshot_state(self) -> Tuple[int, int, Dict[str, Optional[str]]]:
        """(version, free_count, spot_id -> parked plate); used to verify no-op paths"""
        with self._lock:
            occupancy = {
                spot_id: (spot.parked_vehicle.plate if spot.parked_vehicle else None)
                for spot_id, spot in self._spots.items()
            }
            return self._version, len(self._free), occupancy

    @property
    def version(self) -> int:
        return self._version

    @property
    def free_count(self) -> int:
        return len(self._free)

    @property
    def total_count(self) -> int:
        return len(self._spots)

    @property
    def occupied_count(self) -> int:
        return len(self._spots) - len(self._free)

    def __len__(self) -> int:
        return len(self._spots)

    def __iter__(self) -> Iterator[ParkingSpot]:
        return iter(self.all_spots())

    def __contains__(self, spot_id: object) -> bool:
        if not isinstance(spot_id, str) or not spot_id.strip():
            return False
        return normalize_spot_id(spot_id) in self._spots
