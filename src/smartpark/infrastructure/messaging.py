# File: src/smartpark/infrastructure/messaging.py
"""
Messaging Infrastructure for the SmartPark allocation engine

This module implements the observer side of the parking lot:
1. Event types and the ParkingEvent message
2. ParkingLotObserver - the listener capability external collaborators implement
3. ObserverBus - in-process, ordered, synchronous fan-out
4. LoggingObserver - writes every event to the application log

Delivery rules:
- Observers receive events in registration order
- Adding an observer twice or removing an unknown one is a no-op
- An observer that raises is logged and reported back to the caller of
  notify(); the remaining observers still receive the event
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Any, Dict
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID, uuid4
import logging
import threading

from ..domain.models import Vehicle, ParkingSpot


# ============================================================================
# MESSAGE TYPES
# ============================================================================

class EventType(str, Enum):
    """Parking lot event types"""
    VEHICLE_PARKED = "vehicle_parked"
    VEHICLE_EXITED = "vehicle_exited"
    LOT_FULL = "lot_full"
    LOT_AVAILABLE = "lot_available"


@dataclass
class ParkingEvent:
    """Event emitted by the parking service"""
    event_type: EventType
    vehicle: Optional[Vehicle] = None
    spot: Optional[ParkingSpot] = None
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type.value,
            "license_plate": self.vehicle.plate if self.vehicle else None,
            "spot_id": self.spot.spot_id if self.spot else None,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def parked(cls, vehicle: Vehicle, spot: ParkingSpot) -> 'ParkingEvent':
        return cls(EventType.VEHICLE_PARKED, vehicle, spot)

    @classmethod
    def exited(cls, vehicle: Vehicle, spot: ParkingSpot) -> 'ParkingEvent':
        return cls(EventType.VEHICLE_EXITED, vehicle, spot)

    @classmethod
    def lot_full(cls) -> 'ParkingEvent':
        return cls(EventType.LOT_FULL)

    @classmethod
    def lot_available(cls) -> 'ParkingEvent':
        return cls(EventType.LOT_AVAILABLE)


@dataclass
class ListenerFailure:
    """Diagnostic for an observer that raised while handling an event"""
    observer: Any
    event: ParkingEvent
    error: Exception

    def __str__(self) -> str:
        return (
            f"{self.observer.__class__.__name__} failed on "
            f"{self.event.event_type.value}: {self.error}"
        )


# ============================================================================
# OBSERVERS
# ============================================================================

class ParkingLotObserver(ABC):
    """Abstract base class for parking lot observers"""

    @abstractmethod
    def on_vehicle_parked(self, vehicle: Vehicle, spot: ParkingSpot) -> None:
        pass

    @abstractmethod
    def on_vehicle_exit(self, vehicle: Vehicle, spot: ParkingSpot) -> None:
        pass

    @abstractmethod
    def on_lot_full(self) -> None:
        pass

    @abstractmethod
    def on_lot_available(self) -> None:
        pass


class LoggingObserver(ParkingLotObserver):
    """Observer that records every parking event in the log"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def on_vehicle_parked(self, vehicle: Vehicle, spot: ParkingSpot) -> None:
        self._logger.info(
            f"[PARK] Vehicle {vehicle.plate} ({vehicle.size_class.name}) parked at spot "
            f"{spot.spot_id} {spot.position}"
        )

    def on_vehicle_exit(self, vehicle: Vehicle, spot: ParkingSpot) -> None:
        self._logger.info(
            f"[EXIT] Vehicle {vehicle.plate} ({vehicle.size_class.name}) left spot {spot.spot_id}"
        )

    def on_lot_full(self) -> None:
        self._logger.warning("[FULL] Parking lot is full")

    def on_lot_available(self) -> None:
        self._logger.info("[AVAILABLE] Parking lot has free spots again")


# ============================================================================
# OBSERVER BUS (In-memory)
# ============================================================================

class ObserverBus:
    """
    In-memory fan-out of parking events to observers

    notify() returns only after every observer has handled the event.
    """

    def __init__(self):
        self._observers: List[ParkingLotObserver] = []
        self._lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def add_observer(self, observer: ParkingLotObserver) -> None:
        """Subscribe an observer; duplicates (by identity) are ignored"""
        if observer is None:
            return
        with self._lock:
            if any(o is observer for o in self._observers):
                return
            self._observers.append(observer)
        self._logger.debug(f"Subscribed {observer.__class__.__name__}")

    def remove_observer(self, observer: ParkingLotObserver) -> None:
        """Unsubscribe an observer; unknown observers are ignored"""
        with self._lock:
            for index, existing in enumerate(self._observers):
                if existing is observer:
                    del self._observers[index]
                    self._logger.debug(f"Unsubscribed {observer.__class__.__name__}")
                    return

    def notify(self, event: ParkingEvent) -> List[ListenerFailure]:
        """
        Deliver an event to all observers in order
        Returns: one ListenerFailure per observer that raised
        """
        with self._lock:
            observers = list(self._observers)

        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.event_id})")
        failures: List[ListenerFailure] = []
        for observer in observers:
            try:
                self._dispatch(observer, event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with "
                    f"{observer.__class__.__name__}: {e}",
                    exc_info=True
                )
                failures.append(ListenerFailure(observer, event, e))
        return failures

    @staticmethod
    def _dispatch(observer: ParkingLotObserver, event: ParkingEvent) -> None:
        if event.event_type is EventType.VEHICLE_PARKED:
            observer.on_vehicle_parked(event.vehicle, event.spot)
        elif event.event_type is EventType.VEHICLE_EXITED:
            observer.on_vehicle_exit(event.vehicle, event.spot)
        elif event.event_type is EventType.LOT_FULL:
            observer.on_lot_full()
        elif event.event_type is EventType.LOT_AVAILABLE:
            observer.on_lot_available()
        else:
            raise ValueError(f"Unknown event type: {event.event_type}")

    @property
    def observers(self) -> List[ParkingLotObserver]:
        with self._lock:
            return list(self._observers)

    def clear_observers(self) -> None:
        """Clear all observers (for testing)"""
        with self._lock:
            self._observers.clear()

    def __len__(self) -> int:
        return len(self._observers)
