# File: src/smartpark/application/parking_service.py
"""
Parking Application Service

This module implements the allocation and ticketing coordinator. It owns the
license plate -> ticket map and serializes every park/exit against the spot
registry and the allocation strategy.

Responsibilities:
1. At most one active ticket per license plate
2. Unique, monotonically increasing ticket ids (TKT-000001, TKT-000002, ...)
3. Edge-triggered lot full / lot available notifications
4. Fee calculation and payment settlement through the pricing strategy

Concurrency:
- park_vehicle, exit_vehicle and process_payment run under one lock per
  service instance
- Read-only queries skip the lock and may observe slightly stale state
- Events raised inside the lock are queued and delivered after it is
  released, in emission order, so observers may call back into the service
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Any, Callable, Deque, Union
import itertools
import logging
import threading

from ..config import ParkingConfig
from ..domain.models import (
    Vehicle, Ticket, Money, LicensePlate, SizeClass,
    ParkingError, InvalidIdentifierError
)
from ..domain.registry import SpotRegistry
from ..domain.strategies import (
    AllocationStrategy, PricingStrategy,
    LinearScanStrategy, HourlyPricingStrategy
)
from ..infrastructure.messaging import (
    ObserverBus, ParkingEvent, ParkingLotObserver, ListenerFailure
)


# ============================================================================
# DATA TRANSFER OBJECTS (DTOs)
# ============================================================================

@dataclass
class ParkingStatsDTO:
    """DTO for parking lot statistics"""
    total_spots: int
    occupied_spots: int
    available_spots: int
    active_tickets: int
    available_by_class: Dict[str, int]
    is_full: bool
    strategy_name: str
    time_complexity: str
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def occupancy_rate(self) -> float:
        """Occupancy as a percentage (0-100)"""
        if self.total_spots == 0:
            return 0.0
        return self.occupied_spots / self.total_spots * 100.0

    def __str__(self) -> str:
        return (
            f"Parking Stats - Total: {self.total_spots}, Occupied: {self.occupied_spots}, "
            f"Available: {self.available_spots}\n"
            f"Strategy: {self.strategy_name} ({self.time_complexity})"
        )


@dataclass
class PaymentResultDTO:
    """DTO for payment results"""
    success: bool
    ticket_id: str
    fee: Money
    amount_paid: Decimal
    change: Decimal = Decimal('0')
    shortfall: Decimal = Decimal('0')
    message: Optional[str] = None


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VehicleAlreadyParkedError(ParkingError):
    """Exception when a plate with an active ticket asks for another spot"""
    pass


class NoActiveTicketError(ParkingError):
    """Exception when exiting a plate that holds no active ticket"""
    pass


class PaymentError(ParkingError):
    """Exception for invalid or repeated payments"""
    pass


# ============================================================================
# MAIN PARKING SERVICE
# ============================================================================

class ParkingService:
    """
    Allocation and ticketing coordinator

    The allocation strategy is chosen at construction and fixed for the
    lifetime of the service.
    """

    def __init__(
        self,
        registry: SpotRegistry,
        allocation_strategy: Optional[AllocationStrategy] = None,
        pricing_strategy: Optional[PricingStrategy] = None,
        observer_bus: Optional[ObserverBus] = None,
        config: Optional[ParkingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config or ParkingConfig()
        self.registry = registry
        self.allocation_strategy = allocation_strategy or LinearScanStrategy()
        self.pricing_strategy = pricing_strategy or HourlyPricingStrategy(
            hourly_rates=self.config.hourly_rates,
            currency=self.config.currency,
            minimum_charge_hours=self.config.minimum_charge_hours
        )
        self.observer_bus = observer_bus or ObserverBus()
        self._clock = clock or datetime.now

        self._active_tickets: Dict[str, Ticket] = {}
        self._ticket_counter = itertools.count(1)
        self._was_full = False
        self._lock = threading.Lock()

        # Event queue drained outside the lock by one thread at a time
        self._pending_events: Deque[ParkingEvent] = deque()
        self._dispatch_lock = threading.Lock()
        self._dispatching = False
        self._listener_failures: Deque[ListenerFailure] = deque(maxlen=100)

        self.allocation_strategy.attach(registry)
        self.logger.info(f"ParkingService initialized with {self.allocation_strategy.get_strategy_name()}")

    # ========================================================================
    # OBSERVERS
    # ========================================================================

    def add_observer(self, observer: ParkingLotObserver) -> None:
        self.observer_bus.add_observer(observer)

    def remove_observer(self, observer: ParkingLotObserver) -> None:
        self.observer_bus.remove_observer(observer)

    # ========================================================================
    # PARK / EXIT
    # ========================================================================

    def park_vehicle(self, vehicle: Vehicle) -> Optional[Ticket]:
        """
        Park a vehicle in the lot

        Returns: the new Ticket, or None when no spot fits the vehicle
        Raises: VehicleAlreadyParkedError if the plate already holds a ticket
        """
        if vehicle is None:
            raise ValueError("Vehicle cannot be None")

        with self._lock:
            ticket = self._park(vehicle)
        self._drain_events()
        return ticket

    def _park(self, vehicle: Vehicle) -> Optional[Ticket]:
        plate = vehicle.plate
        if plate in self._active_tickets:
            self.logger.warning(f"Vehicle {plate} is already parked")
            raise VehicleAlreadyParkedError(f"Vehicle {plate} is already parked")

        # Spots may have been added or freed outside the service since the lot filled
        self._check_available()
        free_spots = self.registry.free_spots()
        spot = self.allocation_strategy.select_spot(free_spots, vehicle)

        if spot is None:
            self.logger.info(f"No available parking spot for vehicle: {vehicle}")
            self._check_full()
            return None

        self.registry.mark_occupied(spot.spot_id, vehicle)
        ticket = Ticket(
            ticket_id=self._next_ticket_id(),
            vehicle=vehicle,
            spot_id=spot.spot_id,
            spot_class=spot.size_class,
            entry_time=self._clock()
        )
        self._active_tickets[plate] = ticket
        self.logger.info(f"Vehicle {plate} parked in spot {spot.spot_id} (Ticket: {ticket.ticket_id})")

        self._emit(ParkingEvent.parked(vehicle, spot))
        self._check_full()
        return ticket

    def exit_vehicle(self, license_plate: Union[str, LicensePlate]) -> Ticket:
        """
        Release the spot held by a plate

        The returned ticket is closed out of the active map; its exit time is
        stamped later, when the ticket is paid.
        Raises: InvalidIdentifierError for an empty or malformed plate,
                NoActiveTicketError if the plate holds no ticket
        """
        plate = self._normalize(license_plate)
        if plate is None:
            raise InvalidIdentifierError("License plate cannot be empty")

        with self._lock:
            ticket = self._exit(plate)
        self._drain_events()
        return ticket

    def _exit(self, plate: str) -> Ticket:
        ticket = self._active_tickets.get(plate)
        if ticket is None:
            self.logger.warning(f"No active parking ticket found for vehicle: {plate}")
            raise NoActiveTicketError(f"No active parking ticket found for vehicle: {plate}")

        del self._active_tickets[plate]
        spot = self.registry.get_spot(ticket.spot_id)
        if spot is not None and spot.parked_vehicle != ticket.vehicle:
            self.logger.warning(
                f"Spot {ticket.spot_id} no longer holds {plate} (occupant: {spot.parked_vehicle}); leaving it untouched"
            )
        else:
            self.registry.mark_free(ticket.spot_id)
        self.logger.info(f"Vehicle {plate} left spot {ticket.spot_id} (Ticket: {ticket.ticket_id})")

        self._emit(ParkingEvent.exited(ticket.vehicle, spot))
        self._check_available()
        return ticket

    # ========================================================================
    # BILLING
    # ========================================================================

    def calculate_fee(self, ticket: Ticket, as_of: Optional[datetime] = None) -> Money:
        """Fee owed for a ticket up to its exit time (or as_of / now)"""
        if ticket is None:
            raise ValueError("Ticket cannot be None")
        return self.pricing_strategy.calculate_fee(ticket, as_of or self._clock())

    def process_payment(self, ticket: Ticket, amount_paid: Any) -> PaymentResultDTO:
        """
        Settle a ticket

        The fee is computed at payment time and recorded on the ticket. A
        sufficient payment marks the ticket paid and stamps its exit time.
        Raises: PaymentError for invalid amounts or an already paid ticket
        """
        if ticket is None:
            raise ValueError("Ticket cannot be None")
        try:
            paid = Decimal(str(amount_paid))
        except InvalidOperation:
            raise PaymentError(f"Invalid payment amount: {amount_paid!r}") from None
        if not paid.is_finite() or paid < 0:
            raise PaymentError(f"Invalid payment amount: {amount_paid!r}")

        with self._lock:
            if ticket.is_paid:
                raise PaymentError(f"Ticket {ticket.ticket_id} is already paid")

            now = self._clock()
            fee = self.pricing_strategy.calculate_fee(ticket, now)
            ticket.amount = fee

            if paid < fee.amount:
                shortfall = fee.amount - paid
                self.logger.warning(
                    f"Insufficient payment for {ticket.ticket_id}. "
                    f"Required: {fee.format()}, Paid: {paid:.2f}"
                )
                return PaymentResultDTO(
                    success=False,
                    ticket_id=ticket.ticket_id,
                    fee=fee,
                    amount_paid=paid,
                    shortfall=shortfall,
                    message=f"Insufficient payment. Required: {fee.format()}, Paid: ${paid:.2f}"
                )

            ticket.is_paid = True
            ticket.exit_time = now
            change = paid - fee.amount

        self.logger.info(f"Payment for {ticket.ticket_id} accepted: {fee.format()} (change {change:.2f})")
        message = "Payment successful!"
        if change > 0:
            message = f"Payment successful! Change: ${change:.2f}"
        return PaymentResultDTO(
            success=True,
            ticket_id=ticket.ticket_id,
            fee=fee,
            amount_paid=paid,
            change=change,
            message=message
        )

    # ========================================================================
    # QUERY METHODS (Read-only)
    # ========================================================================

    def get_active_ticket(self, license_plate: Union[str, LicensePlate, None]) -> Optional[Ticket]:
        try:
            plate = self._normalize(license_plate)
        except InvalidIdentifierError:
            return None
        if plate is None:
            return None
        return self._active_tickets.get(plate)

    def get_all_active_tickets(self) -> Dict[str, Ticket]:
        return dict(self._active_tickets)

    def get_parking_stats(self) -> ParkingStatsDTO:
        total = self.registry.total_count
        available = self.registry.free_count
        by_class = self.registry.free_count_by_class()
        return ParkingStatsDTO(
            total_spots=total,
            occupied_spots=total - available,
            available_spots=available,
            active_tickets=len(self._active_tickets),
            available_by_class={c.name: by_class[c] for c in SizeClass.ordered()},
            is_full=available == 0,
            strategy_name=self.allocation_strategy.get_strategy_name(),
            time_complexity=self.allocation_strategy.get_time_complexity()
        )

    def get_listener_failures(self) -> List[ListenerFailure]:
        """Most recent observer failures, oldest first"""
        return list(self._listener_failures)

    @property
    def is_full(self) -> bool:
        return self.registry.free_count == 0

    # ========================================================================
    # INTERNAL HELPER METHODS
    # ========================================================================

    def _next_ticket_id(self) -> str:
        number = next(self._ticket_counter)
        return f"{self.config.ticket_prefix}-{number:0{self.config.ticket_number_width}d}"

    def _check_full(self) -> None:
        if self.registry.free_count == 0 and not self._was_full:
            self._was_full = True
            self.logger.info("Parking lot is now full")
            self._emit(ParkingEvent.lot_full())

    def _check_available(self) -> None:
        if self._was_full and self.registry.free_count > 0:
            self._was_full = False
            self.logger.info("Parking lot has free spots again")
            self._emit(ParkingEvent.lot_available())

    def _emit(self, event: ParkingEvent) -> None:
        # Called under self._lock, which fixes the delivery order
        self._pending_events.append(event)

    def _drain_events(self) -> None:
        with self._dispatch_lock:
            if self._dispatching:
                # Another thread (or an outer call on this one) delivers for us
                return
            self._dispatching = True

        try:
            while True:
                with self._dispatch_lock:
                    if not self._pending_events:
                        self._dispatching = False
                        return
                    event = self._pending_events.popleft()
                failures = self.observer_bus.notify(event)
                self._listener_failures.extend(failures)
        except BaseException:
            with self._dispatch_lock:
                self._dispatching = False
            raise

    @staticmethod
    def _normalize(license_plate: Union[str, LicensePlate, None]) -> Optional[str]:
        """Canonical plate string; None for a missing plate, InvalidIdentifierError for a malformed one"""
        if isinstance(license_plate, LicensePlate):
            return license_plate.value
        if license_plate is None or (isinstance(license_plate, str) and not license_plate.strip()):
            return None
        return LicensePlate(license_plate).value
