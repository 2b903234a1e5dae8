# File: src/smartpark/presentation/cli.py
"""
Console front end for the SmartPark allocation engine

Commands:
1. demo        - build a lot, park sample vehicles, show fallback into
                 larger spots, pay and exit
2. compare     - run both allocation strategies on random lots and check
                 that they pick the same spots
3. interactive - text menu (park, exit, status, stats, pricing, pay)

ParkingConsole follows the presenter role: it turns user input into
ParkingLot calls and formats the results; all state lives in the lot.
"""

from datetime import timedelta
from typing import Callable, Dict, List, Optional, TextIO
import logging
import random
import sys
import time

from ..config import ParkingConfig
from ..domain.aggregates import ParkingLot, Gate, GateType
from ..domain.models import ParkingError, Position, SizeClass, Ticket
from ..domain.registry import SpotRegistry
from ..domain.strategies import LinearScanStrategy, OrderedIndexStrategy
from ..infrastructure.factories import (
    ParkingLotBuilder, ParkingSpotFactory, VehicleFactory
)
from ..infrastructure.messaging import LoggingObserver


class ParkingConsole:
    """Presenter for the text interface"""

    VEHICLE_CHOICES = {"1": SizeClass.SMALL, "2": SizeClass.MEDIUM, "3": SizeClass.LARGE}

    def __init__(
        self,
        lot: ParkingLot,
        input_func: Callable[[str], str] = input,
        out: Optional[TextIO] = None
    ):
        self.lot = lot
        self._input = input_func
        self._out = out or sys.stdout
        self._vehicle_factory = VehicleFactory()
        # Tickets issued through this console, kept after exit for payment
        self._tickets: Dict[str, Ticket] = {}

    def say(self, text: str = "") -> None:
        print(text, file=self._out)

    # ========================================================================
    # INTERACTIVE MENU
    # ========================================================================

    def run(self) -> int:
        self.say(f"Parking Lot initialized with {self.lot.service.allocation_strategy.get_strategy_name()}")
        self.say(str(self.lot))

        actions = {
            "1": self.handle_park_vehicle,
            "2": self.handle_exit_vehicle,
            "3": self.handle_vehicle_status,
            "4": lambda: self.say(str(self.lot.get_parking_stats())),
            "5": lambda: self.say(self.lot.get_pricing_info()),
            "6": self.handle_payment,
        }

        while True:
            self.say()
            self.say("=== Parking Lot Management Menu ===")
            self.say("1. Park Vehicle")
            self.say("2. Exit Vehicle")
            self.say("3. Check Vehicle Status")
            self.say("4. View Parking Statistics")
            self.say("5. View Pricing Information")
            self.say("6. Process Payment")
            self.say("7. Quit")
            try:
                choice = self._input("Enter your choice (1-7): ").strip()
            except EOFError:
                return 0

            if choice in ("7", "q", "quit"):
                self.say("Thank you for using SmartPark!")
                return 0
            action = actions.get(choice)
            if action is None:
                self.say("Invalid choice. Please try again.")
                continue
            try:
                action()
            except ParkingError as e:
                self.say(f"Error: {e}")
            except ValueError as e:
                self.say(f"Invalid input: {e}")

    def _ask_plate(self) -> Optional[str]:
        plate = self._input("Enter license plate: ").strip()
        if not plate:
            self.say("License plate cannot be empty.")
            return None
        return plate

    def handle_park_vehicle(self) -> Optional[Ticket]:
        self.say("=== Park Vehicle ===")
        size_class = self.VEHICLE_CHOICES.get(
            self._input("Vehicle types: 1=SMALL, 2=MEDIUM, 3=LARGE. Enter type (1-3): ").strip()
        )
        if size_class is None:
            self.say("Invalid vehicle type.")
            return None
        plate = self._ask_plate()
        if plate is None:
            return None

        vehicle = self._vehicle_factory.create(size_class, plate)
        ticket = self.lot.park_vehicle(vehicle)
        if ticket is None:
            self.say("Parking failed. No spot fits this vehicle.")
            return None

        self._tickets[ticket.license_plate] = ticket
        self.say("Parking successful!")
        self.say(f"Ticket: {ticket}")
        self.say(f"Spot: {self.lot.registry.get_spot(ticket.spot_id)}")
        return ticket

    def handle_exit_vehicle(self) -> Optional[Ticket]:
        self.say("=== Exit Vehicle ===")
        plate = self._ask_plate()
        if plate is None:
            return None

        ticket = self.lot.exit_vehicle(plate)
        self._tickets[ticket.license_plate] = ticket
        self.say("Vehicle exit successful!")
        self.say(f"Ticket: {ticket}")
        self.say(f"Total fee: {self.lot.calculate_fee(ticket).format()}")
        if not ticket.is_paid:
            self.say("WARNING: Payment not processed yet!")
        return ticket

    def handle_vehicle_status(self) -> None:
        self.say("=== Check Vehicle Status ===")
        plate = self._ask_plate()
        if plate is None:
            return

        ticket = self.lot.get_active_ticket(plate)
        if ticket is None:
            self.say("Vehicle not found in parking lot.")
            return
        self.say(f"Ticket: {ticket}")
        self.say(f"Spot: {self.lot.registry.get_spot(ticket.spot_id)}")
        self.say(f"Duration: {ticket.duration_hours()} hour(s)")
        self.say(f"Current fee: {self.lot.calculate_fee(ticket).format()}")
        self.say(f"Payment status: {'PAID' if ticket.is_paid else 'PENDING'}")

    def handle_payment(self) -> None:
        self.say("=== Process Payment ===")
        plate = self._ask_plate()
        if plate is None:
            return

        ticket = self.lot.get_active_ticket(plate) or self._tickets.get(plate.strip().upper())
        if ticket is None:
            self.say("No ticket found for this vehicle.")
            return
        if ticket.is_paid:
            self.say("Ticket already paid.")
            return

        self.say(f"Amount due: {self.lot.calculate_fee(ticket).format()}")
        amount = self._input("Enter payment amount: ").strip()
        result = self.lot.process_payment(ticket, amount)
        self.say(result.message or ("Payment successful!" if result.success else "Payment failed."))


# ============================================================================
# COMMANDS
# ============================================================================

def build_lot(strategy: str = "linear", config: Optional[ParkingConfig] = None) -> ParkingLot:
    """Demo lot: two floors, three gates, logging observer attached"""
    config = config or ParkingConfig(default_strategy=strategy)
    if config.layout:
        builder = ParkingLotBuilder.from_config(config).with_strategy(strategy)
    else:
        builder = (
            ParkingLotBuilder()
            .with_config(config)
            .with_name("Smart Parking Center")
            .with_strategy(strategy)
            .with_floor(0, 5, 10, 3)
            .with_floor(1, 8, 15, 5)
            .with_gates(
                Gate("ENTRY-1", Position(0, 0, 0), GateType.ENTRY),
                Gate("EXIT-1", Position(0, 100, 0), GateType.EXIT),
                Gate("BOTH-1", Position(50, 0, 1), GateType.BOTH)
            )
        )
    return builder.with_observers(LoggingObserver()).build()


def run_demo(strategy: str = "linear", config: Optional[ParkingConfig] = None, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout

    def say(text: str = "") -> None:
        print(text, file=out)

    lot = build_lot(strategy, config)
    vehicles = VehicleFactory()
    allocation = lot.service.allocation_strategy

    say(f"Strategy: {allocation.get_strategy_name()}")
    say(f"Time Complexity: {allocation.get_time_complexity()}")
    say(f"Parking Lot: {lot}")
    say(lot.get_pricing_info())
    say()

    say("=== Demo Operations ===")
    bike_ticket = lot.park_vehicle(vehicles.create(SizeClass.SMALL, "B001"))
    car_ticket = lot.park_vehicle(vehicles.create(SizeClass.MEDIUM, "C001"))
    lot.park_vehicle(vehicles.create(SizeClass.LARGE, "T001"))
    say(str(lot.get_parking_stats()))

    say()
    say("--- Smaller vehicles in larger spots ---")
    small_free = lot.registry.free_count_by_class()[SizeClass.SMALL]
    for i in range(small_free):
        lot.park_vehicle(vehicles.create(SizeClass.SMALL, f"B{i + 2:03d}"))
    overflow = lot.park_vehicle(vehicles.create(SizeClass.SMALL, "B999"))
    if overflow is not None:
        say(f"Small spots are full; B999 parked in {overflow.spot_class.name} spot {overflow.spot_id}")
        gate = lot.nearest_gate(lot.registry.get_spot(overflow.spot_id))
        if gate is not None:
            say(f"Nearest entry gate: {gate}")
    say(str(lot.get_parking_stats()))

    if bike_ticket is not None:
        say()
        say("--- Payment Demo ---")
        as_of = bike_ticket.entry_time + timedelta(minutes=90)
        fee = lot.calculate_fee(bike_ticket, as_of)
        say(f"Fee after 90 minutes for {bike_ticket.ticket_id}: {fee.format()}")

    if car_ticket is not None:
        say()
        say("--- Vehicle Exit Demo ---")
        ticket = lot.exit_vehicle(car_ticket.license_plate)
        fee = lot.calculate_fee(ticket)
        result = lot.process_payment(ticket, fee.amount)
        say(f"Exit successful: {ticket}")
        say(f"Payment: {result.message}")
        say(f"Updated status: {lot}")
    return 0


def random_spots(rng: random.Random, count: int, floor_weight: int) -> List:
    factory = ParkingSpotFactory(floor_weight)
    classes = SizeClass.ordered()
    return [
        factory.create(
            rng.choice(classes),
            f"R-{i:04d}",
            rng.randint(0, 60),
            rng.randint(0, 60),
            rng.randint(0, 3)
        )
        for i in range(count)
    ]


def run_compare(trials: int = 200, seed: Optional[int] = None, spots: int = 60, out: Optional[TextIO] = None) -> int:
    """
    Park the same random vehicles with both strategies on identical lots
    Returns: 0 when every selection matched, 1 otherwise
    """
    out = out or sys.stdout
    logger = logging.getLogger("compare")
    rng = random.Random(seed)
    config = ParkingConfig()
    vehicles = VehicleFactory()
    mismatches = 0
    timings = {"linear": 0.0, "ordered": 0.0}

    for trial in range(trials):
        layout_seed = rng.randrange(2 ** 32)
        linear_registry = SpotRegistry(random_spots(random.Random(layout_seed), spots, config.floor_weight))
        ordered_registry = SpotRegistry(random_spots(random.Random(layout_seed), spots, config.floor_weight))
        linear = LinearScanStrategy()
        ordered = OrderedIndexStrategy()
        ordered.attach(ordered_registry)

        for step in range(spots + 5):
            vehicle = vehicles.create(rng.choice(SizeClass.ordered()), f"V{step:04d}")

            started = time.perf_counter()
            expected = linear.select_spot(linear_registry.free_spots(), vehicle)
            timings["linear"] += time.perf_counter() - started

            started = time.perf_counter()
            actual = ordered.select_spot(ordered_registry.free_spots(), vehicle)
            timings["ordered"] += time.perf_counter() - started

            expected_id = expected.spot_id if expected else None
            actual_id = actual.spot_id if actual else None
            if expected_id != actual_id:
                mismatches += 1
                logger.error(f"Trial {trial} step {step}: linear={expected_id} ordered={actual_id} for {vehicle}")
                break
            if expected is None:
                continue
            linear_registry.mark_occupied(expected_id, vehicle)
            ordered_registry.mark_occupied(actual_id, vehicle)
            # Free a random spot now and then so the index sees both directions
            if rng.random() < 0.3:
                occupied = linear_registry.occupied_spots()
                victim = rng.choice(occupied).spot_id
                linear_registry.mark_free(victim)
                ordered_registry.mark_free(victim)
        ordered.detach()

    print(f"Trials: {trials}, spots per lot: {spots}", file=out)
    print(f"Linear scan total: {timings['linear'] * 1000:.2f} ms", file=out)
    print(f"Ordered index total: {timings['ordered'] * 1000:.2f} ms", file=out)
    if mismatches:
        print(f"DISAGREEMENT in {mismatches} trial(s)", file=out)
        return 1
    print("Strategies agree on every selection", file=out)
    return 0


def run_interactive(strategy: str = "linear", config: Optional[ParkingConfig] = None) -> int:
    lot = build_lot(strategy, config)
    return ParkingConsole(lot).run()
