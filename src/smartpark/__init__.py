"""
SmartPark - parking spot allocation and ticketing engine

Layers:
- domain: size classes, spots, vehicles, tickets, registry, strategies
- application: ParkingService coordinator
- infrastructure: observer bus, factories and the lot builder
- presentation: console front end
"""

__version__ = "1.0.0"

from .config import ParkingConfig, load_config
from .domain.models import (
    SizeClass, Position, LicensePlate, Money, Vehicle, ParkingSpot, Ticket,
    ParkingError, InvalidIdentifierError
)
from .domain.registry import SpotRegistry, SpotRegistryError
from .domain.strategies import (
    AllocationStrategy, LinearScanStrategy, OrderedIndexStrategy,
    PricingStrategy, HourlyPricingStrategy
)
from .domain.aggregates import ParkingLot, Gate, GateType
from .application.parking_service import (
    ParkingService, VehicleAlreadyParkedError, NoActiveTicketError, PaymentError
)
from .infrastructure.messaging import (
    ObserverBus, ParkingLotObserver, LoggingObserver, ParkingEvent, EventType
)
from .infrastructure.factories import (
    VehicleFactory, ParkingSpotFactory, AllocationStrategyFactory,
    PricingStrategyFactory, ParkingLotBuilder
)
