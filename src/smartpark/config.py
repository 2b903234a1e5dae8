# File: src/smartpark/config.py
"""
Configuration for the SmartPark allocation engine

Settings come from defaults, a dictionary, or a YAML file:

    floor_weight: 10
    ticket_prefix: TKT
    ticket_number_width: 6
    currency: USD
    minimum_charge_hours: 1
    default_strategy: ordered
    log_level: INFO
    hourly_rates:
      small: 5.00
      medium: 10.00
      large: 20.00
    layout:            # optional, consumed by ParkingLotBuilder.from_config
      name: Downtown Garage
      floors:
        - {floor: 0, small: 5, medium: 10, large: 2}
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

import yaml

from .domain.models import SizeClass, FLOOR_WEIGHT
from .domain.strategies import DEFAULT_HOURLY_RATES


logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ParkingConfig:
    """Runtime settings for a parking lot"""
    floor_weight: int = FLOOR_WEIGHT
    ticket_prefix: str = "TKT"
    ticket_number_width: int = 6
    currency: str = "USD"
    hourly_rates: Dict[SizeClass, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_HOURLY_RATES)
    )
    minimum_charge_hours: int = 1
    default_strategy: str = "linear"
    log_level: str = "INFO"
    layout: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Validate settings"""
        if not isinstance(self.floor_weight, int) or self.floor_weight < 0:
            raise ValueError(f"floor_weight must be a non-negative integer: {self.floor_weight!r}")

        if not self.ticket_prefix or not str(self.ticket_prefix).strip():
            raise ValueError("ticket_prefix cannot be empty")

        if not isinstance(self.ticket_number_width, int) or self.ticket_number_width < 1:
            raise ValueError(f"ticket_number_width must be at least 1: {self.ticket_number_width!r}")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

        if not isinstance(self.minimum_charge_hours, int) or self.minimum_charge_hours < 0:
            raise ValueError("minimum_charge_hours must be a non-negative integer")

        self.log_level = str(self.log_level).upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        rates = dict(DEFAULT_HOURLY_RATES)
        for key, value in (self.hourly_rates or {}).items():
            try:
                rate = Decimal(str(value))
            except InvalidOperation:
                raise ValueError(f"Invalid hourly rate for {key}: {value!r}") from None
            if rate < 0:
                raise ValueError(f"Hourly rate for {key} cannot be negative")
            rates[SizeClass.parse(key)] = rate
        self.hourly_rates = rates

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ParkingConfig':
        """Create config from a dictionary, ignoring unknown keys with a warning"""
        data = dict(data or {})
        known = {f for f in cls.__dataclass_fields__}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "floor_weight": self.floor_weight,
            "ticket_prefix": self.ticket_prefix,
            "ticket_number_width": self.ticket_number_width,
            "currency": self.currency,
            "hourly_rates": {c.name.lower(): str(r) for c, r in self.hourly_rates.items()},
            "minimum_charge_hours": self.minimum_charge_hours,
            "default_strategy": self.default_strategy,
            "log_level": self.log_level,
            "layout": self.layout,
        }


def load_config(path: Union[str, Path]) -> ParkingConfig:
    """
    Load a ParkingConfig from a YAML file
    Raises: FileNotFoundError, ValueError for malformed content
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    logger.info(f"Loaded configuration from {path}")
    return ParkingConfig.from_dict(data)
