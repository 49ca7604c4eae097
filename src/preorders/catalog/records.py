"""Read-only catalogue records consumed by the preorders engine.

Products and stalls are owned by the catalogue; this context only reads them
through the ``CatalogGateway`` port. They are modelled as value objects so
every record is validated when an adapter hands it over.
"""

import re
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, String, ValueObject

from preorders.domain import preorders
from preorders.utils.clock import DAY_NAMES

_WALL_CLOCK = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class StallStatus(Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


@preorders.value_object
class DayHours:
    """Opening window for one day of the week, as wall-clock ``HH:MM`` strings."""

    closed = Boolean(default=False)
    opens = String(max_length=5)
    closes = String(max_length=5)

    @invariant.post
    def wall_clock_times_are_well_formed(self):
        for label, value in (("opens", self.opens), ("closes", self.closes)):
            if value and not _WALL_CLOCK.match(value):
                raise ValidationError({label: [f"Expected HH:MM, got {value!r}"]})

    @property
    def has_window(self) -> bool:
        return not self.closed and bool(self.opens) and bool(self.closes)


@preorders.value_object
class Product:
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    title = String(max_length=255)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    unit_price = Integer(required=True, min_value=0)  # cents
    stock = Integer(default=0, min_value=0)

    @property
    def label(self) -> str:
        return self.title or str(self.product_id)

    @property
    def is_active(self) -> bool:
        return ProductStatus(self.status) == ProductStatus.ACTIVE


@preorders.value_object
class Stall:
    """A point of sale: status, per-day capacity (0 = unlimited) and weekly hours."""

    stall_id = Identifier(required=True)
    name = String(max_length=255)
    status = String(choices=StallStatus, default=StallStatus.ACTIVE.value)
    capacity_per_day = Integer(default=0, min_value=0)
    timezone = String(max_length=64, default="UTC")
    monday = ValueObject(DayHours)
    tuesday = ValueObject(DayHours)
    wednesday = ValueObject(DayHours)
    thursday = ValueObject(DayHours)
    friday = ValueObject(DayHours)
    saturday = ValueObject(DayHours)
    sunday = ValueObject(DayHours)

    @property
    def label(self) -> str:
        return self.name or str(self.stall_id)

    @property
    def is_active(self) -> bool:
        return StallStatus(self.status) == StallStatus.ACTIVE

    def hours_on(self, day: str) -> DayHours | None:
        """Hours for ``day`` (lowercase English day name); None when the table has no entry."""
        if day not in DAY_NAMES:
            raise ValueError(f"Unknown day: {day!r}")
        return getattr(self, day)
