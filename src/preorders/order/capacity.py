"""Per-(stall, day) booking ledger.

``DailyBookings`` is the durable counter behind the daily capacity limit. It
is reserved in the same unit of work that persists an order and released in
the same unit of work that cancels one, so the persisted number of open
orders for a stall and day never exceeds the stall's capacity.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from preorders.domain import preorders


def ledger_id(stall_id, day: str) -> str:
    return f"{stall_id}:{day}"


@preorders.aggregate
class DailyBookings:
    ledger_id = String(identifier=True, max_length=100)
    stall_id = Identifier(required=True)
    service_date = String(required=True, max_length=10)
    booked = Integer(default=0, min_value=0)

    @classmethod
    def open(cls, stall_id, day: str) -> "DailyBookings":
        return cls(ledger_id=ledger_id(stall_id, day), stall_id=stall_id, service_date=day, booked=0)

    def reserve(self, capacity: int) -> None:
        """Take one slot. ``capacity`` of 0 means unlimited."""
        if capacity and self.booked + 1 > capacity:
            raise ValidationError(
                {"capacity": [f"Stall at capacity for {self.service_date}. Maximum {capacity} orders per day."]}
            )
        self.booked += 1

    def release(self) -> None:
        if self.booked > 0:
            self.booked -= 1


def bookings_for(stall_id, day: str) -> DailyBookings:
    """Load the ledger for ``stall_id`` on ``day``, opening an empty one when missing."""
    repo = current_domain.repository_for(DailyBookings)
    try:
        return repo.get(ledger_id(stall_id, day))
    except ObjectNotFoundError:
        return DailyBookings.open(stall_id, day)
