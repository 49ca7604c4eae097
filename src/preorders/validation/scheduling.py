"""Scheduling validation: can this stall take one more order at this time?

Blocking findings (the stall is missing or suspended, the time is in the
past or beyond the booking horizon, the stall is closed that day, the day is
full) end the checks. Outside-hours, approaching-capacity and nearby-order
findings are warnings only; staff may still accept such orders.

Day-of-week, wall-clock and calendar-day decisions use the stall's own
time zone.
"""

from datetime import date, timedelta

import structlog
from protean.utils.globals import current_domain

from preorders.catalog import get_catalog
from preorders.order.order import Order, OrderStatus
from preorders.settings import get_settings
from preorders.utils.clock import as_utc, day_name, service_date, to_local, utc_now
from preorders.validation.result import ValidationResult

logger = structlog.get_logger(__name__)


def _neighbouring_days(day: str) -> list[str]:
    centre = date.fromisoformat(day)
    return [(centre + timedelta(days=offset)).isoformat() for offset in (-1, 0, 1)]


def _is_outside(wall_clock: str, opens: str, closes: str) -> bool:
    """Inclusive of both ends; a window whose close is before its open runs past midnight."""
    if opens <= closes:
        return wall_clock < opens or wall_clock > closes
    return closes < wall_clock < opens


def validate_schedule(
    stall_id,
    requested_for,
    item_count: int = 0,
    existing_orders=None,
    catalog=None,
    settings=None,
    now=None,
) -> ValidationResult:
    """Check ``requested_for`` against the stall's status, hours and daily capacity.

    Args:
        existing_orders: Orders already booked at the stall around the requested
            day. Loaded from the Order repository when omitted.
    """
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    now = as_utc(now) or utc_now()
    requested_for = as_utc(requested_for)
    result = ValidationResult()

    stall = catalog.get_stall(stall_id)
    if stall is None:
        return result.block(f"Stall {stall_id} not found")
    if not stall.is_active:
        return result.block(f"Stall {stall.label} is not accepting orders")

    if requested_for <= now:
        return result.block("Order must be scheduled in the future")
    if requested_for > now + timedelta(days=settings.booking_horizon_days):
        return result.block(
            f"Advance booking limit exceeded: orders can only be scheduled up to "
            f"{settings.booking_horizon_days} days in advance"
        )

    local = to_local(requested_for, stall.timezone)
    day = day_name(local)
    hours = stall.hours_on(day)
    if hours is not None:
        if hours.closed:
            return result.block(f"Stall is closed on {day.capitalize()}s")
        if hours.has_window and _is_outside(local.strftime("%H:%M"), hours.opens, hours.closes):
            result.warn(f"Order is scheduled outside normal operating hours ({hours.opens} - {hours.closes})")

    target_day = service_date(requested_for, stall.timezone)
    if existing_orders is None:
        existing_orders = current_domain.repository_for(Order).open_for_stall(
            stall_id, _neighbouring_days(target_day)
        )
    existing_orders = [o for o in existing_orders if o.status != OrderStatus.CANCELLED.value]

    if stall.capacity_per_day > 0:
        booked = sum(1 for o in existing_orders if o.service_date == target_day)
        total_for_day = booked + 1
        if total_for_day > stall.capacity_per_day:
            return result.block(
                f"Stall at capacity for {target_day}. Maximum {stall.capacity_per_day} orders per day."
            )
        if total_for_day > stall.capacity_per_day * settings.capacity_warning_ratio:
            result.warn(
                f"Stall is approaching capacity for this day ({total_for_day}/{stall.capacity_per_day} orders)"
            )

    window = timedelta(minutes=settings.conflict_window_minutes)
    nearby = [o for o in existing_orders if abs(as_utc(o.requested_for) - requested_for) < window]
    if nearby:
        result.warn(
            f"There are {len(nearby)} other orders scheduled within "
            f"{settings.conflict_window_minutes} minutes of this time"
        )

    logger.debug(
        "schedule_validated",
        stall_id=str(stall_id),
        service_date=target_day,
        item_count=item_count,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )
    return result
