"""Preorders bounded context — scheduled pre-orders at market stalls.

Turns a mutable shopping cart into an immutable, schedulable order while
enforcing inventory, pricing, stall-hours and per-day capacity rules, and
drives the order through its status lifecycle.
"""

import structlog
from protean.domain import Domain

from preorders.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

preorders = Domain(name="preorders")

logger = structlog.get_logger(__name__)
