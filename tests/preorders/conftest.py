from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture

from preorders.catalog import get_catalog, reset_catalog
from preorders.notifications import get_sink, reset_sink
from preorders.settings import reset_settings
from preorders.utils.clock import DAY_NAMES


@pytest.fixture(scope="session")
def preorders_bed():
    from preorders.domain import preorders

    bed = DomainFixture(preorders)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(preorders_bed):
    reset_catalog()
    reset_sink()
    reset_settings()
    with preorders_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def catalog():
    return get_catalog()


@pytest.fixture()
def sink():
    return get_sink()


OPEN_ALL_WEEK = {day: {"opens": "08:00", "closes": "20:00"} for day in DAY_NAMES}


@pytest.fixture()
def stall(catalog):
    return catalog.add_stall(stall_id="stall-001", name="Mama Njeri's Kitchen", capacity_per_day=5, hours=OPEN_ALL_WEEK)


@pytest.fixture()
def samosa(catalog, stall):
    return catalog.add_product(product_id="prod-samosa", stall_id="stall-001", title="Samosa", unit_price=800, stock=50)


@pytest.fixture()
def pilau(catalog, stall):
    return catalog.add_product(product_id="prod-pilau", stall_id="stall-001", title="Pilau", unit_price=1500, stock=50)


def _upcoming(day: str, hour: int = 12, minute: int = 0) -> datetime:
    """Next ``day`` (at least one day out) at ``hour:minute`` UTC."""
    today = datetime.now(UTC).replace(hour=hour, minute=minute, second=0, microsecond=0)
    ahead = (DAY_NAMES.index(day) - today.weekday()) % 7 or 7
    return today + timedelta(days=ahead)


@pytest.fixture()
def upcoming():
    return _upcoming


@pytest.fixture()
def tomorrow_noon():
    return datetime.now(UTC).replace(hour=12, minute=0, second=0, microsecond=0) + timedelta(days=1)
