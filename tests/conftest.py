"""Shared pytest fixtures for Rentaly tests."""
import sys
sys.dont_write_bytecode = True

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from rentaly.domain.admission import AdmissionController  # noqa: E402
from rentaly.domain.lifecycle import StatusLifecycleManager  # noqa: E402
from rentaly.domain.resources import Resource  # noqa: E402
from rentaly.infra.repositories.reservations_repository import (  # noqa: E402
    InMemoryReservationStore,
)
from rentaly.infra.repositories.resources_repository import (  # noqa: E402
    InMemoryResourceRegistry,
)

FIXED_NOW = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Notifier double that remembers every event it receives."""

    def __init__(self):
        self.created = []
        self.status_changes = []

    def reservation_created(self, reservation):
        self.created.append(reservation)

    def status_changed(self, reservation, previous_status):
        self.status_changes.append((reservation, previous_status))


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def registry():
    return InMemoryResourceRegistry(
        [
            Resource(id="car-x", day_rate=Decimal("1000"), label="Toyota Corolla 2022"),
            Resource(id="car-y", day_rate=Decimal("49.99")),
            Resource(id="car-off", day_rate=Decimal("80"), available=False, label="Ford Focus"),
        ]
    )


@pytest.fixture
def store(clock):
    return InMemoryReservationStore(clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def admission(store, registry, notifier, clock):
    return AdmissionController(store, registry, notifier=notifier, clock=clock)


@pytest.fixture
def lifecycle(store, notifier):
    return StatusLifecycleManager(store, notifier=notifier)
