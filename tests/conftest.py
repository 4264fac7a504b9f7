from datetime import datetime

import pytest

from database import MemoryStorage, Store
from notifier import Notifier
from schemas import Patient


class ManualScheduler:
    """Collects scheduled callbacks instead of starting timers."""

    def __init__(self):
        self.calls = []

    def __call__(self, delay, callback):
        self.calls.append((delay, callback))

    def run_all(self):
        calls, self.calls = self.calls, []
        for _, callback in calls:
            callback()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return Store(storage).load()


@pytest.fixture
def now():
    return datetime(2024, 6, 15, 10, 30)


@pytest.fixture
def patient(store):
    p = Patient(id="p1", name="Ana Lopez", phone="+34 600-123-456", created_at=datetime(2024, 1, 2, 9, 0))
    store.patients.append(p)
    store.save()
    return p


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def notifier(scheduler):
    return Notifier(delay_ms=3000, schedule=scheduler)
