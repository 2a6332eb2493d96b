"""Shared pytest fixtures for the page store tests."""

from datetime import datetime, timedelta, timezone

import pytest

from milkshake.pages.navigation import TreeNavigator
from milkshake.pages.store import PageStore


class FakeClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start=None, step=timedelta(minutes=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory page store."""
    return PageStore(clock=clock)


@pytest.fixture
def disk_store(tmp_path, clock):
    """Page store persisted below a temporary directory."""
    return PageStore(tmp_path / "site", clock=clock)


@pytest.fixture
def navigator(store):
    return TreeNavigator(store)


@pytest.fixture
def about_tree(store):
    """about-us > our-team > leadership, plus a second root."""
    about = store.create(title="About Us")
    team = store.create(title="Our Team", parent_id=about.id)
    leadership = store.create(title="Leadership", parent_id=team.id)
    contact = store.create(title="Contact")
    return {"about": about, "team": team, "leadership": leadership, "contact": contact}
