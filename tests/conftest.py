"""Shared fixtures for Bito analytics tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from bito_analytics.managers import ChallengeManager, Dispatcher, StatisticsManager
from bito_analytics.utils import dt_utils

from tests.helpers import UTC_TZ


@pytest.fixture(autouse=True)
def utc_default_timezone() -> Iterator[None]:
    """Pin the engine timezone to UTC and restore it afterwards."""
    previous = dt_utils.get_default_timezone()
    dt_utils.set_default_timezone(UTC_TZ)
    yield
    dt_utils.set_default_timezone(previous)


@pytest.fixture
def dispatcher() -> Dispatcher:
    """Return a fresh event dispatcher."""
    return Dispatcher()


@pytest.fixture
def manager(dispatcher: Dispatcher) -> Iterator[ChallengeManager]:
    """Return a ChallengeManager for workspace-1 with an empty ledger."""
    mgr = ChallengeManager("workspace-1", dispatcher=dispatcher, tz=UTC_TZ)
    yield mgr
    mgr.close()


@pytest.fixture
def stats_manager(
    manager: ChallengeManager, dispatcher: Dispatcher
) -> Iterator[StatisticsManager]:
    """Return a StatisticsManager sharing the challenge manager's state."""
    mgr = StatisticsManager(
        "workspace-1", manager.ledger, manager.habits, dispatcher, tz=UTC_TZ
    )
    yield mgr
    mgr.close()


@pytest.fixture
def captured_events(
    manager: ChallengeManager,
) -> dict[str, list[dict[str, Any]]]:
    """Record every payload the manager emits, keyed by signal suffix."""
    events: dict[str, list[dict[str, Any]]] = {}
    for suffix in (
        "completion_recorded",
        "progress_updated",
        "milestone_reached",
        "participant_completed",
        "participant_dropped",
        "challenge_status_changed",
    ):
        events[suffix] = []
        manager.listen(suffix, events[suffix].append)
    return events
