"""Tests for timer sources and the status line."""

from __future__ import annotations

import asyncio

import pytest

from vaultsync.models import CoordinatorState
from vaultsync.scheduler import AsyncioScheduler, ManualScheduler
from vaultsync.state import SyncStatus


class TestManualScheduler:
    """Virtual time."""

    def test_nothing_fires_without_advance(self):
        sched = ManualScheduler()
        fired = []
        sched.call_every(10, lambda: fired.append(sched.now()))
        assert fired == []

    def test_fires_at_each_interval(self):
        sched = ManualScheduler()
        fired = []
        sched.call_every(10, lambda: fired.append(sched.now()))
        sched.advance(35)
        assert fired == [10.0, 20.0, 30.0]
        assert sched.now() == 35.0

    def test_multiple_timers_fire_in_time_order(self):
        sched = ManualScheduler()
        fired = []
        sched.call_every(30, lambda: fired.append("slow"))
        sched.call_every(20, lambda: fired.append("fast"))
        sched.advance(60)
        assert fired == ["fast", "slow", "fast", "slow", "fast"]

    def test_cancel_stops_firing(self):
        sched = ManualScheduler()
        fired = []
        timer = sched.call_every(10, lambda: fired.append(1))
        sched.advance(10)
        timer.cancel()
        timer.cancel()
        sched.advance(100)
        assert fired == [1]
        assert not timer.active
        assert sched.active_timers == 0

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            ManualScheduler().call_every(0, lambda: None)


class TestAsyncioScheduler:
    """Real event-loop timers."""

    @pytest.mark.asyncio
    async def test_repeats_until_cancelled(self):
        sched = AsyncioScheduler()
        fired = []
        timer = sched.call_every(0.01, lambda: fired.append(1))
        await asyncio.sleep(0.055)
        timer.cancel()
        count = len(fired)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert len(fired) == count

    @pytest.mark.asyncio
    async def test_callback_error_keeps_timer_alive(self):
        sched = AsyncioScheduler()
        fired = []

        def flaky():
            fired.append(1)
            raise RuntimeError("boom")

        timer = sched.call_every(0.01, flaky)
        await asyncio.sleep(0.045)
        timer.cancel()
        assert len(fired) >= 2


class TestSyncStatus:
    """State tracking and status-line rendering."""

    def test_not_ready_before_first_state(self):
        status = SyncStatus(clock=lambda: 0.0)
        assert status.state is None
        assert status.render() == "vaultsync: not ready"

    def test_listeners_notified_once_per_change(self):
        status = SyncStatus(clock=lambda: 0.0)
        seen = []
        status.add_listener(seen.append)
        status.set(CoordinatorState.IDLE)
        status.set(CoordinatorState.IDLE)
        status.set(CoordinatorState.PULLING)
        assert seen == [CoordinatorState.IDLE, CoordinatorState.PULLING]

        status.remove_listener(seen.append)
        status.set(CoordinatorState.IDLE)
        assert len(seen) == 2

    def test_broken_listener_does_not_block_others(self):
        status = SyncStatus(clock=lambda: 0.0)
        seen = []

        def broken(_):
            raise RuntimeError("listener bug")

        status.add_listener(broken)
        status.add_listener(seen.append)
        status.set(CoordinatorState.IDLE)
        assert seen == [CoordinatorState.IDLE]

    def test_message_expires(self):
        sched = ManualScheduler()
        status = SyncStatus(clock=sched.now)
        status.set(CoordinatorState.PUSHING)
        status.show_message("Pushed 3 files to remote", 4000)

        assert status.render() == "vaultsync: pushed 3 files to remote"
        sched.advance(4)
        assert status.render() == "vaultsync: pushing changes..."

    def test_zero_timeout_message_sticks(self):
        sched = ManualScheduler()
        status = SyncStatus(clock=sched.now)
        status.show_message("Cannot run git command", 0)
        sched.advance(3600)
        assert status.render() == "vaultsync: cannot run git command"

    def test_last_update_after_busy_state(self):
        sched = ManualScheduler()
        status = SyncStatus(clock=sched.now)
        status.set(CoordinatorState.IDLE)
        assert status.last_update is None
        assert status.render() == "vaultsync: ready"

        status.set(CoordinatorState.PULLING)
        sched.advance(30)
        status.set(CoordinatorState.IDLE)
        sched.advance(150)
        assert status.last_update == 30.0
        assert status.render() == "vaultsync: last update 2 minute(s) ago"

    def test_conflicted_text(self):
        status = SyncStatus(clock=lambda: 0.0)
        status.set(CoordinatorState.CONFLICTED)
        assert status.render() == "vaultsync: you have conflict files..."
