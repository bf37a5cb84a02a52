"""
Unit tests for BootstrapState.
"""

import threading
from unittest.mock import MagicMock

from launchkit.bootstrap.state import BootstrapState


class TestInFlightFlag:
    """Test the compare-and-set flag."""

    def test_initial_state(self):
        state = BootstrapState()
        assert not state.is_starting
        assert state.process is None

    def test_try_begin_once(self):
        state = BootstrapState()

        assert state.try_begin() is True
        assert state.try_begin() is False
        assert state.is_starting

        state.finish()
        assert not state.is_starting
        assert state.try_begin() is True

    def test_only_one_thread_wins(self):
        state = BootstrapState()
        barrier = threading.Barrier(16)
        results = []

        def contender():
            barrier.wait()
            results.append(state.try_begin())

        threads = [threading.Thread(target=contender) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1


class TestProcessSlot:
    """Test the stored process handle."""

    def test_attach_returns_previous(self):
        state = BootstrapState()
        first, second = MagicMock(), MagicMock()

        assert state.attach_process(first) is None
        assert state.attach_process(second) is first
        assert state.process is second

    def test_take_empties_slot(self):
        state = BootstrapState()
        process = MagicMock()
        state.attach_process(process)

        assert state.take_process() is process
        assert state.take_process() is None
