"""Tests for sweep/pool.py"""
import threading
import time

import pytest

from sweep.pool import WorkerPool


class TestWorkerPool:
    """Tests for the bounded worker pool."""

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            WorkerPool(0)

    def test_submit_returns_future(self):
        with WorkerPool(2) as pool:
            future = pool.submit(lambda x: x * 2, 21)
            assert future.result(timeout=5) == 42

    def test_never_exceeds_ceiling(self):
        """At most max_workers units run at once."""
        running = 0
        peak = 0
        lock = threading.Lock()

        def unit():
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.01)
            with lock:
                running -= 1

        with WorkerPool(3) as pool:
            for _ in range(30):
                pool.submit(unit)
            pool.drain()
            assert pool.peak_in_flight <= 3

        assert peak <= 3
        assert peak >= 1

    def test_submit_blocks_when_saturated(self):
        gate = threading.Event()
        with WorkerPool(1) as pool:
            pool.submit(gate.wait)
            assert pool.reserve(timeout=0.05) is False
            gate.set()
            assert pool.reserve(timeout=5) is True
            pool.release()

    def test_slot_released_when_unit_raises(self):
        def boom():
            raise RuntimeError("boom")

        with WorkerPool(1) as pool:
            future = pool.submit(boom)
            with pytest.raises(RuntimeError):
                future.result(timeout=5)
            assert pool.drain(timeout=5) is True
            assert pool.in_flight == 0
            # The only slot is free again
            assert pool.reserve(timeout=1) is True
            pool.release()

    def test_reserve_release_without_running(self):
        with WorkerPool(2) as pool:
            assert pool.reserve() is True
            assert pool.in_flight == 1
            pool.release()
            assert pool.in_flight == 0

    def test_drain_waits_for_all_units(self):
        done = []
        lock = threading.Lock()

        def unit(n):
            time.sleep(0.01)
            with lock:
                done.append(n)

        with WorkerPool(4) as pool:
            for n in range(12):
                pool.submit(unit, n)
            assert pool.drain(timeout=10) is True
            assert sorted(done) == list(range(12))

    def test_drain_on_idle_pool(self):
        with WorkerPool(2) as pool:
            assert pool.drain(timeout=0.1) is True
