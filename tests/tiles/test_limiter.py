"""Tests for ConcurrencyLimiter."""

import pytest

from tiles.limiter import ConcurrencyLimiter


class TestConcurrencyLimiter:
    """Tests for try_acquire / release accounting."""

    def test_acquire_up_to_limit(self):
        limiter = ConcurrencyLimiter(2)
        assert limiter.try_acquire()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()
        assert limiter.in_flight == 2
        assert limiter.available == 0

    def test_release_frees_slot(self):
        limiter = ConcurrencyLimiter(1)
        assert limiter.try_acquire()
        limiter.release()
        assert limiter.in_flight == 0
        assert limiter.try_acquire()

    def test_release_without_acquire_raises(self):
        limiter = ConcurrencyLimiter(1)
        with pytest.raises(RuntimeError):
            limiter.release()

    def test_slot_releases_on_success(self):
        limiter = ConcurrencyLimiter(1)
        assert limiter.try_acquire()
        with limiter.slot():
            assert limiter.in_flight == 1
        assert limiter.in_flight == 0

    def test_slot_releases_on_error(self):
        """Release happens on the failure path too."""
        limiter = ConcurrencyLimiter(1)
        assert limiter.try_acquire()
        with pytest.raises(ValueError), limiter.slot():
            raise ValueError('boom')
        assert limiter.in_flight == 0

    def test_peak(self):
        limiter = ConcurrencyLimiter(3)
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.release()
        limiter.try_acquire()
        assert limiter.peak == 2

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)
