"""Tests for the debounced seeker state machine."""

import pytest

from castdeck.backend.player.seeker import DebouncedSeeker


def _seeker(fake_clock, fake_timers, position_ms=60_000):
    seeks = []
    seeker = DebouncedSeeker(
        seeks.append,
        lambda: position_ms,
        window=0.5,
        clock=fake_clock,
        timer_factory=fake_timers,
    )
    return seeker, seeks


class TestDebouncedSeeker:
    def test_burst_coalesces_into_one_absolute_seek(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)

        for _ in range(3):
            seeker.request(30)
            fake_clock.advance(0.2)

        assert seeker.poll() is None
        fake_clock.advance(0.5)
        assert seeker.poll() == 150.0
        assert seeks == [150.0]
        assert seeker.pending_offset == 0
        assert seeker.poll() is None

    def test_each_request_resets_deadline(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)

        seeker.request(30)
        first_deadline = seeker.deadline
        fake_clock.advance(0.4)
        seeker.request(30)

        assert seeker.deadline == pytest.approx(first_deadline + 0.4)
        assert fake_timers.created[0].cancelled
        assert fake_timers.created[1].started
        fake_clock.advance(0.4)
        assert seeker.poll() is None
        assert seeks == []

    def test_zero_net_offset_is_noop(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)

        seeker.request(30)
        seeker.request(-30)
        fake_clock.advance(1)

        assert seeker.poll() is None
        assert seeks == []
        assert not seeker.pending

    def test_backward_seek_clamped_at_zero(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers, position_ms=10_000)

        seeker.request(-30)
        seeker.flush()

        assert seeks == [0.0]

    def test_timer_callback_flushes_when_due(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)

        seeker.request(30)
        timer = fake_timers.created[-1]
        assert timer.interval == 0.5
        fake_clock.advance(0.5)
        timer.function()

        assert seeks == [90.0]

    def test_early_timer_reschedules(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)

        seeker.request(30)
        fake_clock.advance(0.3)
        fake_timers.created[-1].function()

        assert seeks == []
        assert abs(fake_timers.created[-1].interval - 0.2) < 1e-9

    def test_cancel_drops_pending(self, fake_clock, fake_timers):
        seeker, seeks = _seeker(fake_clock, fake_timers)
        seeker.request(30)
        seeker.cancel()
        fake_clock.advance(1)
        assert seeker.poll() is None
        assert seeks == []

    def test_failed_seek_is_swallowed(self, fake_clock, fake_timers):
        def broken(seconds):
            raise RuntimeError("receiver busy")

        seeker = DebouncedSeeker(broken, lambda: 0, clock=fake_clock, timer_factory=fake_timers)
        seeker.request(30)
        assert seeker.flush() is None
        assert seeker.pending_offset == 0
