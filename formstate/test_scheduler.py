"""
Revalidation Scheduler Tests

Tests that debounced validation:
- Fires once, after the delay
- Restarts the delay on every edit
- Never lets a superseded edit run
"""

import asyncio
import unittest

from formstate.scheduler import DebounceScheduler, EditToken, asyncio_timer


class ManualTimer:
    def __init__(self, due, fn):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Timer factory driven by advance() instead of wall time."""

    def __init__(self, honour_cancel=True):
        self.now = 0.0
        self.timers = []
        self.honour_cancel = honour_cancel

    def call_later(self, delay_seconds, fn):
        timer = ManualTimer(self.now + delay_seconds, fn)
        self.timers.append(timer)
        return timer

    def advance(self, ms):
        self.now += ms / 1000.0
        due = [t for t in self.timers if t.due <= self.now + 1e-9]
        self.timers = [t for t in self.timers if t not in due]
        for timer in due:
            if timer.cancelled and self.honour_cancel:
                continue
            timer.fn()


class TestDebounceScheduler(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.calls = []
        self.scheduler = DebounceScheduler(500, self.calls.append, self.clock.call_later)

    def test_fires_after_delay(self):
        self.scheduler.schedule('title')
        self.clock.advance(499)
        self.assertEqual(self.calls, [])
        self.clock.advance(1)
        self.assertEqual(self.calls, ['title'])
        self.assertIsNone(self.scheduler.pending)

    def test_rescheduling_restarts_delay(self):
        self.scheduler.schedule('title')
        self.clock.advance(300)
        self.scheduler.schedule('title')
        self.clock.advance(300)
        self.assertEqual(self.calls, [])
        self.clock.advance(200)
        self.assertEqual(self.calls, ['title'])

    def test_last_edit_wins_across_fields(self):
        self.scheduler.schedule('title')
        self.scheduler.schedule('description')
        self.clock.advance(500)
        self.assertEqual(self.calls, ['description'])

    def test_tokens_carry_increasing_generations(self):
        first = self.scheduler.schedule('title')
        second = self.scheduler.schedule('title')
        self.assertEqual(first, EditToken('title', 1))
        self.assertEqual(second, EditToken('title', 2))
        self.assertFalse(self.scheduler.is_current(first))
        self.assertTrue(self.scheduler.is_current(second))
        self.assertEqual(self.scheduler.generation_of('title'), 2)
        self.assertEqual(self.scheduler.generation_of('other'), 0)

    def test_stale_timer_is_discarded(self):
        # A clock that runs cancelled timers anyway
        clock = ManualClock(honour_cancel=False)
        scheduler = DebounceScheduler(500, self.calls.append, clock.call_later)
        scheduler.schedule('title')
        clock.advance(100)
        scheduler.schedule('title')
        clock.advance(400)
        self.assertEqual(self.calls, [])
        clock.advance(100)
        self.assertEqual(self.calls, ['title'])

    def test_cancel(self):
        self.scheduler.schedule('title')
        self.scheduler.cancel()
        self.clock.advance(1000)
        self.assertEqual(self.calls, [])
        self.assertIsNone(self.scheduler.pending)

    def test_flush(self):
        self.scheduler.schedule('title')
        self.assertTrue(self.scheduler.flush())
        self.assertEqual(self.calls, ['title'])
        self.clock.advance(1000)
        self.assertEqual(self.calls, ['title'])
        self.assertFalse(self.scheduler.flush())


class TestAsyncioTimer(unittest.TestCase):

    def test_no_running_loop_waits_for_flush(self):
        calls = []
        scheduler = DebounceScheduler(10, calls.append)
        scheduler.schedule('title')
        self.assertEqual(calls, [])
        self.assertEqual(scheduler.pending, EditToken('title', 1))
        scheduler.flush()
        self.assertEqual(calls, ['title'])

    def test_no_running_loop_returns_none(self):
        self.assertIsNone(asyncio_timer(0.01, lambda: None))

    def test_fires_on_running_loop(self):
        calls = []

        async def run():
            scheduler = DebounceScheduler(10, calls.append)
            scheduler.schedule('title')
            scheduler.schedule('title')
            await asyncio.sleep(0.05)

        asyncio.run(run())
        self.assertEqual(calls, ['title'])


if __name__ == '__main__':
    unittest.main()
