import unittest
from unittest import mock

import timer_loop
from clock_driver import ClockDriver
from timer_loop import ManualTimerLoop


class TestManualTimerLoop(unittest.TestCase):
    def test_fires_in_time_then_insertion_order(self):
        loop = ManualTimerLoop()
        order = []
        loop.call_at(2.0, lambda: order.append("b"))
        loop.call_at(1.0, lambda: order.append("a"))
        loop.call_at(2.0, lambda: order.append("c"))

        self.assertEqual(loop.advance(1.5), 1)
        self.assertEqual(loop.now(), 1.5)
        self.assertEqual(loop.advance(1.0), 2)
        self.assertEqual(order, ["a", "b", "c"])

    def test_now_is_due_time_inside_callback(self):
        loop = ManualTimerLoop(start_time=10.0)
        seen = []
        loop.call_later(0.5, lambda: seen.append(loop.now()))
        loop.advance(3.0)
        self.assertEqual(seen, [10.5])
        self.assertEqual(loop.now(), 13.0)

    def test_cancelled_handle_never_fires(self):
        loop = ManualTimerLoop()
        fired = []
        handle = loop.call_later(1.0, lambda: fired.append(1))
        self.assertTrue(handle.pending)
        handle.cancel()
        self.assertFalse(handle.pending)
        self.assertEqual(loop.pending_count(), 0)
        loop.advance(5.0)
        self.assertEqual(fired, [])

    def test_callback_error_is_logged_and_loop_continues(self):
        loop = ManualTimerLoop()
        fired = []

        def boom():
            raise RuntimeError("boom")

        loop.call_later(1.0, boom)
        loop.call_later(2.0, lambda: fired.append(1))
        with mock.patch.object(timer_loop, "log_event") as log_mock:
            loop.advance(3.0)
        self.assertEqual(fired, [1])
        self.assertEqual(log_mock.call_args[0][0], "ERROR")

    def test_run_until_idle_follows_rescheduling(self):
        loop = ManualTimerLoop()
        count = []

        def tick():
            count.append(loop.now())
            if len(count) < 5:
                loop.call_later(1.0, tick)

        loop.call_later(1.0, tick)
        fired = loop.run_until_idle()
        self.assertEqual(fired, 5)
        self.assertEqual(count, [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_stop_drops_pending(self):
        loop = ManualTimerLoop()
        loop.call_later(1.0, lambda: None)
        loop.stop()
        self.assertEqual(loop.pending_count(), 0)


class TestClockDriver(unittest.TestCase):
    def test_ticks_on_absolute_schedule(self):
        loop = ManualTimerLoop()
        ticks = []
        clock = ClockDriver(loop, lambda: ticks.append(loop.now()))
        clock.start()
        loop.advance(3.5)
        self.assertEqual(ticks, [1.0, 2.0, 3.0])
        self.assertTrue(clock.running)

    def test_stop_and_restart_begins_new_timeline(self):
        loop = ManualTimerLoop()
        ticks = []
        clock = ClockDriver(loop, lambda: ticks.append(loop.now()))
        clock.start()
        loop.advance(1.5)
        clock.stop()
        self.assertFalse(clock.running)
        loop.advance(2.0)
        self.assertEqual(ticks, [1.0])

        clock.start()
        loop.advance(1.0)
        self.assertEqual(ticks, [1.0, 4.5])

    def test_on_tick_can_stop_clock(self):
        loop = ManualTimerLoop()
        clock = None
        ticks = []

        def on_tick():
            ticks.append(loop.now())
            clock.stop()

        clock = ClockDriver(loop, on_tick)
        clock.start()
        loop.advance(5.0)
        self.assertEqual(ticks, [1.0])
        self.assertEqual(loop.pending_count(), 0)

    def test_start_twice_keeps_one_timer(self):
        loop = ManualTimerLoop()
        clock = ClockDriver(loop, lambda: None)
        clock.start()
        clock.start()
        self.assertEqual(loop.pending_count(), 1)


if __name__ == "__main__":
    unittest.main()
