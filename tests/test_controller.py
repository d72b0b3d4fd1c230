"""Tests for the refresh controller."""

import datetime
import unittest
from unittest.mock import MagicMock

import pytz

from athan.config import DEFAULT_CONFIG, GeoConfig
from athan.controller import Event, RefreshController, State
from athan.display import Style, format_display
from athan.errors import ConfigurationError
from athan.hijri import HijriDate
from athan.schedule import PRAYER_NAMES, DailySchedule

TZ = pytz.utc
DAY = datetime.date(2025, 3, 1)
TIMES = {
    "Fajr": (4, 30),
    "Sunrise": (5, 45),
    "Dhuhr": (11, 50),
    "Asr": (15, 10),
    "Maghrib": (17, 55),
    "Isha": (19, 20),
}
GEO = GeoConfig.from_dict(dict(DEFAULT_CONFIG, timezone="UTC"))


def at(hour, minute, day=DAY, second=0):
    return TZ.localize(datetime.datetime(day.year, day.month, day.day, hour, minute, second))


def make_schedule(day, geo=None):
    return DailySchedule(date=day, **{name.lower(): at(*TIMES[name], day=day) for name in PRAYER_NAMES})


class FakeScheduler:
    """Implements the tkinter after/after_cancel contract."""

    def __init__(self):
        self.pending = {}
        self.cancelled = []
        self._counter = 0

    def after(self, ms, func):
        self._counter += 1
        timer_id = f"after#{self._counter}"
        self.pending[timer_id] = (ms, func)
        return timer_id

    def after_cancel(self, timer_id):
        self.pending.pop(timer_id, None)
        self.cancelled.append(timer_id)

    def fire(self):
        timer_id = next(iter(self.pending))
        _, func = self.pending.pop(timer_id)
        func()


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class ControllerTestCase(unittest.TestCase):
    def setUp(self):
        self.scheduler = FakeScheduler()
        self.renderer = MagicMock()
        self.provider = MagicMock(side_effect=make_schedule)
        self.hijri = MagicMock(return_value=HijriDate(1, 9, 1446))
        self.clock = Clock(at(18, 0))
        self.style = Style()
        self.controller = RefreshController(
            GEO,
            self.scheduler,
            self.renderer,
            style=self.style,
            provider=self.provider,
            hijri=self.hijri,
            clock=self.clock,
        )


class TestTick(ControllerTestCase):
    def test_start_ticks_and_renders(self):
        self.controller.start()
        state = self.controller.display_state
        self.assertEqual(state.next_prayer, "Isha")
        self.assertEqual(state.remaining, datetime.timedelta(hours=1, minutes=20))
        self.assertEqual(format_display(state)["countdown"], "01:20:00")
        self.renderer.draw.assert_called_once_with(state, self.style)
        self.assertIs(self.controller.state, State.IDLE)

    def test_start_arms_one_second_timer(self):
        self.controller.start()
        self.assertEqual([ms for ms, _ in self.scheduler.pending.values()], [1000])

    def test_timer_rearms_and_recomputes(self):
        self.controller.start()
        first = self.controller.display_state
        self.clock.now = at(18, 0, second=1)
        self.scheduler.fire()
        second = self.controller.display_state
        self.assertIsNot(first, second)
        self.assertEqual(second.remaining, datetime.timedelta(hours=1, minutes=19, seconds=59))
        # the previous snapshot is left untouched
        self.assertEqual(first.remaining, datetime.timedelta(hours=1, minutes=20))
        self.assertEqual(len(self.scheduler.pending), 1)
        self.assertEqual(self.renderer.draw.call_count, 2)

    def test_schedule_is_reused_within_a_day(self):
        self.controller.start()
        for second in range(1, 5):
            self.clock.now = at(18, 0, second=second)
            self.scheduler.fire()
        self.provider.assert_called_once_with(DAY, GEO)
        self.hijri.assert_called_once_with(DAY)

    def test_schedule_recomputed_after_midnight(self):
        self.controller.start()
        tomorrow = DAY + datetime.timedelta(days=1)
        self.clock.now = at(0, 0, day=tomorrow, second=5)
        self.scheduler.fire()
        state = self.controller.display_state
        self.assertEqual(state.schedule.date, tomorrow)
        self.assertEqual(state.next_prayer, "Fajr")
        self.hijri.assert_called_with(tomorrow)

    def test_exact_instant_shows_zero(self):
        self.clock.now = at(11, 50)
        self.controller.start()
        state = self.controller.display_state
        self.assertEqual(state.next_prayer, "Dhuhr")
        self.assertEqual(format_display(state)["countdown"], "00:00:00")

    def test_rollover_after_isha(self):
        self.clock.now = at(19, 25)
        self.controller.start()
        state = self.controller.display_state
        tomorrow = DAY + datetime.timedelta(days=1)
        self.assertEqual(state.next_prayer, "Fajr")
        self.assertEqual(state.next_instant, at(4, 30, day=tomorrow))
        self.assertEqual(state.remaining, datetime.timedelta(hours=9, minutes=5))
        # today's schedule is still the one listed
        self.assertEqual(state.schedule.date, DAY)
        self.provider.assert_any_call(tomorrow, GEO)

    def test_exact_isha_selects_isha(self):
        self.clock.now = at(19, 20)
        self.controller.start()
        state = self.controller.display_state
        self.assertEqual(state.next_prayer, "Isha")
        self.assertEqual(state.next_instant, at(19, 20))
        self.assertEqual(format_display(state)["countdown"], "00:00:00")

    def test_tomorrow_schedule_computed_once_after_isha(self):
        self.clock.now = at(19, 25)
        self.controller.start()
        for second in range(1, 11):
            self.clock.now = at(19, 25, second=second)
            self.scheduler.fire()
        tomorrow = DAY + datetime.timedelta(days=1)
        tomorrow_calls = [c for c in self.provider.call_args_list if c.args[0] == tomorrow]
        self.assertEqual(len(tomorrow_calls), 1)
        self.assertEqual(self.controller.display_state.remaining,
                         datetime.timedelta(hours=9, minutes=4, seconds=50))

    def test_cached_tomorrow_becomes_today_at_midnight(self):
        self.clock.now = at(23, 0)
        self.controller.start()
        tomorrow = DAY + datetime.timedelta(days=1)
        self.clock.now = at(0, 0, day=tomorrow, second=1)
        self.scheduler.fire()
        self.assertEqual(self.controller.display_state.schedule.date, tomorrow)
        self.assertEqual([c.args[0] for c in self.provider.call_args_list], [DAY, tomorrow])
        self.assertEqual(sorted(self.controller._schedules), [tomorrow])

    def test_rollover_logged_once_at_info(self):
        self.clock.now = at(19, 25)
        with self.assertLogs("Athan.controller", level="INFO") as logs:
            self.controller.start()
            for second in range(1, 4):
                self.clock.now = at(19, 25, second=second)
                self.scheduler.fire()
        rollover = [line for line in logs.output if "All prayers passed" in line]
        self.assertEqual(len(rollover), 1)
        self.assertTrue(rollover[0].startswith("INFO:"))

    def test_remaining_never_negative(self):
        for hour, minute in ((0, 0), (4, 30), (12, 0), (19, 20), (19, 21), (23, 59)):
            self.clock.now = at(hour, minute)
            state = self.controller.compute(self.clock.now)
            self.assertGreaterEqual(state.remaining, datetime.timedelta(0))


class TestRender(ControllerTestCase):
    def test_render_before_first_tick_is_noop(self):
        self.controller.request_render()
        self.renderer.draw.assert_not_called()

    def test_render_does_not_recompute(self):
        self.controller.start()
        self.provider.reset_mock()
        state = self.controller.display_state
        self.controller.request_render()
        self.controller.request_render()
        self.provider.assert_not_called()
        self.assertIs(self.controller.display_state, state)
        self.assertEqual(self.renderer.draw.call_count, 3)

    def test_state_is_rendering_during_draw(self):
        seen = []
        self.renderer.draw.side_effect = lambda state, style: seen.append(self.controller.state)
        self.controller.start()
        self.assertEqual(seen, [State.RENDERING])
        self.assertIs(self.controller.state, State.IDLE)


class TestEventOrdering(ControllerTestCase):
    def test_events_posted_while_drawing_are_queued(self):
        order = []

        def draw(state, style):
            order.append(("draw-start", state.now))
            if len(order) == 1:
                # a tick arriving mid-draw must wait until this draw completes
                self.clock.now = at(18, 0, second=1)
                self.controller.post(Event.TICK)
            order.append(("draw-end", state.now))

        self.renderer.draw.side_effect = draw
        self.controller.start()
        self.assertEqual(order, [
            ("draw-start", at(18, 0)),
            ("draw-end", at(18, 0)),
            ("draw-start", at(18, 0, second=1)),
            ("draw-end", at(18, 0, second=1)),
        ])


class TestShutdown(ControllerTestCase):
    def test_destroy_cancels_timer(self):
        self.controller.start()
        self.controller.destroy()
        self.assertIs(self.controller.state, State.STOPPED)
        self.assertEqual(self.scheduler.pending, {})
        self.assertEqual(len(self.scheduler.cancelled), 1)

    def test_events_after_stop_are_ignored(self):
        self.controller.start()
        self.controller.stop()
        self.controller.post(Event.TICK)
        self.controller.request_render()
        self.assertEqual(self.renderer.draw.call_count, 1)

    def test_cannot_restart(self):
        self.controller.stop()
        with self.assertRaises(RuntimeError):
            self.controller.start()


class TestFailure(ControllerTestCase):
    def test_configuration_error_is_fatal(self):
        self.provider.side_effect = ConfigurationError("invalid coordinates")
        with self.assertRaises(ConfigurationError):
            self.controller.start()
        self.assertIs(self.controller.state, State.STOPPED)
        self.assertEqual(self.scheduler.pending, {})
        self.renderer.draw.assert_not_called()

    def test_error_on_later_tick_stops_timer(self):
        self.controller.start()
        self.provider.side_effect = ConfigurationError("time zone lookup failed")
        self.clock.now = at(0, 0, day=DAY + datetime.timedelta(days=1))
        with self.assertRaises(ConfigurationError):
            self.scheduler.fire()
        self.assertFalse(self.controller.running)
        self.assertEqual(self.scheduler.pending, {})

    def test_bad_provider_result_is_configuration_error(self):
        self.provider.side_effect = None
        self.provider.return_value = None
        with self.assertRaises(ConfigurationError):
            self.controller.start()


if __name__ == "__main__":
    unittest.main()
