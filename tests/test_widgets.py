import unittest
from datetime import datetime
from unittest.mock import MagicMock

from ssdeck.commands import Widget, WidgetKind
from ssdeck.model import ButtonConfig
from ssdeck.obs import ObsStatus
from ssdeck.widgets import (
    COLOR_LIVE, COLOR_OFFLINE, TimerMode, TimerState, WidgetFormatter, WidgetStates, format_seconds,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTimer(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.timer = TimerState(5, self.clock)

    def test_idle(self):
        self.assertEqual(self.timer.mode, TimerMode.IDLE)
        self.assertEqual(self.timer.remaining, 300)
        self.assertEqual(self.timer.text("Tea"), "Tea")
        self.assertEqual(self.timer.text(), "5:00")

    def test_press_starts_countdown(self):
        self.assertEqual(self.timer.press(), TimerMode.RUNNING)
        self.clock.advance(61)
        self.assertEqual(self.timer.remaining, 239)
        self.assertEqual(self.timer.text(), "3:59")

    def test_press_pauses_at_current_value(self):
        self.timer.press()
        self.clock.advance(100)
        self.assertEqual(self.timer.press(), TimerMode.PAUSED)
        self.clock.advance(50)
        self.assertEqual(self.timer.remaining, 200)
        self.assertEqual(self.timer.text(), "3:20\npaused")

    def test_resume(self):
        self.timer.press()
        self.clock.advance(100)
        self.timer.press()
        self.clock.advance(30)
        self.timer.press()
        self.clock.advance(10)
        self.assertEqual(self.timer.mode, TimerMode.RUNNING)
        self.assertEqual(self.timer.remaining, 190)

    def test_reaching_zero_reverts_to_idle(self):
        self.timer.press()
        self.clock.advance(299)
        self.assertFalse(self.timer.tick())
        self.clock.advance(2)
        self.assertTrue(self.timer.tick())
        self.assertEqual(self.timer.mode, TimerMode.IDLE)
        self.assertEqual(self.timer.text("Tea"), "Tea")
        self.assertEqual(self.timer.remaining, 300)

    def test_press_after_finish_starts_fresh(self):
        self.timer.press()
        self.clock.advance(400)
        self.timer.tick()
        self.timer.press()
        self.assertEqual(self.timer.remaining, 300)

    def test_format(self):
        self.assertEqual(format_seconds(0), "0:00")
        self.assertEqual(format_seconds(59.2), "1:00")
        self.assertEqual(format_seconds(3600), "60:00")


class TestWidgetStates(unittest.TestCase):
    def setUp(self):
        self.states = WidgetStates(FakeClock())

    def test_timer_is_per_key(self):
        a = self.states.timer(0, 1, 5)
        self.assertIs(self.states.timer(0, 1, 5), a)
        self.assertIsNot(self.states.timer(1, 1, 5), a)

    def test_new_duration_replaces_timer(self):
        a = self.states.timer(0, 1, 5)
        self.assertIsNot(self.states.timer(0, 1, 10), a)

    def test_drop_page_shifts_later_pages(self):
        self.states.timer(0, 1, 1)
        self.states.timer(1, 1, 1)
        later = self.states.timer(2, 4, 1)
        self.states.drop_page(1)
        self.assertEqual(len(self.states), 2)
        self.assertIs(self.states.get_timer(1, 4), later)
        self.assertIsNone(self.states.get_timer(2, 4))

    def test_clear_page(self):
        self.states.timer(0, 1, 1)
        self.states.timer(1, 1, 1)
        self.states.clear_page(0)
        self.assertIsNone(self.states.get_timer(0, 1))
        self.assertEqual(len(self.states), 1)


class TestWidgetFormatter(unittest.TestCase):
    def setUp(self):
        self.sampler = MagicMock()
        self.sampler.cpu_percent.return_value = 12.4
        self.sampler.ram_percent.return_value = 55.6
        self.sampler.temperature.return_value = 48.2
        self.clock = FakeClock()
        self.states = WidgetStates(self.clock)
        self.formatter = WidgetFormatter(self.states, self.sampler,
                                         now=lambda: datetime(2026, 3, 7, 9, 5, 3))
        self.button = ButtonConfig("Label", "")

    def text(self, kind, minutes=None):
        return self.formatter.view(Widget(kind, minutes), 0, 1, self.button).text

    def test_clock_and_date(self):
        self.assertEqual(self.text(WidgetKind.CLOCK), "09:05")
        self.assertEqual(self.text(WidgetKind.CLOCK_S), "09:05:03")
        self.assertEqual(self.text(WidgetKind.DATE), "07/03")
        self.assertEqual(self.text(WidgetKind.DATE_FULL), "07/03/2026")
        self.assertEqual(self.text(WidgetKind.WEEKDAY), "Saturday")

    def test_system(self):
        self.assertEqual(self.text(WidgetKind.CPU), "CPU\n12%")
        self.assertEqual(self.text(WidgetKind.RAM), "RAM\n56%")
        self.assertEqual(self.text(WidgetKind.TEMP), "48°C")
        self.sampler.temperature.return_value = None
        self.assertEqual(self.text(WidgetKind.TEMP), "--")

    def test_timer_uses_key_state(self):
        self.assertEqual(self.text(WidgetKind.TIMER, 2), "Label")
        self.states.timer(0, 1, 2).press()
        self.clock.advance(5)
        self.assertEqual(self.text(WidgetKind.TIMER, 2), "1:55")

    def test_obs_offline_without_client(self):
        view = self.formatter.view(Widget(WidgetKind.OBS_STATUS), 0, 1, self.button)
        self.assertEqual((view.text, view.color), ("OBS\nOFF", COLOR_OFFLINE))

    def test_obs_live(self):
        self.formatter.obs = MagicMock()
        self.formatter.obs.status.return_value = ObsStatus(True, True, False)
        view = self.formatter.view(Widget(WidgetKind.OBS_STATUS), 0, 1, self.button)
        self.assertEqual((view.text, view.color), ("LIVE", COLOR_LIVE))
        self.formatter.obs.status.return_value = ObsStatus(True, False, False)
        self.assertEqual(self.text(WidgetKind.OBS_STATUS), "IDLE")

    def test_twitch(self):
        self.assertEqual(self.text(WidgetKind.TWITCH_VIEWERS), "--\nviewers")
        self.formatter.twitch = MagicMock()
        self.formatter.twitch.cached_metric.return_value = 42
        self.assertEqual(self.text(WidgetKind.TWITCH_FOLLOWERS), "42\nfollowers")
        self.formatter.twitch.cached_metric.assert_called_with("followers")


if __name__ == '__main__':
    unittest.main()
