###############################################################
#
# ssdeck – Redragon SS-550 stream deck driver for Linux
#
# Copyright (C) 2026 the ssdeck authors
#
# This project is based on HalDeck by Peter Damerau
# https://www.talla83.de
#
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
###############################################################

"""
Live widget content

Widgets are buttons whose text is recomputed every tick instead of being
read from the layout: clock and date, CPU / RAM / temperature, a per-key
countdown timer and OBS / Twitch status. Runtime state (timers) lives in
WidgetStates, keyed by (page index, key id); it is created the first time a
widget key is drawn and dropped when the button stops being a widget.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import psutil

from .commands import WidgetKind

logger = logging.getLogger(__name__)

COLOR_LIVE = "#c0392b"
COLOR_RECORDING = "#d35400"
COLOR_OFFLINE = "#333333"

# Preferred sensors, most specific first
TEMP_SENSORS = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "acpitz")


class TimerMode(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


def format_seconds(seconds):
    """Remaining seconds as M:SS, rounding partial seconds up"""
    total = max(0, int(math.ceil(seconds)))
    return "{}:{:02}".format(total // 60, total % 60)


class TimerState:
    """
    Countdown behind a __TIMER_<minutes>__ key

    Press while idle starts from the full duration, press while running
    pauses, press while paused resumes. Reaching zero stops the timer and
    returns it to idle.
    """

    def __init__(self, minutes, clock=time.monotonic):
        self.duration = minutes * 60
        self.clock = clock
        self.mode = TimerMode.IDLE
        self._remaining = float(self.duration)
        self._started_at = None

    @property
    def remaining(self):
        if self.mode is TimerMode.RUNNING:
            return max(0.0, self._remaining - (self.clock() - self._started_at))
        return self._remaining

    def press(self):
        if self.mode is TimerMode.IDLE:
            self._remaining = float(self.duration)
            self._start()
        elif self.mode is TimerMode.RUNNING:
            self._remaining = self.remaining
            self.mode = TimerMode.PAUSED
        else:
            self._start()
        logger.debug("Timer %s, %.1fs left", self.mode.value, self.remaining)
        return self.mode

    def _start(self):
        self._started_at = self.clock()
        self.mode = TimerMode.RUNNING

    def tick(self):
        """
        Advance the timer

        Returns:
            True if it just ran out
        """
        if self.mode is TimerMode.RUNNING and self.remaining <= 0:
            self.mode = TimerMode.IDLE
            self._remaining = float(self.duration)
            self._started_at = None
            logger.info("Timer of %s finished", format_seconds(self.duration))
            return True
        return False

    def text(self, label=""):
        if self.mode is TimerMode.IDLE:
            return label or format_seconds(self.duration)
        if self.mode is TimerMode.PAUSED:
            return "{}\npaused".format(format_seconds(self._remaining))
        return format_seconds(self.remaining)


class WidgetStates:
    """Per-key widget state, shared by the dispatcher and the widget scheduler"""

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self._timers = {}
        self._lock = threading.Lock()

    def timer(self, page_index, key_id, minutes):
        with self._lock:
            timer = self._timers.get((page_index, key_id))
            if timer is None or timer.duration != minutes * 60:
                timer = TimerState(minutes, self.clock)
                self._timers[(page_index, key_id)] = timer
            return timer

    def get_timer(self, page_index, key_id):
        with self._lock:
            return self._timers.get((page_index, key_id))

    def discard(self, page_index, key_id):
        with self._lock:
            self._timers.pop((page_index, key_id), None)

    def clear_page(self, page_index):
        with self._lock:
            for key in [k for k in self._timers if k[0] == page_index]:
                del self._timers[key]

    def drop_page(self, page_index):
        """Forget a deleted page and move state of later pages down by one"""
        with self._lock:
            moved = {}
            for (page, key_id), timer in self._timers.items():
                if page < page_index:
                    moved[(page, key_id)] = timer
                elif page > page_index:
                    moved[(page - 1, key_id)] = timer
            self._timers = moved

    def clear(self):
        with self._lock:
            self._timers.clear()

    def __len__(self):
        with self._lock:
            return len(self._timers)


class SystemSampler:
    """CPU, memory and temperature readings through psutil"""

    def __init__(self):
        # The first cpu_percent() call only sets the baseline
        psutil.cpu_percent(interval=None)

    def cpu_percent(self):
        return psutil.cpu_percent(interval=None)

    def ram_percent(self):
        return psutil.virtual_memory().percent

    def temperature(self):
        """
        CPU temperature in degrees C

        Returns:
            float, or None where psutil has no sensor support
        """
        try:
            sensors = psutil.sensors_temperatures()
        except (AttributeError, OSError):
            return None
        if not sensors:
            return None
        for name in TEMP_SENSORS:
            if sensors.get(name):
                return sensors[name][0].current
        first = next(iter(sensors.values()))
        return first[0].current if first else None


@dataclass(frozen=True)
class WidgetView:
    text: str
    color: Optional[str] = None


class WidgetFormatter:
    """
    Computes what a widget key shows right now

    Args:
        states: WidgetStates for timers
        sampler: SystemSampler (or anything with the same methods)
        obs: ObsClient or None
        twitch: TwitchClient or None
        now: callable returning the current datetime
    """

    def __init__(self, states, sampler=None, obs=None, twitch=None, now=datetime.now):
        self.states = states
        self.sampler = sampler or SystemSampler()
        self.obs = obs
        self.twitch = twitch
        self.now = now

    def view(self, widget, page_index, key_id, button):
        kind = widget.kind
        match kind:
            case WidgetKind.CLOCK:
                return WidgetView(self.now().strftime("%H:%M"))
            case WidgetKind.CLOCK_S:
                return WidgetView(self.now().strftime("%H:%M:%S"))
            case WidgetKind.DATE:
                return WidgetView(self.now().strftime("%d/%m"))
            case WidgetKind.DATE_FULL:
                return WidgetView(self.now().strftime("%d/%m/%Y"))
            case WidgetKind.WEEKDAY:
                return WidgetView(self.now().strftime("%A"))
            case WidgetKind.CPU:
                return WidgetView("CPU\n{:.0f}%".format(self.sampler.cpu_percent()))
            case WidgetKind.RAM:
                return WidgetView("RAM\n{:.0f}%".format(self.sampler.ram_percent()))
            case WidgetKind.TEMP:
                temp = self.sampler.temperature()
                return WidgetView("--" if temp is None else "{:.0f}°C".format(temp))
            case WidgetKind.TIMER:
                timer = self.states.timer(page_index, key_id, widget.minutes)
                timer.tick()
                return WidgetView(timer.text(button.label))
            case WidgetKind.OBS_STATUS:
                return self._obs_view()
            case WidgetKind.TWITCH_VIEWERS:
                return self._twitch_view("viewers")
            case WidgetKind.TWITCH_FOLLOWERS:
                return self._twitch_view("followers")
        return WidgetView(button.label)

    def _obs_view(self):
        status = self.obs.status() if self.obs else None
        if status is None or not status.connected:
            return WidgetView("OBS\nOFF", COLOR_OFFLINE)
        if status.streaming and status.recording:
            return WidgetView("LIVE\nREC", COLOR_LIVE)
        if status.streaming:
            return WidgetView("LIVE", COLOR_LIVE)
        if status.recording:
            return WidgetView("REC", COLOR_RECORDING)
        return WidgetView("IDLE")

    def _twitch_view(self, metric):
        value = self.twitch.cached_metric(metric) if self.twitch else None
        return WidgetView("{}\n{}".format("--" if value is None else value, metric))
