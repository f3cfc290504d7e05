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

"""Background thread that turns key reports into press callbacks"""

import logging
import threading
import time
from enum import Enum

from .errors import DeviceDisconnected, TransferError

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = 3


class ListenerState(Enum):
    IDLE = 0
    POLLING = 1
    STOPPED = 2


class KeyListener:
    """
    Poll the deck for key events on a dedicated thread

    Args:
        session: DeviceSession to read from
        on_press: called with the key id of every press; must not block
        on_stopped: called once when the loop gives up on the device
        poll_timeout: milliseconds per read
        idle_sleep: seconds to sleep between reads so writers get the handle
    """

    def __init__(self, session, on_press, on_stopped=None, poll_timeout=100, idle_sleep=0.01):
        self.session = session
        self.on_press = on_press
        self.on_stopped = on_stopped
        self.poll_timeout = poll_timeout
        self.idle_sleep = idle_sleep
        self.state = ListenerState.IDLE
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        self._stop.clear()
        self.state = ListenerState.IDLE
        self._thread = threading.Thread(target=self.run, name="key-listener", daemon=True)
        self._thread.start()

    def stop(self, timeout=1.0):
        """Ask the loop to end without signalling on_stopped"""
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def run(self):
        errors = 0
        logger.info("Listening for key presses")

        while not self._stop.is_set():
            self.state = ListenerState.POLLING
            try:
                event = self.session.poll_key_event(self.poll_timeout)
            except DeviceDisconnected as e:
                logger.warning("Deck disconnected: %s", e)
                self._give_up()
                return
            except TransferError as e:
                errors += 1
                logger.warning("Key read failed (%d/%d): %s", errors, MAX_CONSECUTIVE_ERRORS, e)
                if errors >= MAX_CONSECUTIVE_ERRORS:
                    self._give_up()
                    return
                self.state = ListenerState.IDLE
                continue

            errors = 0
            if event is not None:
                logger.debug("Key %d = %s", event.key_id, event.pressed)
                if event.pressed:
                    try:
                        self.on_press(event.key_id)
                    except Exception:
                        logger.exception("Press handler failed for key %d", event.key_id)

            self.state = ListenerState.IDLE
            if self.idle_sleep:
                time.sleep(self.idle_sleep)

        self.state = ListenerState.STOPPED

    def _give_up(self):
        self.state = ListenerState.STOPPED
        if self._stop.is_set():
            return
        if self.on_stopped:
            try:
                self.on_stopped()
            except Exception:
                logger.exception("Listener stop handler failed")
