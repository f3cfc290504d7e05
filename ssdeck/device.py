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
Device level operations on top of the raw transport

DeviceSession is the only owner of the USB handle. Every transfer goes
through its lock, so widget refreshes and page reloads never interleave
mid-image. Callers that need several operations to stay together can
hold the session::

    with session:
        session.clear_all()
        session.write_key_image(1, image)
"""

import logging
import threading
from dataclasses import dataclass

from . import codec
from .errors import DeviceDisconnected
from .transport import Transport

logger = logging.getLogger(__name__)

KEY_COUNT = 15
WRITE_TIMEOUT_MS = 1000
READ_TIMEOUT_MS = 100


@dataclass(frozen=True)
class KeyEvent:
    key_id: int
    pressed: bool


class DeviceSession:
    """
    Serialized access to one deck

    Args:
        transport: Transport to use (a fresh one if omitted)
    """

    def __init__(self, transport=None):
        self.transport = transport or Transport()
        self._lock = threading.RLock()
        self._valid = False

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()
        return False

    @property
    def valid(self):
        return self._valid

    def key_count(self):
        return KEY_COUNT

    def open(self):
        """Open the transport; raises DeviceNotFound / DeviceBusy / DeviceAccessDenied"""
        with self._lock:
            self.transport.open()
            self._valid = True

    def invalidate(self):
        """
        Mark the handle as unusable without waiting for the lock

        Writes issued afterwards fail immediately instead of queueing on a
        dead handle.
        """
        self._valid = False

    def close(self):
        self._valid = False
        with self._lock:
            self.transport.close()

    def _send(self, packets):
        if not self._valid:
            raise DeviceDisconnected("Deck session is closed")
        with self._lock:
            try:
                for packet in packets:
                    self.transport.write(packet, timeout=WRITE_TIMEOUT_MS)
            except DeviceDisconnected:
                self._valid = False
                raise

    def write_key_image(self, key_id, image):
        """
        Show image on key_id

        Args:
            key_id: logical key id 1..KEY_COUNT
            image: PIL.Image, any size
        """
        if not 1 <= key_id <= KEY_COUNT:
            raise ValueError("Key id out of range: {}".format(key_id))
        packets = codec.encode(key_id, image)
        self._send(packets)
        logger.debug("Key %d updated (%d packets)", key_id, len(packets))

    def set_brightness(self, percent):
        self._send([codec.brightness_packet(percent)])
        logger.debug("Brightness %d%% -> level %d", percent, codec.brightness_level(percent))

    def wake(self):
        self._send([codec.wake_packet()])

    def clear_all(self):
        self._send([codec.clear_packet()])

    def clear_key(self, key_id):
        self._send([codec.clear_packet(key_id), codec.refresh_packet()])

    def poll_key_event(self, timeout=READ_TIMEOUT_MS):
        """
        Wait up to timeout ms for a key report

        The lock is waited on for at most one write timeout, so a stalled
        write delays polling but never blocks it for good.

        Returns:
            KeyEvent, or None on timeout
        """
        if not self._valid:
            raise DeviceDisconnected("Deck session is closed")
        if not self._lock.acquire(timeout=WRITE_TIMEOUT_MS / 1000.0):
            return None
        try:
            report = self.transport.read(512, timeout=timeout)
        except DeviceDisconnected:
            self._valid = False
            raise
        finally:
            self._lock.release()

        if report is None:
            return None
        decoded = codec.decode_key_report(report)
        if decoded is None:
            logger.debug("Ignoring short report (%d bytes)", len(report))
            return None
        key_id, pressed = decoded
        return KeyEvent(key_id, pressed)

