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
Widget scheduler

Once a second every widget key of the active page is recomputed and
rendered; the key is only written to the deck when its bitmap differs from
the one written last time.
"""

import logging
import threading

from .commands import widget_of
from .errors import TransferError

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0


class WidgetScheduler:
    """
    Args:
        model: PageModel
        session: DeviceSession
        renderer: Renderer
        formatter: WidgetFormatter
        interval: seconds between ticks
    """

    def __init__(self, model, session, renderer, formatter, interval=TICK_INTERVAL):
        self.model = model
        self.session = session
        self.renderer = renderer
        self.formatter = formatter
        self.interval = interval
        self._last = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="widget-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout=2.0):
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Widget tick failed")

    @staticmethod
    def widget_keys(page):
        """(key_id, button, widget) for every widget button of a page"""
        keys = []
        for key_id in sorted(page.buttons):
            button = page.buttons[key_id]
            widget = widget_of(button.command)
            if widget is not None:
                keys.append((key_id, button, widget))
        return keys

    def tick(self):
        """
        Redraw changed widget keys of the active page

        Returns:
            number of keys written
        """
        config = self.model.config
        return self._update(config.current_page, config.active_page, force=False)

    def activate_page(self, page_index=None):
        """Write every widget key of a page that just became visible"""
        config = self.model.config
        if page_index is None:
            page_index = config.current_page
        if page_index != config.current_page:
            return 0
        return self._update(page_index, config.active_page, force=True)

    def refresh_key(self, page_index, key_id):
        """Redraw one widget key right away, e.g. after its timer was pressed"""
        config = self.model.config
        if page_index != config.current_page:
            return False
        button = config.active_page.button(key_id)
        widget = widget_of(button.command)
        if widget is None:
            return False
        with self._lock:
            return self._update_key(page_index, key_id, button, widget, force=True)

    def forget(self, page_index, key_id):
        with self._lock:
            self._last.pop((page_index, key_id), None)

    def reset(self):
        """Forget what is on the deck, e.g. after a reconnect"""
        with self._lock:
            self._last.clear()

    def _update(self, page_index, page, force):
        if not self.session.valid:
            return 0
        written = 0
        with self._lock:
            for key_id, button, widget in self.widget_keys(page):
                if self._update_key(page_index, key_id, button, widget, force):
                    written += 1
        return written

    def _update_key(self, page_index, key_id, button, widget, force):
        view = self.formatter.view(widget, page_index, key_id, button)
        image = self.renderer.render(view.text, view.color or button.color)
        data = image.tobytes()
        slot = (page_index, key_id)
        if not force and self._last.get(slot) == data:
            return False
        # page may have changed while rendering; load_page draws under the same lock
        with self.session:
            if not self.session.valid:
                logger.debug("Session gone, dropping widget write for key %d", key_id)
                return False
            if self.model.active_index != page_index:
                logger.debug("Page %d no longer active, dropping widget write for key %d", page_index, key_id)
                return False
            try:
                self.session.write_key_image(key_id, image)
            except TransferError as e:
                logger.warning("Widget write for key %d dropped: %s", key_id, e)
                return False
        self._last[slot] = data
        return True
