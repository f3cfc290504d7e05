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
Application wiring

DeckApp owns the one DeviceSession and the one PageModel and connects the
rest: the key listener feeds the dispatcher, model changes redraw the deck
and are saved, and a supervisor loop reopens the deck whenever it goes
away.
"""

import logging
import threading
from dataclasses import replace

from .commands import WidgetKind, widget_of
from .device import KEY_COUNT, DeviceSession
from .dispatcher import Dispatcher
from .errors import DeviceAccessDenied, DeviceBusy, DeviceNotFound, TransferError
from .listener import KeyListener
from .model import ChangeKind, ConfigStore, PageModel
from .obs import ObsClient
from .render import Renderer
from .scheduler import WidgetScheduler
from .twitch import TwitchClient
from .widgets import WidgetFormatter, WidgetStates

logger = logging.getLogger(__name__)

NOT_FOUND_RETRY = 2.0
BUSY_RETRY = 10.0


class DeckApp:
    """
    Args:
        settings: Settings
        session: DeviceSession (a fresh one if omitted)
        store: ConfigStore for the layout, None to keep it in memory only
        renderer: Renderer
        injector: KeyboardInjector passed to the dispatcher
        obs: ObsClient, created from settings when omitted and enabled
        twitch: TwitchClient, created from settings when omitted and enabled
        sampler: SystemSampler for the widgets
    """

    def __init__(self, settings, session=None, store=None, renderer=None, injector=None,
                 obs=None, twitch=None, sampler=None):
        self.settings = settings
        self.store = store
        config = store.load() if store else None
        if config is not None and settings.brightness is not None:
            config = replace(config, brightness=settings.brightness)
        self.model = PageModel(config)

        self.session = session or DeviceSession()
        self.renderer = renderer or Renderer(settings.icons_path)
        if obs is None and settings.obs.enabled:
            obs = ObsClient(settings.obs)
        if twitch is None and settings.twitch.enabled:
            twitch = TwitchClient(settings.twitch)
        self.obs = obs
        self.twitch = twitch

        self.states = WidgetStates()
        self.formatter = WidgetFormatter(self.states, sampler, obs, twitch)
        self.widgets = WidgetScheduler(self.model, self.session, self.renderer, self.formatter)
        self.dispatcher = Dispatcher(self.model, injector, self.states, obs, twitch,
                                     on_widget_pressed=self.widgets.refresh_key)
        self.listener = None

        self._stop = threading.Event()
        self._lost = threading.Event()
        self.model.subscribe(self._on_change)

    @classmethod
    def from_settings(cls, settings):
        return cls(settings, store=ConfigStore(settings.layout_path))

    # Lifecycle

    def start(self):
        """Start everything that does not need the deck"""
        self.dispatcher.start()
        self.widgets.start()
        if self.obs:
            self.obs.start()

    def run(self):
        """Start and keep the deck connected until shutdown()"""
        self.start()
        self.supervise()

    def supervise(self):
        while not self._stop.is_set():
            delay = self.connect()
            if delay is None:
                self._lost.wait()
                self._lost.clear()
                if self._stop.is_set():
                    break
                self._disconnected()
                delay = NOT_FOUND_RETRY
            self._stop.wait(delay)

    def connect(self):
        """
        Try to open the deck once

        Returns:
            None when connected, otherwise seconds to wait before retrying
        """
        try:
            self.session.open()
        except DeviceNotFound:
            logger.debug("Deck not found, retrying in %ss", NOT_FOUND_RETRY)
            return NOT_FOUND_RETRY
        except DeviceBusy as e:
            logger.error("%s. Close the program using the deck; retrying in %ss", e, BUSY_RETRY)
            return BUSY_RETRY
        except DeviceAccessDenied as e:
            logger.error("%s. Install the udev rule (ssdeck --udev-rule); retrying in %ss", e, BUSY_RETRY)
            return BUSY_RETRY
        except TransferError as e:
            logger.warning("Could not open deck: %s", e)
            return NOT_FOUND_RETRY

        logger.info("Deck connected")
        self._lost.clear()
        self.widgets.reset()
        self.load_page()
        self.listener = KeyListener(self.session, self.dispatcher.submit, on_stopped=self._lost.set)
        self.listener.start()
        return None

    def _disconnected(self):
        logger.warning("Deck lost, waiting for it to come back")
        self.session.invalidate()
        self.dispatcher.macros.cancel_all()
        if self.listener:
            self.listener.stop()
            self.listener = None
        self.session.close()

    def shutdown(self):
        if self._stop.is_set():
            return
        logger.info("Shutting down")
        self._stop.set()
        self._lost.set()
        if self.listener:
            self.listener.stop()
            self.listener = None
        self.widgets.stop()
        self.dispatcher.stop()
        if self.obs:
            self.obs.close()
        if self.twitch:
            self.twitch.close()
        if self.session.valid:
            try:
                self.session.clear_all()
            except TransferError as e:
                logger.debug("Could not blank deck: %s", e)
        self.session.close()

    # Drawing

    def load_page(self):
        """
        Draw the whole active page

        Wake, clear, brightness, then every static key that shows anything;
        widget keys are drawn by the widget scheduler right after.
        """
        if not self.session.valid:
            return False
        config = self.model.config
        page = config.active_page
        try:
            with self.session:
                self.session.wake()
                self.session.clear_all()
                self.session.set_brightness(config.brightness)
                for key_id in range(1, KEY_COUNT + 1):
                    button = page.button(key_id)
                    if button.is_blank() or widget_of(button.command):
                        continue
                    self.session.write_key_image(key_id, self.renderer.render_button(button))
        except TransferError as e:
            logger.warning("Loading page %r failed: %s", page.name, e)
            if not self.session.valid:
                self._lost.set()
            return False
        logger.debug("Page %d (%s) loaded", config.current_page, page.name)
        self.widgets.activate_page(config.current_page)
        return True

    def refresh(self):
        """Redraw the active page, e.g. after the layout was edited elsewhere"""
        self.widgets.reset()
        return self.load_page()

    def draw_key(self, page_index, key_id, button):
        if not self.session.valid or page_index != self.model.active_index:
            return
        if widget_of(button.command):
            self.widgets.forget(page_index, key_id)
            self.widgets.refresh_key(page_index, key_id)
            return
        try:
            if button.is_blank():
                self.session.clear_key(key_id)
            else:
                self.session.write_key_image(key_id, self.renderer.render_button(button))
        except TransferError as e:
            logger.warning("Key %d not updated: %s", key_id, e)

    def run_command(self, text):
        self.dispatcher.run_command(text)

    def status(self):
        config = self.model.config
        return {
            "connected": self.session.valid,
            "page": config.current_page,
            "page_name": config.active_page.name,
            "pages": len(config.pages),
            "brightness": config.brightness,
            "obs": self.obs.status().connected if self.obs else None,
        }

    # Model changes

    def _on_change(self, change):
        if self.store:
            self.store.save(self.model.config)

        match change.kind:
            case ChangeKind.BRIGHTNESS:
                if self.session.valid:
                    try:
                        self.session.set_brightness(self.model.config.brightness)
                    except TransferError as e:
                        logger.warning("Brightness not set: %s", e)
            case ChangeKind.BUTTON:
                self._button_changed(change)
            case ChangeKind.PAGE_DELETED:
                self.states.drop_page(change.page_index)
                self.widgets.reset()
                if change.touches_active:
                    self.load_page()
            case ChangeKind.PAGE_CLEARED:
                self.states.clear_page(change.page_index)
                if change.touches_active:
                    self.refresh()
            case ChangeKind.REPLACED:
                self.states.clear()
                self.refresh()
            case ChangeKind.ACTIVE_PAGE:
                self.load_page()

    def _button_changed(self, change):
        old = widget_of(change.old_button.command) if change.old_button else None
        new = widget_of(change.new_button.command)
        if old and old.kind is WidgetKind.TIMER and old != new:
            self.states.discard(change.page_index, change.key_id)
        self.widgets.forget(change.page_index, change.key_id)
        if change.touches_active:
            self.draw_key(change.page_index, change.key_id, change.new_button)
