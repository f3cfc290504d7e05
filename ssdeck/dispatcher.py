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
Command dispatch

The key listener only enqueues key ids. A single worker thread looks up the
pressed button on the active page, parses its command once and routes it.
Anything slow runs elsewhere: shell commands in their own process, macros on
the TaskScheduler, OBS / Twitch calls on a small thread pool.
"""

import logging
import queue
import subprocess
import threading
import webbrowser
from concurrent.futures import ThreadPoolExecutor

from .commands import (
    NAVIGATION, Delay, GoToPage, Hotkey, Invalid, Multi, NextPage, Noop,
    ObsCommand, OpenUrl, PrevPage, Shell, TwitchCommand, TypeText, Widget,
    parse_command,
)
from .errors import DeckError, IntegrationAuthError, IntegrationError
from .injector import KeyboardInjector
from .macro import MacroSequencer, TaskScheduler
from .widgets import WidgetStates

logger = logging.getLogger(__name__)


class ShellRunner:
    """Starts shell commands without waiting for them"""

    def __init__(self, popen=subprocess.Popen):
        self.popen = popen

    def run(self, command):
        logger.info("Running: %s", command)
        try:
            process = self.popen(command, shell=True, stdin=subprocess.DEVNULL)
        except OSError as e:
            logger.error("Could not start %r: %s", command, e)
            return None
        threading.Thread(target=self._watch, args=(command, process),
                         name="shell-watch", daemon=True).start()
        return process

    def _watch(self, command, process):
        code = process.wait()
        if code != 0:
            logger.warning("Command %r exited with status %s", command, code)


class Dispatcher:
    """
    Routes button commands

    Args:
        model: PageModel
        injector: KeyboardInjector for __TYPE_ / __KEY_
        states: WidgetStates shared with the widget scheduler
        obs: ObsClient or None when the integration is off
        twitch: TwitchClient or None when the integration is off
        shell: ShellRunner
        open_url: callable(url)
        on_widget_pressed: callable(page_index, key_id) after a widget
            changed its state, so its key can be redrawn right away
    """

    def __init__(self, model, injector=None, states=None, obs=None, twitch=None,
                 shell=None, open_url=webbrowser.open, on_widget_pressed=None,
                 tasks=None):
        self.model = model
        self.injector = injector or KeyboardInjector()
        self.states = states or WidgetStates()
        self.obs = obs
        self.twitch = twitch
        self.shell = shell or ShellRunner()
        self.open_url = open_url
        self.on_widget_pressed = on_widget_pressed
        self.tasks = tasks or TaskScheduler()
        self.macros = MacroSequencer(self.tasks, self.execute)
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="integration")
        self._queue = queue.Queue()
        self._thread = None

    def start(self):
        self.tasks.start()
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._run, name="dispatcher", daemon=True)
            self._thread.start()

    def stop(self, timeout=1.0):
        self.macros.cancel_all()
        self._queue.put(None)
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        self.tasks.stop()
        self._pool.shutdown(wait=False, cancel_futures=True)

    def submit(self, key_id):
        """Queue a key press; safe to call from the listener thread"""
        self._queue.put(key_id)

    def _run(self):
        while True:
            key_id = self._queue.get()
            if key_id is None:
                return
            self.handle_key(key_id)

    def handle_key(self, key_id):
        config = self.model.config
        page_index = config.current_page
        button = config.active_page.button(key_id)
        command = parse_command(button.command)
        logger.debug("Key %d on page %d: %r", key_id, page_index, command)
        self._safe_execute(command, (page_index, key_id))

    def run_command(self, text):
        """
        Run a command string that is not bound to a key

        Page navigation only makes sense for a pressed key and is ignored.
        """
        command = parse_command(text)
        if isinstance(command, NAVIGATION):
            logger.info("Ignoring navigation command %r outside a key press", text)
            return
        self._safe_execute(command, None)

    def _safe_execute(self, command, origin):
        try:
            self.execute(command, origin)
        except DeckError as e:
            logger.error("%s failed: %s", type(command).__name__, e)
        except Exception:
            logger.exception("%s failed", type(command).__name__)

    def execute(self, command, origin=None):
        """
        Route one parsed command

        Args:
            command: Command from parse_command
            origin: (page_index, key_id) of the key it came from, or None
        """
        match command:
            case Noop():
                pass
            case NextPage():
                self.model.next_page()
            case PrevPage():
                self.model.prev_page()
            case GoToPage(index=None):
                logger.debug("Page token without a number, nothing to do")
            case GoToPage(index=index):
                if not self.model.go_to_page(index):
                    logger.debug("Page %d not switched to", index)
            case OpenUrl(url=url):
                if not self.open_url(url):
                    logger.warning("No browser could open %s", url)
            case TypeText(text=text):
                self.injector.type_text(text)
            case Hotkey():
                self.injector.send_hotkey(command)
            case Multi():
                self.macros.start(command, origin)
            case Delay():
                logger.debug("Delay outside a macro ignored")
            case Widget():
                self._press_widget(command, origin)
            case ObsCommand():
                self._integration("OBS", self.obs, command)
            case TwitchCommand():
                self._integration("Twitch", self.twitch, command)
            case Shell(command=text):
                self.shell.run(text)
            case Invalid(text=text, reason=reason):
                logger.warning("Invalid command %r: %s", text, reason)

    def _press_widget(self, widget, origin):
        if not widget.interactive or origin is None:
            return
        page_index, key_id = origin
        timer = self.states.timer(page_index, key_id, widget.minutes)
        timer.press()
        if self.on_widget_pressed:
            self.on_widget_pressed(page_index, key_id)

    def _integration(self, name, client, command):
        if client is None:
            logger.warning("%s integration is disabled, ignoring %s", name, command.action.value)
            return None
        future = self._pool.submit(client.execute, command)
        future.add_done_callback(lambda f: self._integration_done(name, command, f))
        return future

    def _integration_done(self, name, command, future):
        if future.cancelled():
            return
        e = future.exception()
        if e is None:
            logger.debug("%s %s done", name, command.action.value)
        elif isinstance(e, IntegrationAuthError):
            logger.error("%s rejected our credentials, please re-authenticate: %s", name, e)
        elif isinstance(e, IntegrationError):
            logger.warning("%s %s failed: %s", name, command.action.value, e)
        else:
            logger.error("%s %s crashed", name, command.action.value, exc_info=e)
