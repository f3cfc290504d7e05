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

"""Keyboard injection through pynput"""

import logging
import threading

from .errors import CommandParseError

logger = logging.getLogger(__name__)

# X11 keysyms for the numpad; pynput has no Key members for them
NUMPAD_KEYSYMS = {
    "kp_{}".format(d): 0xFFB0 + d for d in range(10)
}
NUMPAD_KEYSYMS.update({
    "kp_add": 0xFFAB,
    "kp_subtract": 0xFFAD,
    "kp_multiply": 0xFFAA,
    "kp_divide": 0xFFAF,
    "kp_enter": 0xFF8D,
    "kp_decimal": 0xFFAE,
})

# canonical name -> pynput Key member name, where they differ
_KEY_MEMBERS = {
    "super": "cmd",
}


class KeyboardInjector:
    """
    Types text and presses hotkeys on the desktop

    pynput picks its backend when imported and needs a running display
    server for that, so the import happens on first use.
    """

    def __init__(self, controller=None):
        self._controller = controller
        self._lock = threading.Lock()

    @property
    def controller(self):
        if self._controller is None:
            from pynput.keyboard import Controller
            self._controller = Controller()
        return self._controller

    def resolve(self, name):
        """Canonical key name -> pynput key"""
        from pynput.keyboard import Key, KeyCode

        if len(name) == 1:
            return name
        if name in NUMPAD_KEYSYMS:
            return KeyCode.from_vk(NUMPAD_KEYSYMS[name])
        member = _KEY_MEMBERS.get(name, name)
        try:
            return Key[member]
        except KeyError:
            raise CommandParseError("Key {!r} is not available on this platform".format(name))

    def type_text(self, text):
        logger.debug("Typing %d characters", len(text))
        with self._lock:
            self.controller.type(text)

    def send_hotkey(self, hotkey):
        """
        Press modifiers, tap the key, release modifiers in reverse order

        Every key is resolved before anything is pressed, so an unknown key
        never leaves a modifier held down.
        """
        modifiers = [self.resolve(m) for m in sorted(hotkey.modifiers)]
        key = self.resolve(hotkey.key)
        logger.debug("Hotkey %s", "+".join(sorted(hotkey.modifiers) + [hotkey.key]))

        keyboard = self.controller
        with self._lock:
            pressed = []
            try:
                for mod in modifiers:
                    keyboard.press(mod)
                    pressed.append(mod)
                keyboard.press(key)
                keyboard.release(key)
            finally:
                for mod in reversed(pressed):
                    keyboard.release(mod)
