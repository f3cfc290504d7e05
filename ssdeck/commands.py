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
Button command grammar

A button's command string is parsed exactly once into one of the command
types below. Anything that is not a recognized ``__TOKEN__`` falls through
to Shell, including malformed tokens such as ``__TIMER_x__``.

    __NEXT_PAGE__ / __PREV_PAGE__ / __PAGE_<n>__    page navigation
    __URL_<address>                                 open URL
    __TYPE_<text>                                   type text
    __KEY_<mod>+<mod>+<key>                         send hotkey
    __MULTI_<step>;;<step>;;...                     macro
    __DELAY_<ms>                                    macro pause
    __CLOCK__ __CLOCK_S__ __DATE__ __DATE_FULL__
    __WEEKDAY__ __CPU__ __RAM__ __TEMP__
    __TIMER_<minutes>__ __OBS_STATUS__
    __TWITCH_VIEWERS__ __TWITCH_FOLLOWERS__         widgets
    __OBS_STREAM__ __OBS_RECORD__ __OBS_MUTE__
    __OBS_SCENE_<name>                              OBS
    __TWITCH_CLIP__ __TWITCH_AD_<seconds>__
    __TWITCH_CHAT_<message>                         Twitch
    anything else                                   shell command
"""

import re
import string
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Optional, Tuple

from .errors import CommandParseError

STEP_SEPARATOR = ";;"


class WidgetKind(Enum):
    CLOCK = "__CLOCK__"
    CLOCK_S = "__CLOCK_S__"
    DATE = "__DATE__"
    DATE_FULL = "__DATE_FULL__"
    WEEKDAY = "__WEEKDAY__"
    CPU = "__CPU__"
    RAM = "__RAM__"
    TEMP = "__TEMP__"
    TIMER = "__TIMER_"
    OBS_STATUS = "__OBS_STATUS__"
    TWITCH_VIEWERS = "__TWITCH_VIEWERS__"
    TWITCH_FOLLOWERS = "__TWITCH_FOLLOWERS__"


class ObsAction(Enum):
    STREAM = "stream"
    RECORD = "record"
    MUTE = "mute"
    SCENE = "scene"


class TwitchAction(Enum):
    CLIP = "clip"
    AD = "ad"
    CHAT = "chat"


class Command:
    """Base for every parsed command"""


@dataclass(frozen=True)
class Noop(Command):
    pass


@dataclass(frozen=True)
class NextPage(Command):
    pass


@dataclass(frozen=True)
class PrevPage(Command):
    pass


@dataclass(frozen=True)
class GoToPage(Command):
    # None for __PAGE_<garbage>__: still navigation, just a no-op
    index: Optional[int]


@dataclass(frozen=True)
class OpenUrl(Command):
    url: str


@dataclass(frozen=True)
class TypeText(Command):
    text: str


@dataclass(frozen=True)
class Hotkey(Command):
    modifiers: FrozenSet[str]
    key: str


@dataclass(frozen=True)
class Multi(Command):
    steps: Tuple[Command, ...]


@dataclass(frozen=True)
class Delay(Command):
    ms: int


@dataclass(frozen=True)
class Widget(Command):
    kind: WidgetKind
    minutes: Optional[int] = None

    @property
    def interactive(self):
        return self.kind is WidgetKind.TIMER


@dataclass(frozen=True)
class ObsCommand(Command):
    action: ObsAction
    scene: Optional[str] = None


@dataclass(frozen=True)
class TwitchCommand(Command):
    action: TwitchAction
    argument: Optional[str] = None


@dataclass(frozen=True)
class Shell(Command):
    command: str


@dataclass(frozen=True)
class Invalid(Command):
    text: str
    reason: str


NAVIGATION = (NextPage, PrevPage, GoToPage)


# Hotkey vocabulary: spelling accepted in a combo -> canonical name

MODIFIERS = {
    "ctrl": "ctrl", "control": "ctrl",
    "shift": "shift",
    "alt": "alt",
    "altgr": "alt_gr",
    "super": "super", "win": "super", "meta": "super", "cmd": "super",
}

KEYS = {}
KEYS.update({c: c for c in string.ascii_lowercase})
KEYS.update({d: d for d in string.digits})
KEYS.update({"f{}".format(n): "f{}".format(n) for n in range(1, 21)})
KEYS.update({
    "up": "up", "down": "down", "left": "left", "right": "right",
    "home": "home", "end": "end",
    "pageup": "page_up", "pgup": "page_up",
    "pagedown": "page_down", "pgdn": "page_down",
    "insert": "insert", "ins": "insert",
    "delete": "delete", "del": "delete",
    "backspace": "backspace",
    "tab": "tab",
    "enter": "enter", "return": "enter",
    "esc": "esc", "escape": "esc",
    "space": "space",
    "capslock": "caps_lock",
    "printscreen": "print_screen", "print": "print_screen",
    "pause": "pause",
    "menu": "menu",
    "numlock": "num_lock",
    "scrolllock": "scroll_lock",
    # media
    "volumeup": "media_volume_up", "volup": "media_volume_up",
    "volumedown": "media_volume_down", "voldown": "media_volume_down",
    "mute": "media_volume_mute", "volumemute": "media_volume_mute",
    "playpause": "media_play_pause", "play": "media_play_pause",
    "next": "media_next", "nexttrack": "media_next",
    "prev": "media_previous", "previous": "media_previous", "prevtrack": "media_previous",
})
# numpad
KEYS.update({"num{}".format(d): "kp_{}".format(d) for d in string.digits})
KEYS.update({"kp{}".format(d): "kp_{}".format(d) for d in string.digits})
KEYS.update({
    "numadd": "kp_add", "numplus": "kp_add",
    "numsub": "kp_subtract", "numminus": "kp_subtract",
    "nummul": "kp_multiply",
    "numdiv": "kp_divide",
    "numenter": "kp_enter",
    "numdecimal": "kp_decimal", "numdot": "kp_decimal",
})


def parse_hotkey(combo):
    """
    Parse a ``+`` joined key combo

    Every token but the last must be a modifier; the last one is the key
    (which may itself be a modifier, e.g. ``super``).

    Returns:
        Hotkey

    Raises:
        CommandParseError: empty combo or unknown token
    """
    tokens = [t.strip().lower() for t in combo.split("+")]
    if not tokens or any(not t for t in tokens):
        raise CommandParseError("Empty key in combo {!r}".format(combo))

    *mods, last = tokens
    modifiers = set()
    for token in mods:
        if token not in MODIFIERS:
            raise CommandParseError("Unknown modifier {!r} in combo {!r}".format(token, combo))
        modifiers.add(MODIFIERS[token])

    if last in KEYS:
        key = KEYS[last]
    elif last in MODIFIERS:
        key = MODIFIERS[last]
    else:
        raise CommandParseError("Unknown key {!r} in combo {!r}".format(last, combo))
    return Hotkey(frozenset(modifiers), key)


_EXACT = {
    "__NEXT_PAGE__": NextPage(),
    "__PREV_PAGE__": PrevPage(),
    "__OBS_STREAM__": ObsCommand(ObsAction.STREAM),
    "__OBS_RECORD__": ObsCommand(ObsAction.RECORD),
    "__OBS_MUTE__": ObsCommand(ObsAction.MUTE),
    "__TWITCH_CLIP__": TwitchCommand(TwitchAction.CLIP),
}
_EXACT.update({kind.value: Widget(kind) for kind in WidgetKind if kind is not WidgetKind.TIMER})

_PAGE_RE = re.compile(r"^__PAGE_(.*)__$")
_TIMER_RE = re.compile(r"^__TIMER_(\d+)__$")
_AD_RE = re.compile(r"^__TWITCH_AD_(\d+)__$")
_DELAY_RE = re.compile(r"^__DELAY_(\d+)(?:__)?$")


@lru_cache(maxsize=512)
def parse_command(text, nested=False):
    """
    Classify a command string

    Args:
        text: the button's command
        nested: True when parsing a step of a MULTI sequence

    Returns:
        exactly one Command instance
    """
    if not text or not text.strip():
        return Noop()

    if text in _EXACT:
        return _EXACT[text]

    m = _PAGE_RE.match(text)
    if m:
        return GoToPage(int(m.group(1)) if m.group(1).isdigit() else None)

    m = _TIMER_RE.match(text)
    if m and int(m.group(1)) > 0:
        return Widget(WidgetKind.TIMER, int(m.group(1)))

    m = _AD_RE.match(text)
    if m:
        return TwitchCommand(TwitchAction.AD, m.group(1))

    m = _DELAY_RE.match(text)
    if m:
        return Delay(int(m.group(1)))

    if text.startswith("__MULTI_"):
        if nested:
            return Invalid(text, "MULTI cannot be nested inside MULTI")
        return parse_multi(text[len("__MULTI_"):])

    for prefix, build in _PREFIXED:
        if text.startswith(prefix) and len(text) > len(prefix):
            payload = text[len(prefix):]
            try:
                return build(payload)
            except CommandParseError as e:
                return Invalid(text, str(e))

    return Shell(text)


def parse_multi(payload):
    steps = tuple(
        parse_command(step, nested=True)
        for step in payload.split(STEP_SEPARATOR)
        if step.strip()
    )
    return Multi(steps)


_PREFIXED = (
    ("__URL_", OpenUrl),
    ("__TYPE_", TypeText),
    ("__KEY_", parse_hotkey),
    ("__OBS_SCENE_", lambda name: ObsCommand(ObsAction.SCENE, name)),
    ("__TWITCH_CHAT_", lambda message: TwitchCommand(TwitchAction.CHAT, message)),
)


def widget_of(text):
    """The Widget a command string stands for, or None"""
    command = parse_command(text)
    return command if isinstance(command, Widget) else None
