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
Pages, buttons and the active page

PageModel owns the one authoritative DeckConfig. The config objects are
immutable: writers build a new config under the model lock and swap it in,
readers just take the current reference and never need the lock.

Layout files use this JSON schema::

    {
      "brightness": 50,
      "currentPage": 0,
      "pages": [
        {"name": "Main",
         "buttons": {"1": {"label": "Web", "command": "firefox",
                           "color": "#1a1a2e", "icon": ""}}}
      ]
    }
"""

import json
import logging
import os
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

KEY_COUNT = 15
DEFAULT_COLOR = "#1a1a2e"
DEFAULT_BRIGHTNESS = 50


@dataclass(frozen=True)
class ButtonConfig:
    label: str = ""
    command: str = ""
    color: str = DEFAULT_COLOR
    icon: str = ""

    def is_blank(self):
        """Nothing worth drawing: no label, no icon, default color"""
        return not self.label and not self.icon and self.color == DEFAULT_COLOR


EMPTY_BUTTON = ButtonConfig()


@dataclass(frozen=True)
class Page:
    name: str
    buttons: Dict[int, ButtonConfig] = field(default_factory=dict)

    def button(self, key_id):
        return self.buttons.get(key_id, EMPTY_BUTTON)


@dataclass(frozen=True)
class DeckConfig:
    brightness: int
    current_page: int
    pages: Tuple[Page, ...]

    @property
    def active_page(self):
        return self.pages[self.current_page]


def empty_page(name, key_count=KEY_COUNT):
    return Page(name, {key_id: EMPTY_BUTTON for key_id in range(1, key_count + 1)})


def default_config(key_count=KEY_COUNT):
    """Layout used on first start and after reset()"""
    page = empty_page("Main", key_count)
    buttons = dict(page.buttons)
    buttons[5] = ButtonConfig(label=">>", command="__NEXT_PAGE__", color="#e94560")
    return DeckConfig(DEFAULT_BRIGHTNESS, 0, (Page(page.name, buttons),))


def _clamp(value, low, high):
    return max(low, min(high, value))


def config_from_dict(data, key_count=KEY_COUNT):
    """
    Build a DeckConfig from the JSON layout schema

    Unknown key ids are dropped, brightness and the page index are clamped,
    and an empty page list falls back to the default layout.
    """
    pages = []
    for index, raw_page in enumerate(data.get("pages") or []):
        buttons = {}
        for raw_key, raw_button in (raw_page.get("buttons") or {}).items():
            try:
                key_id = int(raw_key)
            except (TypeError, ValueError):
                logger.warning("Ignoring button with key id %r on page %d", raw_key, index)
                continue
            if not 1 <= key_id <= key_count:
                logger.warning("Ignoring button %d on page %d (deck has %d keys)", key_id, index, key_count)
                continue
            raw_button = raw_button or {}
            buttons[key_id] = ButtonConfig(
                label=str(raw_button.get("label") or ""),
                command=str(raw_button.get("command") or ""),
                color=str(raw_button.get("color") or DEFAULT_COLOR),
                icon=str(raw_button.get("icon") or ""),
            )
        pages.append(Page(str(raw_page.get("name") or "Page {}".format(index + 1)), buttons))

    if not pages:
        return default_config(key_count)

    try:
        brightness = int(data.get("brightness", DEFAULT_BRIGHTNESS))
    except (TypeError, ValueError):
        brightness = DEFAULT_BRIGHTNESS
    try:
        current = int(data.get("currentPage", 0))
    except (TypeError, ValueError):
        current = 0
    if not 0 <= current < len(pages):
        current = 0

    return DeckConfig(_clamp(brightness, 0, 100), current, tuple(pages))


def config_to_dict(config):
    return {
        "brightness": config.brightness,
        "currentPage": config.current_page,
        "pages": [
            {
                "name": page.name,
                "buttons": {
                    str(key_id): {
                        "label": button.label,
                        "command": button.command,
                        "color": button.color,
                        "icon": button.icon,
                    }
                    for key_id, button in sorted(page.buttons.items())
                },
            }
            for page in config.pages
        ],
    }


class ConfigStore:
    """Load and save the layout file"""

    def __init__(self, path, key_count=KEY_COUNT):
        self.path = path
        self.key_count = key_count

    def load(self):
        if not os.path.exists(self.path):
            logger.info("No layout at %s, using defaults", self.path)
            config = default_config(self.key_count)
            self.save(config)
            return config
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return config_from_dict(json.load(f), self.key_count)
        except (OSError, ValueError) as e:
            logger.error("Could not read layout %s: %s", self.path, e)
            return default_config(self.key_count)

    def save(self, config):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(config_to_dict(config), f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Could not save layout %s: %s", self.path, e)


class ChangeKind(Enum):
    ACTIVE_PAGE = "active-page"
    BUTTON = "button"
    PAGE_ADDED = "page-added"
    PAGE_DELETED = "page-deleted"
    PAGE_RENAMED = "page-renamed"
    PAGE_CLEARED = "page-cleared"
    BRIGHTNESS = "brightness"
    REPLACED = "replaced"


@dataclass(frozen=True)
class ModelChange:
    kind: ChangeKind
    page_index: Optional[int]
    touches_active: bool
    key_id: Optional[int] = None
    old_button: Optional[ButtonConfig] = None
    new_button: Optional[ButtonConfig] = None


class PageModel:
    """
    Single serialization point for every layout mutation

    Subscribers get a ModelChange after each mutation, outside the lock.
    touches_active tells them the active page needs redrawing.
    """

    def __init__(self, config=None, key_count=KEY_COUNT):
        self.key_count = key_count
        self._config = config or default_config(key_count)
        self._lock = threading.Lock()
        self._subscribers = []

    @property
    def config(self):
        return self._config

    def subscribe(self, callback):
        self._subscribers.append(callback)

    def _notify(self, change):
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception("Model subscriber failed on %s", change.kind.value)

    # Reads

    def get_active_page(self):
        return self._config.active_page

    @property
    def active_index(self):
        return self._config.current_page

    def page_count(self):
        return len(self._config.pages)

    def get_page(self, index):
        return self._config.pages[index]

    def get_button(self, page_index, key_id):
        return self._config.pages[page_index].button(key_id)

    # Navigation

    def set_active_page(self, index):
        """
        Make page index active

        Returns:
            True if the active page changed, False for an invalid index or
            when it already was active
        """
        return self._switch(lambda config: index)

    def go_to_page(self, index):
        return self.set_active_page(index)

    def next_page(self):
        return self._switch(lambda config: (config.current_page + 1) % len(config.pages))

    def prev_page(self):
        return self._switch(lambda config: (config.current_page - 1) % len(config.pages))

    def _switch(self, target):
        with self._lock:
            config = self._config
            index = target(config)
            if not 0 <= index < len(config.pages):
                logger.debug("Ignoring switch to page %s (have %d)", index, len(config.pages))
                return False
            if index == config.current_page:
                return False
            self._config = replace(config, current_page=index)
            name = self._config.active_page.name
        logger.info("Switched to page %d (%s)", index, name)
        self._notify(ModelChange(ChangeKind.ACTIVE_PAGE, index, True))
        return True

    # Editing

    def _check_index(self, config, index):
        if not 0 <= index < len(config.pages):
            raise IndexError("No page {} (have {})".format(index, len(config.pages)))

    def _with_page(self, config, index, page):
        pages = list(config.pages)
        pages[index] = page
        return replace(config, pages=tuple(pages))

    def update_button(self, page_index, key_id, button):
        if not 1 <= key_id <= self.key_count:
            raise ValueError("Key id out of range: {}".format(key_id))
        with self._lock:
            config = self._config
            self._check_index(config, page_index)
            page = config.pages[page_index]
            old = page.button(key_id)
            buttons = dict(page.buttons)
            buttons[key_id] = button
            self._config = self._with_page(config, page_index, Page(page.name, buttons))
            active = page_index == config.current_page
        self._notify(ModelChange(ChangeKind.BUTTON, page_index, active, key_id, old, button))

    def add_page(self, name=None):
        with self._lock:
            config = self._config
            name = name or "Page {}".format(len(config.pages) + 1)
            self._config = replace(config, pages=config.pages + (empty_page(name, self.key_count),))
            index = len(config.pages)
        self._notify(ModelChange(ChangeKind.PAGE_ADDED, index, False))
        return index

    def delete_page(self, index):
        """
        Remove a page

        Raises:
            ValueError: it is the only page
            IndexError: no such page
        """
        with self._lock:
            config = self._config
            self._check_index(config, index)
            if len(config.pages) <= 1:
                raise ValueError("Cannot delete the last page")
            pages = config.pages[:index] + config.pages[index + 1:]
            current = config.current_page
            if index < current:
                # Keep showing the same page
                current -= 1
            current = min(current, len(pages) - 1)
            self._config = DeckConfig(config.brightness, current, pages)
            touched = index <= config.current_page
        self._notify(ModelChange(ChangeKind.PAGE_DELETED, index, touched))

    def rename_page(self, index, name):
        with self._lock:
            config = self._config
            self._check_index(config, index)
            page = config.pages[index]
            self._config = self._with_page(config, index, Page(name, page.buttons))
        # The name is never drawn on the deck
        self._notify(ModelChange(ChangeKind.PAGE_RENAMED, index, False))

    def clear_page_buttons(self, index):
        with self._lock:
            config = self._config
            self._check_index(config, index)
            name = config.pages[index].name
            self._config = self._with_page(config, index, empty_page(name, self.key_count))
            active = index == config.current_page
        self._notify(ModelChange(ChangeKind.PAGE_CLEARED, index, active))

    def set_brightness(self, percent):
        with self._lock:
            self._config = replace(self._config, brightness=_clamp(int(percent), 0, 100))
        self._notify(ModelChange(ChangeKind.BRIGHTNESS, None, False))

    def replace_config(self, config):
        """Swap in a whole new layout (e.g. saved by the configuration UI)"""
        if not config.pages:
            raise ValueError("Layout needs at least one page")
        if not 0 <= config.current_page < len(config.pages):
            config = replace(config, current_page=0)
        with self._lock:
            self._config = config
        self._notify(ModelChange(ChangeKind.REPLACED, config.current_page, True))

    def reset(self):
        self.replace_config(default_config(self.key_count))
