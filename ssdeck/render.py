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

"""Turn a label, a color and an optional icon into a key bitmap"""

import logging
import os
import threading

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .codec import KEY_SIZE
from .model import DEFAULT_COLOR

logger = logging.getLogger(__name__)

FONT_NAMES = ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf", "Roboto-Regular.ttf")


def font_size_for(label):
    """Longer labels get smaller text"""
    longest = max((len(line) for line in label.splitlines()), default=0)
    if longest > 8:
        return 16
    if longest > 5:
        return 20
    return 28


def _parse_color(color, fallback):
    try:
        return ImageColor.getrgb(color)
    except (ValueError, AttributeError):
        return ImageColor.getrgb(fallback)


class Renderer:
    """
    Key image renderer

    Icons and fonts are loaded once and cached.

    Args:
        icons_path: directory that relative icon names are resolved against
        size: key size in pixels
    """

    def __init__(self, icons_path=None, size=KEY_SIZE):
        self.icons_path = icons_path
        self.size = size
        self._icons = {}
        self._fonts = {}
        self._lock = threading.Lock()

    def _font(self, size):
        font = self._fonts.get(size)
        if font is None:
            for name in FONT_NAMES:
                try:
                    font = ImageFont.truetype(name, size)
                    break
                except OSError:
                    continue
            else:
                font = ImageFont.load_default(size)
            self._fonts[size] = font
        return font

    def _icon(self, icon):
        """
        Load and scale an icon to the key size

        Returns:
            PIL.Image, or None if the icon cannot be loaded
        """
        path = icon if os.path.isabs(icon) or not self.icons_path else os.path.join(self.icons_path, icon)
        with self._lock:
            if path in self._icons:
                return self._icons[path]
        try:
            with Image.open(path) as src:
                scaled = src.convert("RGB").resize(self.size, Image.LANCZOS)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load icon %s: %s", path, e)
            scaled = None
        with self._lock:
            self._icons[path] = scaled
        return scaled

    def render(self, label, color=DEFAULT_COLOR, icon=None, text_color="white"):
        """
        Render one key

        The label is drawn only when there is no usable icon.

        Returns:
            RGB PIL.Image of self.size
        """
        base = self._icon(icon) if icon else None
        if base is not None:
            return base.copy()

        image = Image.new("RGB", self.size, _parse_color(color, DEFAULT_COLOR))
        if label:
            draw = ImageDraw.Draw(image)
            draw.multiline_text(
                (image.width / 2, image.height / 2),
                text=label, font=self._font(font_size_for(label)),
                anchor="mm", align="center", fill=_parse_color(text_color, "white"),
            )
        return image

    def render_button(self, button):
        """Render a ButtonConfig"""
        return self.render(button.label, button.color, button.icon or None)
