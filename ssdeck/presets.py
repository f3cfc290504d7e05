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

"""Ready made button commands and the udev rule for the deck"""

from collections import namedtuple

from .transport import PRODUCT_ID, VENDOR_ID

Preset = namedtuple("Preset", "label command description")

PRESETS = (
    # Multimedia
    Preset("Vol +", "wpctl set-volume @DEFAULT_AUDIO_SINK@ 5%+", "Volume up"),
    Preset("Vol -", "wpctl set-volume @DEFAULT_AUDIO_SINK@ 5%-", "Volume down"),
    Preset("Mute", "wpctl set-mute @DEFAULT_AUDIO_SINK@ toggle", "Toggle audio mute"),
    Preset("Play/Pause", "playerctl play-pause", "Play or pause media"),
    Preset("Next", "playerctl next", "Next track"),
    Preset("Prev", "playerctl previous", "Previous track"),

    # Applications
    Preset("Firefox", "firefox", "Firefox browser"),
    Preset("Chrome", "google-chrome-stable || chromium", "Chrome / Chromium browser"),
    Preset("Terminal", "kitty || alacritty || gnome-terminal", "Terminal"),
    Preset("Files", "thunar || nautilus || dolphin", "File manager"),
    Preset("VS Code", "code || codium", "Visual Studio Code"),
    Preset("Discord", "discord", "Discord"),
    Preset("Spotify", "spotify", "Spotify"),
    Preset("Steam", "steam", "Steam"),
    Preset("OBS", "obs", "OBS Studio"),

    # Hyprland workspaces
    Preset("WS 1", "hyprctl dispatch workspace 1", "Go to workspace 1"),
    Preset("WS 2", "hyprctl dispatch workspace 2", "Go to workspace 2"),
    Preset("WS 3", "hyprctl dispatch workspace 3", "Go to workspace 3"),
    Preset("WS 4", "hyprctl dispatch workspace 4", "Go to workspace 4"),
    Preset("WS 5", "hyprctl dispatch workspace 5", "Go to workspace 5"),

    # System
    Preset("Screenshot", 'grim -g "$(slurp)" - | wl-copy', "Screenshot of a region"),
    Preset("Lock", "swaylock || i3lock", "Lock the screen"),
    Preset("Suspend", "systemctl suspend", "Suspend the system"),

    # Pages
    Preset(">> Next", "__NEXT_PAGE__", "Next page"),
    Preset("<< Prev", "__PREV_PAGE__", "Previous page"),
    Preset("Home", "__PAGE_0__", "First page"),

    # Widgets
    Preset("Clock", "__CLOCK__", "Current time"),
    Preset("CPU", "__CPU__", "CPU usage"),
    Preset("RAM", "__RAM__", "Memory usage"),
    Preset("Timer 5m", "__TIMER_5__", "Five minute countdown"),
)

UDEV_RULE_PATH = "/etc/udev/rules.d/99-ssdeck.rules"


def udev_rule(vendor_id=VENDOR_ID, product_id=PRODUCT_ID):
    """udev rule giving every user access to the deck"""
    return 'SUBSYSTEM=="usb", ATTR{{idVendor}}=="{:04x}", ATTR{{idProduct}}=="{:04x}", MODE="0666"'.format(
        vendor_id, product_id)
