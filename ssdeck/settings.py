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
Daemon settings

Settings live in an INI file: a [General] section plus one section per
integration. Integration secrets may be supplied through the environment
instead; the environment wins.

Example::

    [General]
    Verbose = yes
    Layout = ~/.config/ssdeck/config.json
    Icons = ~/.config/ssdeck/icons

    [obs]
    Enabled = yes
    Host = 127.0.0.1
    Port = 4455
    Password = secret
    MicInput = Mic/Aux

    [twitch]
    Enabled = yes
    ClientId = abc
    AccessToken = xyz
    Channel = mychannel
"""

import configparser
import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_DIR = os.path.join(os.path.expanduser("~"), ".config", "ssdeck")


@dataclass
class ObsSettings:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 4455
    password: str = ""
    mic_input: str = "Mic/Aux"

    @property
    def url(self):
        return "ws://{}:{}".format(self.host, self.port)


@dataclass
class TwitchSettings:
    enabled: bool = False
    client_id: str = ""
    access_token: str = ""
    channel: str = ""


@dataclass
class Settings:
    verbose: bool = False
    layout_path: str = os.path.join(DEFAULT_DIR, "config.json")
    icons_path: str = os.path.join(DEFAULT_DIR, "icons")
    brightness: Optional[int] = None
    obs: ObsSettings = field(default_factory=ObsSettings)
    twitch: TwitchSettings = field(default_factory=TwitchSettings)


def _section(config, name):
    # Missing sections behave like empty ones so .get() fallbacks apply
    if name not in config.sections():
        config[name] = {}
    return config[name]


def load_settings(path=None, environ=None):
    """
    Read settings from an INI file and the environment

    Args:
        path: INI file path, or None for defaults only
        environ: mapping used instead of os.environ (tests)

    Returns:
        Settings instance
    """
    env = os.environ if environ is None else environ
    config = configparser.ConfigParser()
    if path:
        config.read(path)

    general = _section(config, "General")
    settings = Settings()
    settings.verbose = general.getboolean("Verbose", False)
    settings.layout_path = os.path.expanduser(general.get("Layout", settings.layout_path))
    settings.icons_path = os.path.expanduser(general.get("Icons", settings.icons_path))
    if "Brightness" in general:
        settings.brightness = max(0, min(100, general.getint("Brightness")))

    obs = _section(config, "obs")
    settings.obs = ObsSettings(
        enabled=obs.getboolean("Enabled", False),
        host=env.get("OBS_HOST", obs.get("Host", "127.0.0.1")),
        port=int(env.get("OBS_PORT", obs.get("Port", "4455"))),
        password=env.get("OBS_PASSWORD", obs.get("Password", "")),
        mic_input=obs.get("MicInput", "Mic/Aux"),
    )

    twitch = _section(config, "twitch")
    settings.twitch = TwitchSettings(
        enabled=twitch.getboolean("Enabled", False),
        client_id=env.get("TWITCH_CLIENT_ID", twitch.get("ClientId", "")),
        access_token=env.get("TWITCH_ACCESS_TOKEN", twitch.get("AccessToken", "")),
        channel=env.get("TWITCH_CHANNEL", twitch.get("Channel", "")),
    )
    return settings
