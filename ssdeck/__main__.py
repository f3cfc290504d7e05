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

import argparse
import logging
import signal

from . import __version__
from .app import DeckApp
from .presets import PRESETS, UDEV_RULE_PATH, udev_rule
from .settings import load_settings

logger = logging.getLogger("ssdeck")


def build_parser():
    ap = argparse.ArgumentParser(
        prog='ssdeck',
        description='Redragon SS-550 stream deck driver with pages, macros, widgets, OBS and Twitch'
    )
    ap.add_argument('configfile', nargs='?', help='Path to configuration INI file')
    ap.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    ap.add_argument('--list-presets', action='store_true', help='Print the preset button commands and exit')
    ap.add_argument('--udev-rule', action='store_true', help='Print the udev rule for the deck and exit')
    ap.add_argument('--version', action='version', version='%(prog)s {}'.format(__version__))
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.udev_rule:
        print("# {}".format(UDEV_RULE_PATH))
        print(udev_rule())
        return 0
    if args.list_presets:
        width = max(len(p.label) for p in PRESETS)
        for preset in PRESETS:
            print("{:<{}}  {}".format(preset.label, width, preset.command))
        return 0

    settings = load_settings(args.configfile)
    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.verbose) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("ssdeck %s, layout %s", __version__, settings.layout_path)

    app = DeckApp.from_settings(settings)
    signal.signal(signal.SIGTERM, lambda signum, frame: app.shutdown())
    try:
        app.run()
    except KeyboardInterrupt:
        pass
    finally:
        app.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
