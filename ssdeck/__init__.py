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

"""User space driver for the Redragon SS-550 stream deck"""

__version__ = "0.3.0"
