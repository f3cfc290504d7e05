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

"""Exception types shared by every ssdeck component"""


class DeckError(Exception):
    """Base class for all ssdeck errors"""


class DeviceError(DeckError):
    """Something went wrong talking to the deck"""


class DeviceNotFound(DeviceError):
    """
    No deck with the expected vendor/product id is attached

    Recoverable: the supervisor keeps polling until the deck shows up.
    """


class DeviceBusy(DeviceError):
    """
    The deck is claimed by another process

    Not recoverable without the user closing the other program.
    """


class DeviceAccessDenied(DeviceError):
    """The current user may not open the USB device (missing udev rule)"""


class TransferError(DeviceError):
    """A single USB transfer failed; the session stays open"""


class DeviceDisconnected(TransferError):
    """The USB handle went away in the middle of a transfer"""


class CommandParseError(DeckError):
    """A command string could not be parsed (e.g. unknown hotkey token)"""


class IntegrationError(DeckError):
    """Base class for OBS / Twitch client failures"""


class IntegrationAuthError(IntegrationError):
    """Credentials were rejected; the user has to reconfigure them"""


class IntegrationNetworkError(IntegrationError):
    """The service could not be reached or the connection dropped"""


class IntegrationRequestError(IntegrationError):
    """The service answered, but refused the request"""
