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
Raw USB access to the deck

Only DeviceSession talks to this class; it does not serialize access by
itself.
"""

import errno
import logging

import usb.core
import usb.util

from .errors import (
    DeviceAccessDenied,
    DeviceBusy,
    DeviceDisconnected,
    DeviceNotFound,
    TransferError,
)

logger = logging.getLogger(__name__)

# Redragon SS-550
VENDOR_ID = 0x0200
PRODUCT_ID = 0x1000

INTERFACE = 0
CONFIGURATION = 1

# Used when the interface descriptor does not list the endpoints
DEFAULT_OUT_ENDPOINT = 0x01
DEFAULT_IN_ENDPOINT = 0x82

_GONE = (errno.ENODEV, errno.ENOENT, errno.ESHUTDOWN)


def _is_timeout(exc):
    return isinstance(exc, usb.core.USBTimeoutError) or exc.errno == errno.ETIMEDOUT


def _transfer_error(action, exc):
    if getattr(exc, "errno", None) in _GONE:
        return DeviceDisconnected("{} failed, device gone: {}".format(action, exc))
    return TransferError("{} failed: {}".format(action, exc))


class Transport:
    """
    USB session for one deck

    Args:
        vendor_id: USB vendor id to look for
        product_id: USB product id to look for
        find: device lookup function (usb.core.find, replaced in tests)
    """

    def __init__(self, vendor_id=VENDOR_ID, product_id=PRODUCT_ID, find=usb.core.find):
        self.vendor_id = vendor_id
        self.product_id = product_id
        self._find = find
        self.dev = None
        self.ep_out = DEFAULT_OUT_ENDPOINT
        self.ep_in = DEFAULT_IN_ENDPOINT
        self._detached_kernel_driver = False

    def is_open(self):
        return self.dev is not None

    def open(self):
        """
        Find the deck, claim its interface and resolve the endpoints

        Raises:
            DeviceNotFound: nothing with our vendor/product id is attached
            DeviceBusy: another process holds the interface
            DeviceAccessDenied: no permission to open the device
        """
        if self.dev is not None:
            return

        dev = self._find(idVendor=self.vendor_id, idProduct=self.product_id)
        if dev is None:
            raise DeviceNotFound("No deck {:04x}:{:04x} attached".format(self.vendor_id, self.product_id))

        logger.debug("Found device VID=%04x PID=%04x", self.vendor_id, self.product_id)

        try:
            if dev.is_kernel_driver_active(INTERFACE):
                logger.debug("Kernel driver active, detaching")
                dev.detach_kernel_driver(INTERFACE)
                self._detached_kernel_driver = True
        except NotImplementedError:
            # Not available on every platform/backend
            pass
        except usb.core.USBError as e:
            self._raise_open_error(e)

        try:
            dev.set_configuration(CONFIGURATION)
        except usb.core.USBError as e:
            if e.errno in (errno.EACCES, errno.EPERM):
                self._raise_open_error(e)
            # Already configured is fine
            logger.debug("Could not set configuration (may already be set): %s", e)

        try:
            usb.util.claim_interface(dev, INTERFACE)
        except usb.core.USBError as e:
            self._raise_open_error(e)

        self.dev = dev
        self._resolve_endpoints()
        logger.info("Deck opened (OUT 0x%02x, IN 0x%02x)", self.ep_out, self.ep_in)

    def _raise_open_error(self, e):
        if e.errno == errno.EBUSY:
            raise DeviceBusy("Deck is in use by another program: {}".format(e))
        if e.errno in (errno.EACCES, errno.EPERM):
            raise DeviceAccessDenied("No permission to open the deck (udev rule missing?): {}".format(e))
        if e.errno in _GONE:
            raise DeviceNotFound("Deck vanished while opening: {}".format(e))
        raise TransferError("Could not open deck: {}".format(e))

    def _resolve_endpoints(self):
        try:
            intf = self.dev.get_active_configuration()[(INTERFACE, 0)]
        except (usb.core.USBError, KeyError, IndexError, TypeError) as e:
            logger.debug("Using default endpoints: %s", e)
            return

        ep_out = usb.util.find_descriptor(
            intf,
            custom_match=lambda ep: usb.util.endpoint_direction(ep.bEndpointAddress) == usb.util.ENDPOINT_OUT)
        ep_in = usb.util.find_descriptor(
            intf,
            custom_match=lambda ep: usb.util.endpoint_direction(ep.bEndpointAddress) == usb.util.ENDPOINT_IN)
        if ep_out is not None:
            self.ep_out = ep_out.bEndpointAddress
        if ep_in is not None:
            self.ep_in = ep_in.bEndpointAddress

    def close(self):
        """Release the interface and the device handle; safe to call twice"""
        dev, self.dev = self.dev, None
        if dev is None:
            return
        try:
            usb.util.release_interface(dev, INTERFACE)
            if self._detached_kernel_driver:
                dev.attach_kernel_driver(INTERFACE)
        except (usb.core.USBError, NotImplementedError) as e:
            logger.debug("Ignoring error while releasing deck: %s", e)
        finally:
            self._detached_kernel_driver = False
            usb.util.dispose_resources(dev)
        logger.info("Deck closed")

    def _handle(self):
        if self.dev is None:
            raise DeviceDisconnected("Deck is not open")
        return self.dev

    def write(self, data, timeout=1000):
        """Interrupt write on the OUT endpoint"""
        dev = self._handle()
        try:
            written = dev.write(self.ep_out, data, timeout)
        except usb.core.USBError as e:
            if _is_timeout(e):
                raise TransferError("Write timed out after {} ms".format(timeout))
            raise _transfer_error("Write", e)
        if written != len(data):
            raise TransferError("Short write: {} of {} bytes".format(written, len(data)))
        return written

    def read(self, size=512, timeout=100):
        """
        Interrupt read on the IN endpoint

        Returns:
            bytes read, or None if nothing arrived within timeout
        """
        dev = self._handle()
        try:
            data = dev.read(self.ep_in, size, timeout)
        except usb.core.USBError as e:
            if _is_timeout(e):
                return None
            raise _transfer_error("Read", e)
        return bytes(data)
