import errno
import unittest
from unittest import mock
from unittest.mock import MagicMock

import usb.core

from ssdeck.errors import (
    DeviceAccessDenied, DeviceBusy, DeviceDisconnected, DeviceNotFound, TransferError,
)
from ssdeck.transport import Transport


def usb_error(code):
    return usb.core.USBError("error {}".format(code), errno=code)


class TestTransport(unittest.TestCase):
    def setUp(self):
        self.dev = MagicMock()
        self.dev.is_kernel_driver_active.return_value = False
        self.find = MagicMock(return_value=self.dev)
        patcher = mock.patch("ssdeck.transport.usb.util")
        self.util = patcher.start()
        self.util.find_descriptor.return_value = None
        self.addCleanup(patcher.stop)
        self.transport = Transport(find=self.find)

    def test_not_found(self):
        self.find.return_value = None
        with self.assertRaises(DeviceNotFound):
            self.transport.open()
        self.assertFalse(self.transport.is_open())

    def test_open_claims_interface(self):
        self.transport.open()
        self.find.assert_called_once_with(idVendor=0x0200, idProduct=0x1000)
        self.util.claim_interface.assert_called_once_with(self.dev, 0)
        self.assertTrue(self.transport.is_open())
        self.assertEqual((self.transport.ep_out, self.transport.ep_in), (0x01, 0x82))

    def test_kernel_driver_detached_and_reattached(self):
        self.dev.is_kernel_driver_active.return_value = True
        self.transport.open()
        self.dev.detach_kernel_driver.assert_called_once_with(0)
        self.transport.close()
        self.dev.attach_kernel_driver.assert_called_once_with(0)
        self.util.release_interface.assert_called_once_with(self.dev, 0)
        self.util.dispose_resources.assert_called_once_with(self.dev)

    def test_busy_is_reported_distinctly(self):
        self.util.claim_interface.side_effect = usb_error(errno.EBUSY)
        with self.assertRaises(DeviceBusy):
            self.transport.open()

    def test_access_denied(self):
        self.dev.set_configuration.side_effect = usb_error(errno.EACCES)
        with self.assertRaises(DeviceAccessDenied):
            self.transport.open()

    def test_close_twice(self):
        self.transport.open()
        self.transport.close()
        self.transport.close()
        self.util.release_interface.assert_called_once()

    def test_write(self):
        self.transport.open()
        self.dev.write.return_value = 517
        self.assertEqual(self.transport.write(bytes(517)), 517)
        self.dev.write.assert_called_once_with(0x01, bytes(517), 1000)

    def test_short_write(self):
        self.transport.open()
        self.dev.write.return_value = 10
        with self.assertRaises(TransferError):
            self.transport.write(bytes(517))

    def test_write_to_unplugged_device(self):
        self.transport.open()
        self.dev.write.side_effect = usb_error(errno.ENODEV)
        with self.assertRaises(DeviceDisconnected):
            self.transport.write(bytes(517))

    def test_read_timeout_returns_none(self):
        self.transport.open()
        self.dev.read.side_effect = usb.core.USBTimeoutError("timeout", errno=errno.ETIMEDOUT)
        self.assertIsNone(self.transport.read())

    def test_read(self):
        self.transport.open()
        self.dev.read.return_value = [1, 2, 3]
        self.assertEqual(self.transport.read(512, 100), b"\x01\x02\x03")
        self.dev.read.assert_called_once_with(0x82, 512, 100)

    def test_write_when_closed(self):
        with self.assertRaises(DeviceDisconnected):
            self.transport.write(b"x")


if __name__ == '__main__':
    unittest.main()
