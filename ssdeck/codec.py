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
Wire format of the SS-550

Every command packet is ``CRT\\0\\0`` + command body, zero padded to
517 bytes. Key images are JPEG, rotated by 180 degrees, announced with a
``BAT`` packet, streamed in raw 512 byte chunks and committed with ``STP``.

Nothing here touches USB or knows about pages.
"""

import io
import struct

from PIL import Image

PACKET_SIZE = 512

CMD_PREFIX = b"CRT\x00\x00"
CMD_LIG = b"LIG\x00\x00"          # brightness + level
CMD_CLE = b"CLE\x00\x00\x00"      # clear + target key (0xff = all)
CMD_DIS = b"DIS\x00\x00"          # wake display
CMD_STP = b"STP\x00\x00"          # commit / refresh
CMD_BAT = b"BAT"                  # image header: size (4 bytes BE) + key id

CLEAR_ALL = 0xFF

KEY_SIZE = (100, 100)
JPEG_QUALITY = 90

NATIVE_BRIGHTNESS_MAX = 64
BRIGHTNESS_FACTOR = 0.64

# Physical key code reported by the device -> logical key id (1..15)
PHYSICAL_TO_LOGICAL = {
    0x0B: 1, 0x0C: 2, 0x0D: 3, 0x0E: 4, 0x0F: 5,
    0x06: 6, 0x07: 7, 0x08: 8, 0x09: 9, 0x0A: 10,
    0x01: 11, 0x02: 12, 0x03: 13, 0x04: 14, 0x05: 15,
}

KEY_REPORT_MIN_LEN = 11
KEY_REPORT_CODE_OFFSET = 9
KEY_REPORT_STATE_OFFSET = 10


def command_packet(body):
    """Prefix and pad a command body to a full packet"""
    packet = CMD_PREFIX + bytes(body)
    if len(packet) > len(CMD_PREFIX) + PACKET_SIZE:
        raise ValueError("Command body too long: {} bytes".format(len(body)))
    return packet.ljust(len(CMD_PREFIX) + PACKET_SIZE, b"\x00")


def chunk_payload(payload):
    """Split raw data into zero padded PACKET_SIZE chunks"""
    return [
        bytes(payload[offset:offset + PACKET_SIZE]).ljust(PACKET_SIZE, b"\x00")
        for offset in range(0, len(payload), PACKET_SIZE)
    ]


def brightness_level(percent):
    """Map 0..100 percent onto the native 0..64 scale"""
    percent = max(0, min(100, int(percent)))
    return int(percent * BRIGHTNESS_FACTOR)


def brightness_packet(percent):
    return command_packet(CMD_LIG + bytes([brightness_level(percent)]))


def clear_packet(key_id=CLEAR_ALL):
    return command_packet(CMD_CLE + bytes([key_id]))


def wake_packet():
    return command_packet(CMD_DIS)


def refresh_packet():
    return command_packet(CMD_STP)


def rotate_for_device(image):
    """The panel is mounted upside down; rotating twice is the identity"""
    return image.transpose(Image.Transpose.ROTATE_180)


def encode_key_image(image):
    """
    Convert a bitmap into the JPEG payload the device displays

    Args:
        image: PIL.Image of any mode/size; scaled to KEY_SIZE if needed

    Returns:
        JPEG bytes
    """
    if image.mode != "RGB":
        image = image.convert("RGB")
    if image.size != KEY_SIZE:
        image = image.resize(KEY_SIZE, Image.LANCZOS)

    buf = io.BytesIO()
    rotate_for_device(image).save(buf, format="JPEG", quality=JPEG_QUALITY)
    return buf.getvalue()


def decode_key_image(payload):
    """Inverse of encode_key_image (up to JPEG loss)"""
    with Image.open(io.BytesIO(payload)) as img:
        return rotate_for_device(img.convert("RGB"))


def image_header_packet(key_id, size):
    return command_packet(CMD_BAT + struct.pack(">I", size) + bytes([key_id]))


def frame_key_image(key_id, payload):
    """
    Full packet sequence that puts payload on one key

    Returns:
        list of packets: BAT header, data chunks, STP
    """
    return [image_header_packet(key_id, len(payload))] + chunk_payload(payload) + [refresh_packet()]


def encode(key_id, image):
    """Bitmap -> packet sequence for key_id"""
    return frame_key_image(key_id, encode_key_image(image))


def decode_key_report(report):
    """
    Decode an IN report into (key_id, pressed)

    Returns:
        tuple, or None if the report is too short to carry a key event
    """
    if report is None or len(report) < KEY_REPORT_MIN_LEN:
        return None
    code = report[KEY_REPORT_CODE_OFFSET]
    state = report[KEY_REPORT_STATE_OFFSET]
    return PHYSICAL_TO_LOGICAL.get(code, code), state == 1
