import io
import struct
import unittest

from PIL import Image

from ssdeck import codec


class TestPackets(unittest.TestCase):
    def test_command_packet_is_prefixed_and_padded(self):
        pkt = codec.command_packet(b"DIS\x00\x00")
        self.assertEqual(len(pkt), 517)
        self.assertTrue(pkt.startswith(b"CRT\x00\x00DIS"))
        self.assertEqual(pkt[10:], bytes(507))

    def test_command_packet_rejects_oversized_body(self):
        with self.assertRaises(ValueError):
            codec.command_packet(bytes(513))

    def test_chunks_are_padded_to_packet_size(self):
        chunks = codec.chunk_payload(b"\x01" * 1000)
        self.assertEqual(len(chunks), 2)
        self.assertEqual(len(chunks[1]), 512)
        self.assertEqual(chunks[1][:488], b"\x01" * 488)
        self.assertEqual(chunks[1][488:], bytes(24))

    def test_clear_all_targets_every_key(self):
        pkt = codec.clear_packet()
        self.assertEqual(pkt[5:12], b"CLE\x00\x00\x00\xff")

    def test_image_header(self):
        pkt = codec.image_header_packet(7, 0x1234)
        self.assertEqual(pkt[5:8], b"BAT")
        self.assertEqual(struct.unpack(">I", pkt[8:12])[0], 0x1234)
        self.assertEqual(pkt[12], 7)


class TestBrightness(unittest.TestCase):
    def test_limits(self):
        self.assertEqual(codec.brightness_level(0), 0)
        self.assertEqual(codec.brightness_level(100), 64)

    def test_monotonic(self):
        levels = [codec.brightness_level(p) for p in range(101)]
        self.assertEqual(levels, sorted(levels))

    def test_out_of_range_is_clamped(self):
        self.assertEqual(codec.brightness_level(150), 64)
        self.assertEqual(codec.brightness_level(-5), 0)

    def test_packet_carries_level(self):
        pkt = codec.brightness_packet(50)
        self.assertEqual(pkt[5:11], b"LIG\x00\x00" + bytes([32]))


class TestImages(unittest.TestCase):
    def make_image(self):
        image = Image.new("RGB", (100, 100), "black")
        image.paste((255, 0, 0), (0, 0, 50, 50))
        return image

    def test_rotating_twice_is_identity(self):
        image = self.make_image()
        twice = codec.rotate_for_device(codec.rotate_for_device(image))
        self.assertEqual(twice.tobytes(), image.tobytes())

    def test_encoded_image_is_rotated_jpeg(self):
        payload = codec.encode_key_image(self.make_image())
        self.assertTrue(payload.startswith(b"\xff\xd8"))
        with Image.open(io.BytesIO(payload)) as raw:
            raw = raw.convert("RGB")
            # red quadrant ends up bottom right on the wire
            r, g, b = raw.getpixel((90, 90))
            self.assertGreater(r, 200)
            self.assertLess(g, 60)

    def test_decode_restores_orientation(self):
        decoded = codec.decode_key_image(codec.encode_key_image(self.make_image()))
        r, g, b = decoded.getpixel((10, 10))
        self.assertGreater(r, 200)
        self.assertLess(b, 60)

    def test_other_sizes_are_scaled(self):
        payload = codec.encode_key_image(Image.new("RGBA", (72, 72), "blue"))
        decoded = codec.decode_key_image(payload)
        self.assertEqual(decoded.size, (100, 100))

    def test_frame_sequence(self):
        image = self.make_image()
        packets = codec.encode(3, image)
        payload = codec.encode_key_image(image)
        self.assertEqual(packets[0][5:8], b"BAT")
        self.assertEqual(packets[0][12], 3)
        self.assertEqual(packets[-1][5:10], b"STP\x00\x00")
        self.assertEqual(b"".join(packets[1:-1])[:len(payload)], payload)
        self.assertEqual(len(packets) - 2, -(-len(payload) // 512))


class TestKeyReports(unittest.TestCase):
    def report(self, code, state):
        return bytes(9) + bytes([code, state]) + bytes(501)

    def test_physical_codes_map_to_logical_keys(self):
        self.assertEqual(codec.decode_key_report(self.report(0x0B, 1)), (1, True))
        self.assertEqual(codec.decode_key_report(self.report(0x0A, 1)), (10, True))
        self.assertEqual(codec.decode_key_report(self.report(0x01, 0)), (11, False))

    def test_every_key_is_mapped_once(self):
        self.assertEqual(sorted(codec.PHYSICAL_TO_LOGICAL.values()), list(range(1, 16)))

    def test_unknown_code_passes_through(self):
        self.assertEqual(codec.decode_key_report(self.report(0x20, 1)), (0x20, True))

    def test_short_report(self):
        self.assertIsNone(codec.decode_key_report(bytes(10)))
        self.assertIsNone(codec.decode_key_report(None))


if __name__ == '__main__':
    unittest.main()
