import os
import tempfile
import unittest

import codebook as cb
from codebook import CodeEntry, FormatError


class TestCodebookFormat(unittest.TestCase):
    def test_layout(self):
        data = cb.dumps([CodeEntry(ord('a'), "00"), CodeEntry(ord('b'), "011")])
        self.assertEqual(data, bytes([
            2, 0,
            2, 0b00000000, ord('a'),
            3, 0b01100000, ord('b'),
        ]))

    def test_empty_codebook(self):
        self.assertEqual(cb.dumps([]), b"\x00\x00")
        self.assertEqual(cb.loads(b"\x00\x00"), [])

    def test_zero_length_code_has_no_code_bytes(self):
        data = cb.dumps([CodeEntry(0x61, "")])
        self.assertEqual(data, bytes([1, 0, 0, 0x61]))
        self.assertEqual(cb.loads(data), [CodeEntry(0x61, "")])

    def test_round_trip_keeps_order(self):
        entries = [
            CodeEntry(0, "00"),
            CodeEntry(255, "010"),
            CodeEntry(7, "1011"),
            CodeEntry(9, "110000001"),
            CodeEntry(10, "1" * 17),
        ]
        self.assertEqual(cb.loads(cb.dumps(entries)), entries)

    def test_truncated_mid_entry(self):
        data = cb.dumps([CodeEntry(1, "0"), CodeEntry(2, "10")])
        for cut in range(2, len(data)):
            with self.subTest(cut=cut):
                with self.assertRaises(FormatError):
                    cb.loads(data[:cut])

    def test_missing_count(self):
        with self.assertRaises(FormatError):
            cb.loads(b"\x01")

    def test_trailing_bytes(self):
        with self.assertRaises(FormatError):
            cb.loads(cb.dumps([CodeEntry(1, "")]) + b"\x00")

    def test_duplicate_symbol(self):
        with self.assertRaises(FormatError):
            cb.loads(bytes([2, 0, 1, 0x00, 5, 1, 0x80, 5]))

    def test_too_many_entries(self):
        with self.assertRaises(FormatError):
            cb.loads(bytes([1, 1]))

    def test_bad_entries_rejected_on_write(self):
        with self.assertRaises(ValueError):
            cb.dumps([CodeEntry(256, "0")])
        with self.assertRaises(ValueError):
            cb.dumps([CodeEntry(1, "0" * 256)])
        with self.assertRaises(ValueError):
            cb.dumps([CodeEntry(1, "012")])


class TestCodebookFile(unittest.TestCase):
    def test_file_round_trip(self):
        entries = [CodeEntry(ord('x'), "0"), CodeEntry(ord('y'), "10"), CodeEntry(ord('z'), "11")]
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "codes.bin")
            cb.write_codebook(path, entries)
            self.assertEqual(cb.read_codebook(path), entries)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(OSError):
                cb.read_codebook(os.path.join(d, "nope.bin"))

    def test_invalid_codebook_writes_nothing(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "codes.bin")
            with self.assertRaises(ValueError):
                cb.write_codebook(path, [CodeEntry(300, "1")])
            self.assertFalse(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
