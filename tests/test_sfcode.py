import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr

import sfcode


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dict_path = os.path.join(self.tmp.name, "codes.bin")

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, argv, data):
        out = io.BytesIO()
        err = io.StringIO()
        with redirect_stderr(err):
            status = sfcode.main(argv, stdin=io.BytesIO(data), stdout=out)
        return status, out.getvalue(), err.getvalue()

    def test_encode_then_decode(self):
        data = b"mississippi river"
        status, encoded, _ = self.run_cli(["--dict", self.dict_path], data)
        self.assertEqual(status, 0)
        self.assertTrue(os.path.exists(self.dict_path))

        status, decoded, _ = self.run_cli(["-d", "--dict", self.dict_path], encoded)
        self.assertEqual(status, 0)
        self.assertEqual(decoded, data)

    def test_stats_go_to_stderr(self):
        status, encoded, err = self.run_cli(["--stats", "--dict", self.dict_path], b"aab")
        self.assertEqual(status, 0)
        self.assertIn("entropy", err)
        self.assertNotIn(b"entropy", encoded)

    def test_missing_dictionary(self):
        status, out, err = self.run_cli(["-d", "--dict", os.path.join(self.tmp.name, "missing.bin")], b"\x00" * 4)
        self.assertEqual(status, 1)
        self.assertEqual(out, b"")
        self.assertIn("Decoding error", err)

    def test_corrupted_payload(self):
        _, encoded, _ = self.run_cli(["--dict", self.dict_path], b"abracadabra")
        status, out, err = self.run_cli(["-d", "--dict", self.dict_path], encoded[:-1])
        self.assertEqual(status, 1)
        self.assertEqual(out, b"")
        self.assertTrue(err.startswith("Decoding error"))

    def test_malformed_dictionary(self):
        with open(self.dict_path, "wb") as f:
            f.write(b"\x05\x00\x01")
        status, _, err = self.run_cli(["-d", "--dict", self.dict_path], b"\x00" * 4)
        self.assertEqual(status, 1)
        self.assertIn("truncated", err)


if __name__ == "__main__":
    unittest.main()
