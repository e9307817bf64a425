import gzip
import io
import os
import struct
import tempfile
import unittest
from unittest.mock import patch

from dictidx.tools.idx2txt import main


class TestIdx2Txt(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)

    def write_file(self, name, data):
        filename = os.path.join(self.temp_dir.name, name)
        with open(filename, "wb") as fd:
            fd.write(data)
        return filename

    def run_main(self, argv):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout, \
                patch("sys.stderr", new_callable=io.StringIO) as stderr:
            status = main(argv)
        return status, stdout.getvalue(), stderr.getvalue()

    def test_prints_records(self):
        data = (b"a\0" + struct.pack("<II", 0, 2214592512) +
                b"ab\0" + struct.pack("<II", 2214592512, 402653184))
        index = self.write_file("test.idx", data)

        status, stdout, stderr = self.run_main([index])

        self.assertEqual(status, 0)
        self.assertEqual(stdout, "a | 0 | 2214592512\nab | 2214592512 | 402653184\n")
        self.assertEqual(stderr, "")

    def test_non_utf8_keys_pass_through_unchanged(self):
        index = self.write_file("gb.idx", b"\xc4\xe3\0" + struct.pack("<II", 1, 2))
        stdout = io.TextIOWrapper(io.BytesIO(), encoding="ascii")

        with patch("sys.stdout", stdout):
            status = main([index])
            stdout.flush()

        self.assertEqual(status, 0)
        self.assertEqual(stdout.buffer.getvalue(), b"\xc4\xe3 | 1 | 2\n")

    def test_corrupt_gzip_index(self):
        data = bytearray(gzip.compress(b"z\0" + struct.pack("<II", 5, 6)))
        data[10] = 0xff
        index = self.write_file("bad.idx.gz", bytes(data))

        status, stdout, stderr = self.run_main([index])

        self.assertEqual(status, 1)
        self.assertEqual(stdout, "")
        self.assertTrue(stderr.startswith("error: "))

    def test_empty_index(self):
        index = self.write_file("empty.idx", b"")
        self.assertEqual(self.run_main([index]), (0, "", ""))

    def test_reads_argv_by_default(self):
        index = self.write_file("test.idx", b"x\0" + struct.pack("<II", 1, 2))
        with patch("sys.argv", ["idx2txt", index]), \
                patch("sys.stdout", new_callable=io.StringIO) as stdout:
            self.assertEqual(main(), 0)
        self.assertEqual(stdout.getvalue(), "x | 1 | 2\n")

    def test_usage(self):
        status, stdout, stderr = self.run_main([])
        self.assertEqual(status, 2)
        self.assertEqual(stdout, "")
        self.assertIn("Usage", stderr)

        status, _, _ = self.run_main(["a", "b", "c"])
        self.assertEqual(status, 2)

    def test_missing_index(self):
        status, stdout, stderr = self.run_main([os.path.join(self.temp_dir.name, "nope.idx")])
        self.assertEqual(status, 1)
        self.assertEqual(stdout, "")
        self.assertTrue(stderr.startswith("error: "))

    def test_truncated_index_keeps_printed_lines(self):
        data = b"a\0" + struct.pack("<II", 1, 2) + b"b\0\x00\x00"
        index = self.write_file("test.idx", data)

        status, stdout, stderr = self.run_main([index])

        self.assertEqual(status, 1)
        self.assertEqual(stdout, "a | 1 | 2\n")
        self.assertIn("error: ", stderr)

    def test_key_too_long(self):
        index = self.write_file("test.idx", b"k" * 300 + b"\0" + struct.pack("<II", 1, 2))
        status, stdout, stderr = self.run_main([index])
        self.assertEqual(status, 1)
        self.assertEqual(stdout, "")
        self.assertIn("255", stderr)

    def test_with_metadata(self):
        data = b"word\0" + struct.pack(">II", 16, 32)
        index = self.write_file("test.idx", data)
        ifo = self.write_file("test.ifo", (
            "StarDict's dict ifo file\nversion=2.4.2\nwordcount=1\n"
            f"idxfilesize={len(data)}\n").encode("utf-8"))

        self.assertEqual(self.run_main([index, ifo]), (0, "word | 16 | 32\n", ""))

    def test_bad_metadata(self):
        index = self.write_file("test.idx", b"")
        ifo = self.write_file("test.ifo", b"version=2.4.2\n")
        status, _, stderr = self.run_main([index, ifo])
        self.assertEqual(status, 1)
        self.assertIn("error: ", stderr)

    def test_gzip_index(self):
        index = os.path.join(self.temp_dir.name, "test.idx.gz")
        with gzip.open(index, "wb") as fd:
            fd.write(b"z\0" + struct.pack("<II", 5, 6))

        self.assertEqual(self.run_main([index]), (0, "z | 5 | 6\n", ""))


if __name__ == "__main__":
    unittest.main()
