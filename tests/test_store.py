import unittest
from pathlib import Path
from unittest.mock import patch
import hashlib
import struct
import sys
import os
import tempfile

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from indexer import IndexBuilder, scan_source
from _fs import write_bytes_atomic
from ir import CallIndex, FrozenGraph, GraphBuilder
from store import (
    MAGIC,
    IndexCorruptError,
    IndexNotFoundError,
    IndexStoreError,
    decode_index,
    delete_index,
    encode_index,
    read_index,
    write_index,
)


def sample_index() -> CallIndex:
    builder = IndexBuilder()
    builder.add_scan(scan_source("proc a {} { b; c; b }\nproc b {} { c }\nproc d {} {}\n", "lib.tcl"))
    builder.add_scan(scan_source("proc é {} { a }\nstart\n", "main.tcl"))
    return builder.build()


def resign(body: bytes) -> bytes:
    return body + hashlib.sha1(body).digest()


class TestIndexStore(unittest.TestCase):
    def test_round_trip_preserves_order_and_duplicates(self):
        index = sample_index()
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "index.dcg"
            write_index(index, path)
            loaded = read_index(path)
        self.assertIsInstance(loaded.calls, FrozenGraph)
        self.assertEqual(list(loaded.calls.get("a")), ["b", "c", "b"])
        self.assertEqual(list(loaded.callers.get("b")), ["a", "a"])
        self.assertEqual(list(loaded.callers.get("a")), ["é"])
        self.assertEqual(loaded.calls, index.calls)
        self.assertEqual(loaded.callers, index.callers)
        self.assertEqual(loaded.declared, ("a", "b", "d", "é"))
        self.assertIsNone(loaded.calls.get("d"))
        self.assertIsNone(loaded.calls.get("unknown"))
        self.assertEqual(loaded.as_dict(), index.as_dict())

    def test_frozen_graph_matches_builder_interface(self):
        loaded = decode_index(encode_index(sample_index()))
        self.assertEqual(len(loaded.calls), 4)
        self.assertEqual(loaded.calls.edge_count(), sample_index().calls.edge_count())
        self.assertIn("a", loaded.calls)
        self.assertNotIn("c", loaded.calls)
        with self.assertRaises(KeyError):
            loaded.calls["c"]

    def test_empty_index(self):
        empty = CallIndex(calls=GraphBuilder(), callers=GraphBuilder())
        loaded = decode_index(encode_index(empty))
        self.assertEqual(len(loaded.calls), 0)
        self.assertEqual(len(loaded.callers), 0)
        self.assertEqual(loaded.declared, ())

    def test_encoding_is_deterministic(self):
        self.assertEqual(encode_index(sample_index()), encode_index(sample_index()))

    def test_rebuild_overwrites_with_identical_bytes(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "index.dcg"
            write_index(sample_index(), path)
            first = path.read_bytes()
            write_index(sample_index(), path)
            self.assertEqual(path.read_bytes(), first)
            self.assertEqual(sorted(p.name for p in Path(temp_dir).iterdir()), ["index.dcg"])

    def test_header(self):
        data = encode_index(sample_index())
        self.assertEqual(data[:4], MAGIC)
        self.assertEqual(struct.unpack("<HH", data[4:8]), (1, 0))

    def test_missing_index(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "index.dcg"
            with self.assertRaises(IndexNotFoundError) as ctx:
                read_index(path)
            self.assertIsInstance(ctx.exception, FileNotFoundError)
            self.assertIsInstance(ctx.exception, IndexStoreError)
            self.assertIn("dcgraph -b", str(ctx.exception))

    def test_corrupt_inputs(self):
        data = encode_index(sample_index())
        body = data[:-20]
        cases = {
            "too small": b"DCGX",
            "bad magic": resign(b"NOPE" + body[4:]),
            "bad version": resign(body[:4] + struct.pack("<H", 99) + body[6:]),
            "checksum": data[:-1] + bytes([data[-1] ^ 0xFF]),
            "flipped body byte": data[:12] + bytes([data[12] ^ 0xFF]) + data[13:],
            "truncated": resign(body[:-3]),
            "trailing": resign(body + b"\x00\x00\x00\x00"),
            "name count": resign(body[:8] + struct.pack("<I", 1000) + body[12:]),
        }
        for label, blob in cases.items():
            with self.subTest(label):
                with self.assertRaises(IndexCorruptError):
                    decode_index(blob)

    def test_corrupt_error_is_value_error(self):
        with self.assertRaises(ValueError):
            decode_index(b"garbage" * 10, source="x.dcg")

    def test_delete_index(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "index.dcg"
            self.assertFalse(delete_index(path))
            write_index(sample_index(), path)
            self.assertTrue(delete_index(path))
            self.assertFalse(path.exists())
            self.assertFalse(delete_index(path))


class TestAtomicWrite(unittest.TestCase):
    @unittest.skipUnless(os.name == "posix", "POSIX permission bits")
    def test_written_file_follows_umask(self):
        umask = os.umask(0o022)
        try:
            with tempfile.TemporaryDirectory() as temp_dir:
                path = write_bytes_atomic(Path(temp_dir) / "index.dcg", b"data")
                self.assertEqual(path.stat().st_mode & 0o777, 0o644)
        finally:
            os.umask(umask)

    def test_failed_replace_leaves_no_temp_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            (root / "index.dcg").write_bytes(b"old")
            with patch("os.replace", side_effect=OSError(28, "No space left on device")):
                with self.assertRaises(OSError):
                    write_bytes_atomic(root / "index.dcg", b"new")
            self.assertEqual([p.name for p in root.iterdir()], ["index.dcg"])
            self.assertEqual((root / "index.dcg").read_bytes(), b"old")


if __name__ == "__main__":
    unittest.main()
