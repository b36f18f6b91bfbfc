"""Binary persistence for the call index.

Layout (little-endian, u32 unless noted):

    header    magic b"DCGX", u16 format version, u16 reserved
    names     count, blob_len, offsets[count + 1], utf-8 blob
    calls     keys, edges, key_ids[keys], starts[keys + 1], targets[edges]
    callers   same layout as calls
    declared  count, name_ids[count]
    trailer   sha1 of everything above (20 bytes)

Names are interned in first-appearance order, so an unchanged corpus
scanned in the same order encodes to identical bytes.
"""
from __future__ import annotations

import hashlib
import struct
import sys
from array import array
from pathlib import Path
from typing import Dict, List, Tuple

from _fs import remove_file, write_bytes_atomic
from ir import U32, CallGraph, CallIndex, FrozenGraph, NameTable

MAGIC = b"DCGX"
FORMAT_VERSION = 1

_HEADER = struct.Struct("<4sHH")
_U32 = struct.Struct("<I")
_PAIR = struct.Struct("<II")
_DIGEST_SIZE = hashlib.sha1().digest_size


class IndexStoreError(Exception):
    pass


class IndexNotFoundError(IndexStoreError, FileNotFoundError):
    pass


class IndexCorruptError(IndexStoreError, ValueError):
    pass


def _pack_u32s(values: array) -> bytes:
    if sys.byteorder == "big":
        values = array(U32, values)
        values.byteswap()
    return values.tobytes()


class _Reader:
    def __init__(self, data: bytes, source: str) -> None:
        self._view = memoryview(data)
        self._pos = 0
        self._source = source

    @property
    def pos(self) -> int:
        return self._pos

    def corrupt(self, reason: str) -> IndexCorruptError:
        return IndexCorruptError(f"{self._source}: {reason}")

    def take(self, size: int) -> memoryview:
        end = self._pos + size
        if size < 0 or end > len(self._view):
            raise self.corrupt("truncated index data")
        chunk = self._view[self._pos : end]
        self._pos = end
        return chunk

    def u32(self) -> int:
        return _U32.unpack(self.take(_U32.size))[0]

    def pair(self) -> Tuple[int, int]:
        return _PAIR.unpack(self.take(_PAIR.size))

    def u32_array(self, count: int) -> array:
        values = array(U32)
        values.frombytes(self.take(count * 4))
        if sys.byteorder == "big":
            values.byteswap()
        return values


def _intern_names(index: CallIndex) -> Tuple[List[str], Dict[str, int]]:
    ids: Dict[str, int] = {}
    names: List[str] = []

    def intern(name: str) -> None:
        if name not in ids:
            ids[name] = len(names)
            names.append(name)

    for graph in (index.calls, index.callers):
        for key, edges in graph.items():
            intern(key)
            for target in edges:
                intern(target)
    for name in index.declared:
        intern(name)
    return names, ids


def _encode_graph(graph: CallGraph, ids: Dict[str, int]) -> bytes:
    key_ids = array(U32)
    starts = array(U32, [0])
    targets = array(U32)
    for key, edges in graph.items():
        if not edges:
            continue
        key_ids.append(ids[key])
        targets.extend(ids[target] for target in edges)
        starts.append(len(targets))
    return b"".join(
        [
            _PAIR.pack(len(key_ids), len(targets)),
            _pack_u32s(key_ids),
            _pack_u32s(starts),
            _pack_u32s(targets),
        ]
    )


def encode_index(index: CallIndex) -> bytes:
    names, ids = _intern_names(index)
    encoded = [name.encode("utf-8") for name in names]
    offsets = array(U32, [0])
    for raw in encoded:
        offsets.append(offsets[-1] + len(raw))
    blob = b"".join(encoded)
    declared = array(U32, (ids[name] for name in index.declared))
    body = b"".join(
        [
            _HEADER.pack(MAGIC, FORMAT_VERSION, 0),
            _PAIR.pack(len(names), len(blob)),
            _pack_u32s(offsets),
            blob,
            _encode_graph(index.calls, ids),
            _encode_graph(index.callers, ids),
            _U32.pack(len(declared)),
            _pack_u32s(declared),
        ]
    )
    return body + hashlib.sha1(body).digest()


def _check_ids(reader: _Reader, values: array, limit: int, what: str) -> None:
    if values and max(values) >= limit:
        raise reader.corrupt(f"{what} refers to an unknown name")


def _check_offsets(reader: _Reader, offsets: array, total: int, what: str) -> None:
    if offsets[0] != 0 or offsets[-1] != total:
        raise reader.corrupt(f"{what} offsets do not cover their data")
    for prev, cur in zip(offsets, offsets[1:]):
        if cur < prev:
            raise reader.corrupt(f"{what} offsets are not ascending")


def _decode_graph(reader: _Reader, names: NameTable, what: str) -> FrozenGraph:
    key_count, edge_count = reader.pair()
    key_ids = reader.u32_array(key_count)
    starts = reader.u32_array(key_count + 1)
    targets = reader.u32_array(edge_count)
    _check_ids(reader, key_ids, len(names), what)
    _check_ids(reader, targets, len(names), what)
    _check_offsets(reader, starts, edge_count, what)
    try:
        graph = FrozenGraph(names, key_ids, starts, targets)
    except UnicodeDecodeError as exc:
        raise reader.corrupt(f"invalid procedure name: {exc}") from exc
    if len(graph) != key_count:
        raise reader.corrupt(f"{what} lists a procedure twice")
    return graph


def decode_index(data: bytes, *, source: str = "<index>") -> CallIndex:
    reader = _Reader(data, source)
    if len(data) < _HEADER.size + _DIGEST_SIZE:
        raise reader.corrupt("file is too small to be an index")
    magic, version, _ = _HEADER.unpack(reader.take(_HEADER.size))
    if magic != MAGIC:
        raise reader.corrupt("not a dcgraph index (bad magic)")
    if version != FORMAT_VERSION:
        raise reader.corrupt(f"unsupported index format version {version}")
    body_end = len(data) - _DIGEST_SIZE
    if hashlib.sha1(data[:body_end]).digest() != data[body_end:]:
        raise reader.corrupt("checksum mismatch")
    reader = _Reader(data[:body_end], source)
    reader.take(_HEADER.size)

    name_count, blob_len = reader.pair()
    offsets = reader.u32_array(name_count + 1)
    blob = bytes(reader.take(blob_len))
    _check_offsets(reader, offsets, blob_len, "name table")
    names = NameTable(blob, offsets)

    calls = _decode_graph(reader, names, "call graph")
    callers = _decode_graph(reader, names, "caller graph")

    declared_ids = reader.u32_array(reader.u32())
    _check_ids(reader, declared_ids, len(names), "declared list")
    if reader.pos != body_end:
        raise reader.corrupt("unexpected trailing data")
    try:
        declared = tuple(names[name_id] for name_id in declared_ids)
    except UnicodeDecodeError as exc:
        raise reader.corrupt(f"invalid procedure name: {exc}") from exc
    return CallIndex(calls=calls, callers=callers, declared=declared)


def write_index(index: CallIndex, path: Path) -> Path:
    """Replace the index at `path` wholesale. Raises OSError if it cannot be written."""
    return write_bytes_atomic(path, encode_index(index))


def read_index(path: Path) -> CallIndex:
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise IndexNotFoundError(
            f"No index found at {path}. Build one first with: dcgraph -b PATH..."
        ) from None
    return decode_index(data, source=str(path))


def delete_index(path: Path) -> bool:
    return remove_file(path)
