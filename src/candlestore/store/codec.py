"""Fixed-width binary layout for node and index records.

Both files use little-endian byte order regardless of host.

Index record (40 bytes):
    key[16]  data_offset:int64  parent_key[16]

Node record (92 bytes):
    key[16]  frequency:int32  open high low close volume
    top_wick bottom_wick delta percent_change  (9 x float64)

Keys are ASCII, padded with null bytes. Trailing null and space padding is
trimmed on read; an all-blank parent key marks a root node.
"""

import struct
from decimal import Decimal

from candlestore.exceptions import StoreIOError
from candlestore.models import NODE_FIELDS, IndexEntry, NodeRecord

KEY_SIZE = 16

INDEX_STRUCT = struct.Struct("<16sq16s")
NODE_STRUCT = struct.Struct("<16si9d")
FREQUENCY_STRUCT = struct.Struct("<i")

INDEX_RECORD_SIZE = INDEX_STRUCT.size  # 40
NODE_RECORD_SIZE = NODE_STRUCT.size  # 92

#: Byte position of the frequency field inside a node record.
FREQUENCY_OFFSET = KEY_SIZE


def encode_key(key: str) -> bytes:
    """Encode a key to its fixed-width ASCII form."""
    raw = key.encode("ascii")
    if len(raw) > KEY_SIZE:
        raise ValueError(f"Key {key!r} longer than {KEY_SIZE} bytes")
    return raw.ljust(KEY_SIZE, b"\x00")


def decode_key(raw: bytes) -> str:
    try:
        return raw.rstrip(b"\x00 ").decode("ascii")
    except UnicodeDecodeError as exc:
        raise StoreIOError(f"Corrupt node key {raw!r}") from exc


def _to_double(value: Decimal) -> float:
    return float(value)


def _from_double(value: float) -> Decimal:
    # repr gives the shortest string that round-trips the double
    return Decimal(repr(value))


def encode_node(node: NodeRecord) -> bytes:
    """Pack a NodeRecord into its 92-byte on-disk form."""
    return NODE_STRUCT.pack(
        encode_key(node.key),
        node.frequency,
        *(_to_double(getattr(node, name)) for name in NODE_FIELDS),
    )


def decode_node(raw: bytes, offset: int = -1) -> NodeRecord:
    """Unpack 92 bytes into a NodeRecord, decoding fields in persisted order."""
    key, frequency, *values = NODE_STRUCT.unpack(raw)
    fields = {name: _from_double(v) for name, v in zip(NODE_FIELDS, values)}
    return NodeRecord(key=decode_key(key), frequency=frequency, offset=offset, **fields)


def encode_index_entry(entry: IndexEntry) -> bytes:
    """Pack an IndexEntry into its 40-byte on-disk form."""
    return INDEX_STRUCT.pack(
        encode_key(entry.key),
        entry.data_offset,
        encode_key(entry.parent_key),
    )


def decode_index_entry(raw: bytes) -> IndexEntry:
    key, data_offset, parent_key = INDEX_STRUCT.unpack(raw)
    return IndexEntry(
        key=decode_key(key),
        data_offset=data_offset,
        parent_key=decode_key(parent_key),
    )


def encode_frequency(frequency: int) -> bytes:
    return FREQUENCY_STRUCT.pack(frequency)
