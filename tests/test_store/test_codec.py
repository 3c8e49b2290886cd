"""Tests for the fixed-width binary record codec."""

import struct
from decimal import Decimal

import pytest

from candlestore.exceptions import StoreIOError
from candlestore.models import IndexEntry, NodeRecord
from candlestore.store.codec import (
    INDEX_RECORD_SIZE,
    NODE_RECORD_SIZE,
    decode_index_entry,
    decode_key,
    decode_node,
    encode_index_entry,
    encode_key,
    encode_node,
)


def _make_node(key: str = "0000000000000001", frequency: int = 1) -> NodeRecord:
    return NodeRecord(
        key=key,
        frequency=frequency,
        open=Decimal("140.00"),
        high=Decimal("142.00"),
        low=Decimal("139.00"),
        close=Decimal("141.20"),
        volume=Decimal("500000"),
        top_wick=Decimal("0.8"),
        bottom_wick=Decimal("1"),
        delta=Decimal("-0.35"),
        percent_change=Decimal("1.0123456789"),
    )


class TestRecordSizes:
    def test_index_record_is_40_bytes(self) -> None:
        assert INDEX_RECORD_SIZE == 40
        assert len(encode_index_entry(IndexEntry("A", 0))) == 40

    def test_node_record_is_92_bytes(self) -> None:
        assert NODE_RECORD_SIZE == 92
        assert len(encode_node(_make_node())) == 92


class TestKeys:
    def test_key_null_padded(self) -> None:
        assert encode_key("ABC") == b"ABC" + b"\x00" * 13

    def test_decode_trims_nulls_and_spaces(self) -> None:
        assert decode_key(b"ABC" + b"\x00" * 13) == "ABC"
        assert decode_key(b"ABC" + b" " * 13) == "ABC"

    def test_blank_key(self) -> None:
        assert encode_key("") == b"\x00" * 16
        assert decode_key(b"\x00" * 16) == ""

    def test_key_too_long(self) -> None:
        with pytest.raises(ValueError):
            encode_key("X" * 17)

    def test_non_ascii_key_is_store_error(self) -> None:
        with pytest.raises(StoreIOError):
            decode_key(b"\xffABC" + b"\x00" * 12)


class TestIndexEntryLayout:
    def test_little_endian_offset(self) -> None:
        raw = encode_index_entry(IndexEntry("K1", 92, "K0"))
        assert raw[16:24] == (92).to_bytes(8, "little", signed=True)

    def test_root_parent_is_all_zero(self) -> None:
        raw = encode_index_entry(IndexEntry("K1", 0))
        assert raw[24:40] == b"\x00" * 16

    def test_decode(self) -> None:
        entry = decode_index_entry(encode_index_entry(IndexEntry("K2", 184, "K1")))
        assert entry == IndexEntry(key="K2", data_offset=184, parent_key="K1")
        assert entry.is_root is False

    def test_decode_root(self) -> None:
        entry = decode_index_entry(encode_index_entry(IndexEntry("K1", 0)))
        assert entry.is_root is True


class TestNodeLayout:
    def test_field_order(self) -> None:
        """Frequency then the nine doubles in persisted order."""
        raw = encode_node(_make_node(frequency=7))
        frequency, *values = struct.unpack("<i9d", raw[16:])
        assert frequency == 7
        assert values == [140.0, 142.0, 139.0, 141.2, 500000.0, 0.8, 1.0, -0.35, 1.0123456789]

    def test_decimal_values_survive(self) -> None:
        node = _make_node()
        decoded = decode_node(encode_node(node), offset=184)
        assert decoded.key == node.key
        assert decoded.offset == 184
        assert decoded.close == Decimal("141.2")
        assert decoded.delta == Decimal("-0.35")
        assert decoded.percent_change == Decimal("1.0123456789")
