"""Binary pattern node persistence.

Provides the fixed-width record codec, deterministic key generation and
the append-only BinaryNodeStore with root/child enumeration.
"""

from candlestore.store.codec import (
    INDEX_RECORD_SIZE,
    NODE_RECORD_SIZE,
    decode_index_entry,
    decode_node,
    encode_index_entry,
    encode_node,
)
from candlestore.store.keys import KeyGenerator, encode_sequence
from candlestore.store.node_store import BinaryNodeStore

__all__ = [
    "BinaryNodeStore",
    "INDEX_RECORD_SIZE",
    "KeyGenerator",
    "NODE_RECORD_SIZE",
    "decode_index_entry",
    "decode_node",
    "encode_index_entry",
    "encode_node",
    "encode_sequence",
]
