"""Append-only binary node store with a parallel index file.

The data file holds fixed-size node records addressed by byte offset.
The index file holds one fixed-size entry per node linking its key to the
data offset and to its parent key. Nodes are never moved or deleted; the
only in-place write is the frequency counter of an existing node.

At open the index file is scanned once to rebuild an in-memory map of
key -> entry and parent -> children, so enumeration does not have to
rescan the file for every incoming candle. Setting ``memory_index=False``
keeps the plain sequential-scan behavior.

Single-process, single-writer. Callers serialize access.
"""

import os
from collections.abc import Iterator
from typing import BinaryIO, Self

from candlestore.exceptions import (
    OffsetOutOfRangeError,
    StoreIOError,
    UnknownNodeError,
)
from candlestore.logging import get_logger
from candlestore.models import NODE_FIELDS, IndexEntry, NodeRecord, to_decimal
from candlestore.store.codec import (
    FREQUENCY_OFFSET,
    INDEX_RECORD_SIZE,
    NODE_RECORD_SIZE,
    decode_index_entry,
    decode_node,
    encode_frequency,
    encode_index_entry,
    encode_node,
)
from candlestore.store.keys import KeyGenerator

logger = get_logger(__name__)

_ROOT = ""


def _open_read_write(path: str) -> BinaryIO:
    """Open a file for random-access read/write, creating it if missing."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if not os.path.exists(path):
        open(path, "xb").close()
    return open(path, "r+b")


class BinaryNodeStore:
    """Durable node/index file pair with offset-addressed random access.

    Usage:
        # Context manager (recommended)
        with BinaryNodeStore("data/MSFT.idx", "data/MSFT.bin") as store:
            key = store.append_node(record)

        # Manual lifecycle
        store = BinaryNodeStore("data/MSFT.idx", "data/MSFT.bin")
        store.open()
        try:
            key = store.append_node(record)
        finally:
            store.close()
    """

    def __init__(
        self,
        index_path: str,
        data_path: str,
        fsync: bool = False,
        memory_index: bool = True,
    ) -> None:
        self._index_path = index_path
        self._data_path = data_path
        self._fsync = fsync
        self._memory_index = memory_index
        self._index_file: BinaryIO | None = None
        self._data_file: BinaryIO | None = None
        self._entries: dict[str, IndexEntry] = {}
        self._children: dict[str, list[str]] = {}
        self._keys = KeyGenerator(start=1)

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._index_file is not None and self._data_file is not None

    def open(self) -> None:
        """Open both files and rebuild the in-memory index.

        Raises StoreIOError if either path is inaccessible. Any handle
        already opened is released before the error propagates.
        """
        try:
            self._index_file = _open_read_write(self._index_path)
            self._data_file = _open_read_write(self._data_path)
            self._load_index()
        except OSError as exc:
            self.close()
            raise StoreIOError(f"Cannot open node store: {exc}") from exc
        except Exception:
            self.close()
            raise

        logger.info(
            "node_store_opened",
            index_path=self._index_path,
            data_path=self._data_path,
            nodes=len(self._entries),
        )

    def close(self) -> None:
        """Release both file handles. Safe to call more than once."""
        was_open = self._index_file is not None or self._data_file is not None
        for handle in (self._index_file, self._data_file):
            if handle is not None:
                handle.close()
        self._index_file = None
        self._data_file = None
        if was_open:
            logger.info("node_store_closed", index_path=self._index_path)

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def _require_open(self) -> tuple[BinaryIO, BinaryIO]:
        if self._index_file is None or self._data_file is None:
            raise StoreIOError("Node store is not open. Call open() first.")
        return self._index_file, self._data_file

    def _load_index(self) -> None:
        """Scan the index file once, dropping a torn trailing entry."""
        index_file, _ = self._require_open()
        size = os.fstat(index_file.fileno()).st_size
        remainder = size % INDEX_RECORD_SIZE
        if remainder:
            logger.warning(
                "index_tail_truncated",
                index_path=self._index_path,
                dropped_bytes=remainder,
            )
            index_file.truncate(size - remainder)
            index_file.flush()

        self._entries.clear()
        self._children.clear()
        for entry in self.iter_index():
            self._register(entry)
        self._keys = KeyGenerator(start=len(self._entries) + 1)

    def _register(self, entry: IndexEntry) -> None:
        self._entries[entry.key] = entry
        self._children.setdefault(entry.parent_key, []).append(entry.key)

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    def append_node(self, record: object, parent_key: str | None = None) -> str:
        """Append a new node (frequency 1) and its index entry.

        ``record`` needs the nine numeric node attributes. Both files are
        flushed before returning, so the append is durable once the key is
        handed back.

        Args:
            record: Fully derived candlestick (or any object with node fields).
            parent_key: Key of the parent node; None creates a root.

        Returns:
            The new node's key.

        Raises:
            RecordParseError: a numeric field is missing or not numeric.
            UnknownNodeError: parent_key is not in the store.
            StoreIOError: the write failed.
        """
        index_file, data_file = self._require_open()
        fields = {name: to_decimal(getattr(record, name, None), name) for name in NODE_FIELDS}
        parent = parent_key or _ROOT
        if parent and parent not in self._entries:
            raise UnknownNodeError(parent)

        key = self._keys.next_key()
        while key in self._entries:
            key = self._keys.next_key()

        try:
            data_file.seek(0, os.SEEK_END)
            offset = data_file.tell()
            node = NodeRecord(key=key, frequency=1, offset=offset, **fields)
            data_file.write(encode_node(node))

            entry = IndexEntry(key=key, data_offset=offset, parent_key=parent)
            index_file.seek(0, os.SEEK_END)
            index_file.write(encode_index_entry(entry))

            self._flush(data_file, index_file)
        except OSError as exc:
            raise StoreIOError(f"Failed to append node: {exc}") from exc

        self._register(entry)
        logger.debug("node_appended", key=key, parent_key=parent or None, offset=offset)
        return key

    def increment_frequency(self, key: str) -> NodeRecord:
        """Add one to a node's frequency in place and return the updated node."""
        _, data_file = self._require_open()
        node = self.get_node(key)
        node.frequency += 1
        try:
            data_file.seek(node.offset + FREQUENCY_OFFSET)
            data_file.write(encode_frequency(node.frequency))
            self._flush(data_file)
        except OSError as exc:
            raise StoreIOError(f"Failed to update frequency of {key}: {exc}") from exc
        return node

    def _flush(self, *handles: BinaryIO) -> None:
        for handle in handles:
            handle.flush()
            if self._fsync:
                os.fsync(handle.fileno())

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    @property
    def data_length(self) -> int:
        _, data_file = self._require_open()
        return os.fstat(data_file.fileno()).st_size

    @property
    def node_count(self) -> int:
        return len(self._entries)

    def read_node_at(self, offset: int) -> NodeRecord:
        """Decode the node record stored at a byte offset.

        Raises OffsetOutOfRangeError unless 0 <= offset < data length, and
        StoreIOError if the record would run past end-of-file.
        """
        _, data_file = self._require_open()
        length = self.data_length
        if not 0 <= offset < length:
            raise OffsetOutOfRangeError(offset, length)
        if offset + NODE_RECORD_SIZE > length:
            raise StoreIOError(f"Truncated node record at offset {offset}")

        try:
            data_file.seek(offset)
            raw = data_file.read(NODE_RECORD_SIZE)
        except OSError as exc:
            raise StoreIOError(f"Failed to read node at {offset}: {exc}") from exc
        if len(raw) != NODE_RECORD_SIZE:
            raise StoreIOError(f"Short read at offset {offset}")
        return decode_node(raw, offset=offset)

    def get_entry(self, key: str) -> IndexEntry:
        entry = self._entries.get(key)
        if entry is None:
            raise UnknownNodeError(key)
        return entry

    def get_node(self, key: str) -> NodeRecord:
        """Look up a node by key through the index."""
        return self.read_node_at(self.get_entry(key).data_offset)

    def iter_index(self) -> Iterator[IndexEntry]:
        """Lazily scan the index file from the start.

        The scan is bounded by the file length when iteration begins;
        entries appended mid-iteration are not yielded.
        """
        index_file, _ = self._require_open()
        end = os.fstat(index_file.fileno()).st_size
        end -= end % INDEX_RECORD_SIZE
        position = 0
        while position < end:
            try:
                index_file.seek(position)
                raw = index_file.read(INDEX_RECORD_SIZE)
            except OSError as exc:
                raise StoreIOError(f"Failed to read index at {position}: {exc}") from exc
            if len(raw) != INDEX_RECORD_SIZE:
                raise StoreIOError(f"Short index read at {position}")
            yield decode_index_entry(raw)
            position += INDEX_RECORD_SIZE

    def enumerate_roots(self) -> Iterator[NodeRecord]:
        """Yield root nodes in append order. Each call starts over."""
        return self._enumerate(_ROOT)

    def enumerate_children(self, parent_key: str) -> Iterator[NodeRecord]:
        """Yield the children of ``parent_key`` in append order. Each call starts over."""
        return self._enumerate(parent_key)

    def _enumerate(self, parent_key: str) -> Iterator[NodeRecord]:
        self._require_open()
        if self._memory_index:
            keys = list(self._children.get(parent_key, ()))
            for key in keys:
                yield self.read_node_at(self._entries[key].data_offset)
        else:
            for entry in self.iter_index():
                if entry.parent_key == parent_key:
                    yield self.read_node_at(entry.data_offset)

    def children_count(self, parent_key: str | None = None) -> int:
        return len(self._children.get(parent_key or _ROOT, ()))

    def stats(self) -> dict:
        """Summary counts for logging.

        Returns dict with nodes, roots and max_frequency.
        """
        max_frequency = 0
        for entry in self._entries.values():
            node = self.read_node_at(entry.data_offset)
            max_frequency = max(max_frequency, node.frequency)
        return {
            "nodes": len(self._entries),
            "roots": self.children_count(),
            "max_frequency": max_frequency,
        }

