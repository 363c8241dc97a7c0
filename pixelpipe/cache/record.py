"""Cache entries and the versioned on-disk record format.

A record is laid out as::

    magic      4 bytes   b"PXPC"
    version    1 byte    currently 1
    meta_len   4 bytes   big-endian length of the metadata block
    metadata   meta_len  UTF-8 JSON array of [name, value] pairs
    data_len   8 bytes   big-endian length of the payload
    payload    data_len  the derived artifact

The record must end exactly after the payload. Anything else is structurally
invalid.
"""

import json
import struct
from dataclasses import dataclass, field
from typing import List, Tuple

import httpx
from pydantic import TypeAdapter

from pixelpipe.exceptions import InvalidCacheRecordError

RECORD_MAGIC = b"PXPC"
RECORD_VERSION = 1

_PREAMBLE = struct.Struct(">4sBI")
_PAYLOAD_LENGTH = struct.Struct(">Q")

HeaderList = List[Tuple[str, str]]

MetadataAdapter = TypeAdapter(HeaderList)


@dataclass
class CacheEntry:
    """A derived artifact together with the response headers it was served with.

    Attributes:
        payload: The artifact bytes.
        metadata: Header name/value pairs. Repeated names and order are preserved.
    """

    payload: bytes
    metadata: HeaderList = field(default_factory=list)

    @classmethod
    def from_headers(cls, payload: bytes, headers: httpx.Headers) -> "CacheEntry":
        encoding = headers.encoding
        return cls(
            payload=payload,
            metadata=[(name.decode(encoding), value.decode(encoding)) for name, value in headers.raw],
        )

    def to_headers(self) -> httpx.Headers:
        return httpx.Headers(self.metadata)


def encode_record(entry: CacheEntry) -> bytes:
    """Serialize an entry into the versioned record format."""
    metadata = json.dumps([[name, value] for name, value in entry.metadata], separators=(",", ":")).encode("utf-8")
    return b"".join(
        (
            _PREAMBLE.pack(RECORD_MAGIC, RECORD_VERSION, len(metadata)),
            metadata,
            _PAYLOAD_LENGTH.pack(len(entry.payload)),
            entry.payload,
        )
    )


def decode_record(data: bytes) -> CacheEntry:
    """Parse a record produced by ``encode_record``.

    Raises:
        InvalidCacheRecordError: If the data is truncated, has trailing bytes,
            carries an unknown magic or version, or the metadata is not a list
            of string pairs.
    """
    if len(data) < _PREAMBLE.size:
        raise InvalidCacheRecordError("Record is shorter than its preamble")

    magic, version, metadata_length = _PREAMBLE.unpack_from(data, 0)
    if magic != RECORD_MAGIC:
        raise InvalidCacheRecordError(f"Unexpected record magic {magic!r}")
    if version != RECORD_VERSION:
        raise InvalidCacheRecordError(f"Unsupported record version {version}")

    offset = _PREAMBLE.size
    metadata_end = offset + metadata_length
    if metadata_end + _PAYLOAD_LENGTH.size > len(data):
        raise InvalidCacheRecordError("Record metadata block is truncated")

    try:
        metadata = MetadataAdapter.validate_json(data[offset:metadata_end], strict=True)
    except ValueError as e:
        raise InvalidCacheRecordError(f"Record metadata is malformed: {e}") from e

    (payload_length,) = _PAYLOAD_LENGTH.unpack_from(data, metadata_end)
    payload_start = metadata_end + _PAYLOAD_LENGTH.size
    if payload_start + payload_length != len(data):
        raise InvalidCacheRecordError(
            f"Record payload length mismatch: expected {payload_length} bytes, "
            f"found {len(data) - payload_start}"
        )

    return CacheEntry(payload=bytes(data[payload_start:]), metadata=metadata)
