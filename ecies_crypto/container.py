"""
Container format
================
The serialized ECIES envelope. One self-describing blob, so a decrypting
party needs nothing but the blob and its private key.

Wire layout (all integers unsigned 64-bit big-endian):

    +------------+------------+-------------+-------------+
    | key_length | mac_length | orig_length | body_length |   32-byte header
    +------------+------------+-------------+-------------+
    | key_segment | mac_segment | body_segment |              no gaps
    +-------------+-------------+--------------+

    key_segment   ephemeral public key, compressed point
    mac_segment   HMAC over body_segment
    body_segment  ciphertext, zero padded up to the cipher block size
    orig_length   plaintext length before padding (header only)

Segments are reached through the dataclass fields, never by offset.
"""

import struct
from dataclasses import dataclass
from typing import Optional, Union

from .errors import AllocationError, InvalidEncodingError

HEADER = struct.Struct(">QQQQ")
HEADER_SIZE = HEADER.size


@dataclass(frozen=True)
class SecureContainer:
    key_segment: bytes
    mac_segment: bytes
    body_segment: bytes
    orig_length: int

    def __post_init__(self):
        for name in ("key_segment", "mac_segment", "body_segment"):
            value = getattr(self, name)
            if not isinstance(value, bytes):
                # Freeze bytearray/memoryview input so the record stays immutable.
                object.__setattr__(self, name, bytes(value))
        if self.orig_length < 0:
            raise InvalidEncodingError("Original length cannot be negative.")
        if len(self.body_segment) < self.orig_length:
            raise InvalidEncodingError(
                f"Body ({len(self.body_segment)} bytes) is shorter than the "
                f"original length ({self.orig_length} bytes)."
            )

    # ── lengths ──────────────────────────────────────────────────────────────
    @property
    def key_length(self) -> int:
        return len(self.key_segment)

    @property
    def mac_length(self) -> int:
        return len(self.mac_segment)

    @property
    def body_length(self) -> int:
        return len(self.body_segment)

    @property
    def padding_length(self) -> int:
        return self.body_length - self.orig_length

    def __len__(self) -> int:
        return HEADER_SIZE + self.key_length + self.mac_length + self.body_length

    def check_block_size(self, block_size: int) -> None:
        """Body must be block aligned and carry less than one block of padding."""
        if self.body_length % block_size:
            raise InvalidEncodingError(
                f"Body length {self.body_length} is not a multiple of {block_size}."
            )
        if self.padding_length >= block_size:
            raise InvalidEncodingError(
                f"Body carries {self.padding_length} padding bytes; "
                f"at most {block_size - 1} are allowed."
            )

    # ── wire format ──────────────────────────────────────────────────────────
    def to_bytes(self) -> bytes:
        header = HEADER.pack(self.key_length, self.mac_length,
                             self.orig_length, self.body_length)
        return b"".join((header, self.key_segment, self.mac_segment, self.body_segment))

    __bytes__ = to_bytes

    @classmethod
    def from_bytes(cls, blob: Union[bytes, bytearray, memoryview],
                   max_size: Optional[int] = None) -> "SecureContainer":
        """
        Parse a blob produced by to_bytes(). Truncated input, trailing bytes
        and inconsistent lengths raise InvalidEncodingError.
        """
        view = memoryview(blob)
        if len(view) < HEADER_SIZE:
            raise InvalidEncodingError(
                f"Container too short for header ({len(view)} < {HEADER_SIZE} bytes)."
            )
        key_len, mac_len, orig_len, body_len = HEADER.unpack_from(view, 0)
        expected = HEADER_SIZE + key_len + mac_len + body_len
        if max_size is not None and expected > max_size:
            raise AllocationError(
                f"Container declares {expected} bytes, limit is {max_size}."
            )
        if len(view) != expected:
            raise InvalidEncodingError(
                f"Container length mismatch: header declares {expected} bytes, "
                f"got {len(view)}."
            )
        key_end = HEADER_SIZE + key_len
        mac_end = key_end + mac_len
        return cls(
            key_segment=bytes(view[HEADER_SIZE:key_end]),
            mac_segment=bytes(view[key_end:mac_end]),
            body_segment=bytes(view[mac_end:expected]),
            orig_length=orig_len,
        )

    def __repr__(self):
        return (f"SecureContainer(key={self.key_length}B mac={self.mac_length}B "
                f"orig={self.orig_length}B body={self.body_length}B)")
