"""
Primitive provider
==================
Thin facade over the ``cryptography`` package. Curve arithmetic, ECDH,
SHA-2, HMAC and AES are all delegated; nothing here reimplements a
primitive. The only job of this module is to present those operations
with the shapes the envelope pipeline needs and to translate library
exceptions into the typed errors from ``ecies_crypto.errors``.

Dependencies: cryptography >= 41.0
"""

import hmac as _hmac
from typing import Union

from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, modes

from .config import CipherSuite
from .errors import CipherError, InvalidEncodingError, KeyAgreementError

Buffer = Union[bytes, bytearray, memoryview]


# ── Curve points ──────────────────────────────────────────────────────────────

def generate_key_pair(curve: ec.EllipticCurve) -> ec.EllipticCurvePrivateKey:
    """Fresh private key on ``curve``; the public half is ``.public_key()``."""
    return ec.generate_private_key(curve)


def encode_point(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Compressed X9.62 encoding: 0x02/0x03 prefix || x."""
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.CompressedPoint,
    )


def decode_point(data: Buffer, curve: ec.EllipticCurve) -> ec.EllipticCurvePublicKey:
    """Inverse of encode_point. Rejects malformed and off-curve points."""
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(curve, bytes(data))
    except (ValueError, TypeError) as exc:
        raise InvalidEncodingError(
            f"Invalid {curve.name} point encoding ({len(data)} bytes)."
        ) from exc


def compute_shared_secret(private_key: ec.EllipticCurvePrivateKey,
                          public_key: ec.EllipticCurvePublicKey) -> bytearray:
    """
    Raw ECDH: the affine x-coordinate of private * public, zero-padded to
    the field size. Returned as a bytearray so the caller can wipe it.
    """
    try:
        return bytearray(private_key.exchange(ec.ECDH(), public_key))
    except (ValueError, TypeError) as exc:
        raise KeyAgreementError(f"ECDH exchange failed: {exc}") from exc


# ── Hash / MAC ────────────────────────────────────────────────────────────────

def digest(algorithm: hashes.HashAlgorithm, data: Buffer) -> bytes:
    h = hashes.Hash(algorithm)
    h.update(bytes(data))
    return h.finalize()


def hmac_digest(algorithm: hashes.HashAlgorithm, key: Buffer, data: Buffer) -> bytes:
    h = hmac.HMAC(bytes(key), algorithm)
    h.update(bytes(data))
    return h.finalize()


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Comparison time does not depend on how many leading bytes match."""
    return _hmac.compare_digest(a, b)


# ── Block cipher ──────────────────────────────────────────────────────────────

def _cipher(suite: CipherSuite, key: Buffer, iv: bytes) -> Cipher:
    try:
        return Cipher(suite.algorithm(bytes(key)), modes.CBC(iv))
    except (ValueError, TypeError) as exc:
        raise CipherError(f"Unable to initialise {suite.name}: {exc}") from exc


def block_encrypt(suite: CipherSuite, key: Buffer, iv: bytes, data: Buffer) -> bytes:
    """
    Encrypt whole blocks with no padding applied. ``data`` must already be
    a multiple of the block size.
    """
    if len(data) % suite.block_size:
        raise CipherError(
            f"{suite.name} input is not block aligned ({len(data)} bytes)."
        )
    try:
        encryptor = _cipher(suite, key, iv).encryptor()
        return encryptor.update(bytes(data)) + encryptor.finalize()
    except ValueError as exc:
        raise CipherError(f"Unable to encrypt with {suite.name}: {exc}") from exc


def block_decrypt(suite: CipherSuite, key: Buffer, iv: bytes, data: Buffer) -> bytes:
    """Decrypt whole blocks. Padding is left in place for the caller."""
    if len(data) % suite.block_size:
        raise CipherError(
            f"{suite.name} input is not block aligned ({len(data)} bytes)."
        )
    try:
        decryptor = _cipher(suite, key, iv).decryptor()
        return decryptor.update(bytes(data)) + decryptor.finalize()
    except ValueError as exc:
        raise CipherError(f"Unable to decrypt with {suite.name}: {exc}") from exc


# ── Secret hygiene ────────────────────────────────────────────────────────────

def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable secret buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))
