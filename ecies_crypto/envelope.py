"""
Envelope encryption — ECIES
===========================
Hybrid public-key encryption: a fresh ephemeral EC key per message,
ECDH against the recipient key, one digest of envelope key material,
then AES-CBC for the body and HMAC over the ciphertext.

Encrypt:
    1. check recipient key is on the configured curve
    2. generate ephemeral key pair
    3. ECDH(ephemeral, recipient) -> KDF -> envelope key
    4. body length = plaintext length rounded up to the block size
    5. key segment = compressed ephemeral public key
    6. CBC over full blocks; final partial block zero padded
    7. tag = HMAC(mac key, body)
    8. wipe envelope key, drop ephemeral private key

Decrypt:
    1. decode ephemeral public key from the key segment
    2. ECDH(recipient, ephemeral) -> KDF -> envelope key
    3. verify tag in constant time; stop here on mismatch
    4. CBC decrypt the whole body
    5. cut back to orig_length

The padding is plain zeros and is never checked: the true length rides
in the container header. The IV is all zeros. Every message is keyed by
its own ephemeral ECDH so the (key, IV) pair is never repeated, but this
is weaker than a random IV and changing it would change the wire format.

Dependencies: cryptography >= 41.0
"""

import logging
from typing import Optional, Union

from cryptography.hazmat.primitives.asymmetric import ec

from . import primitives
from .agreement import agree, check_curve
from .config import EciesConfig, default_config
from .container import SecureContainer
from .errors import (
    AllocationError,
    AuthenticationError,
    CipherError,
    InvalidEncodingError,
    InvalidInputError,
)
from .keys import load_private_hex, load_public_hex

logger = logging.getLogger(__name__)


class EciesCipher:
    """ECIES encrypt / decrypt bound to one curve / hash / cipher suite."""

    def __init__(self, config: Optional[EciesConfig] = None):
        """Pass an EciesConfig, or omit to use the shared default."""
        self._config = config if config is not None else default_config()
        self._iv     = bytes(self._config.block_size)

    @property
    def config(self) -> EciesConfig:
        return self._config

    # ── encrypt ──────────────────────────────────────────────────────────────
    def encrypt(self, public_key: ec.EllipticCurvePublicKey,
                plaintext: bytes) -> SecureContainer:
        """
        Encrypt for the holder of the private key matching ``public_key``.
        Returns an immutable SecureContainer; ``bytes(container)`` is the wire form.
        """
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise InvalidInputError("A recipient EC public key is required.")
        if not isinstance(plaintext, (bytes, bytearray, memoryview)):
            raise InvalidInputError("Plaintext must be bytes.")
        try:
            plaintext = memoryview(plaintext).cast("B")
        except TypeError as exc:
            raise InvalidInputError("Plaintext must be a contiguous buffer.") from exc
        if not len(plaintext):
            raise InvalidInputError("Plaintext must not be empty.")

        cfg = self._config
        check_curve(cfg, public_key, "recipient")

        ephemeral = primitives.generate_key_pair(cfg.curve)
        try:
            key_segment = primitives.encode_point(ephemeral.public_key())
            envelope    = agree(cfg, ephemeral, public_key)
        finally:
            del ephemeral

        with envelope:
            body_length = cfg.padded_length(len(plaintext))
            body = self._encrypt_body(envelope.cipher_key, plaintext, body_length)
            tag  = primitives.hmac_digest(cfg.hash_algorithm, envelope.mac_key, body)

        container = SecureContainer(
            key_segment=key_segment,
            mac_segment=tag,
            body_segment=body,
            orig_length=len(plaintext),
        )
        logger.debug(f"ECIES encrypt: {container!r}")
        return container

    def _encrypt_body(self, cipher_key: bytes, plaintext: bytes,
                      body_length: int) -> bytes:
        try:
            padded = bytearray(body_length)
        except MemoryError as exc:
            raise AllocationError(
                f"Unable to allocate {body_length} bytes for the body."
            ) from exc
        try:
            # Full blocks go straight through; the tail block keeps zero fill.
            padded[:len(plaintext)] = plaintext
            body = primitives.block_encrypt(self._config.cipher, cipher_key,
                                            self._iv, padded)
        finally:
            primitives.wipe(padded)
        if len(body) != body_length:
            raise CipherError(
                f"Cipher produced {len(body)} bytes, expected {body_length}."
            )
        return body

    # ── decrypt ──────────────────────────────────────────────────────────────
    def decrypt(self, private_key: ec.EllipticCurvePrivateKey,
                container: Union[SecureContainer, bytes]) -> bytes:
        """
        Verify and decrypt a container produced by encrypt().
        Raises AuthenticationError if the body or tag was altered, or if
        ``private_key`` is not the recipient's.

        The MAC covers the body only. The header, orig_length included, is
        not authenticated: a rewritten orig_length shortens the returned
        plaintext by up to one block without raising.
        """
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise InvalidInputError("A recipient EC private key is required.")
        if isinstance(container, (bytes, bytearray, memoryview)):
            container = SecureContainer.from_bytes(container)
        if not isinstance(container, SecureContainer):
            raise InvalidInputError("A SecureContainer or its serialized bytes is required.")

        cfg = self._config
        if container.key_length != cfg.point_length:
            raise InvalidEncodingError(
                f"Key segment is {container.key_length} bytes, "
                f"expected {cfg.point_length} for {cfg.curve.name}."
            )
        if container.orig_length == 0:
            raise InvalidEncodingError("Container carries no data.")
        container.check_block_size(cfg.block_size)

        ephemeral_public = primitives.decode_point(container.key_segment, cfg.curve)

        with agree(cfg, private_key, ephemeral_public) as envelope:
            tag = primitives.hmac_digest(cfg.hash_algorithm, envelope.mac_key,
                                         container.body_segment)
            if (container.mac_length != len(tag)
                    or not primitives.constant_time_equals(tag, container.mac_segment)):
                logger.warning("ECIES decrypt: authentication code mismatch, "
                               "container rejected")
                raise AuthenticationError(
                    "The authentication code was invalid. "
                    "The ciphered data has been corrupted or the wrong key was used."
                )
            padded = primitives.block_decrypt(cfg.cipher, envelope.cipher_key,
                                              self._iv, container.body_segment)

        logger.debug(f"ECIES decrypt: {container!r}")
        return padded[:container.orig_length]


# ── module-level convenience API ─────────────────────────────────────────────

def encrypt(public_key: ec.EllipticCurvePublicKey, plaintext: bytes) -> SecureContainer:
    """Encrypt with the shared default configuration."""
    return EciesCipher().encrypt(public_key, plaintext)


def decrypt(private_key: ec.EllipticCurvePrivateKey,
            container: Union[SecureContainer, bytes]) -> bytes:
    """Decrypt with the shared default configuration."""
    return EciesCipher().decrypt(private_key, container)


def encrypt_hex(public_hex: str, plaintext: bytes) -> SecureContainer:
    """Encrypt for a recipient given as a compressed-point hex string."""
    return encrypt(load_public_hex(public_hex), plaintext)


def decrypt_hex(private_hex: str, container: Union[SecureContainer, bytes]) -> bytes:
    """Decrypt with a recipient private scalar given as a hex string."""
    return decrypt(load_private_hex(private_hex), container)
