"""
Keys — generation and boundary encodings
========================================
Recipient key pairs for ECIES and the text encodings used to pass them
around:

    public hex   compressed point, uppercase hex   (02/03 || x)
    private hex  private scalar, uppercase hex, no leading zeros
    PEM          SubjectPublicKeyInfo / PKCS#8, unencrypted

These are adapters only. The envelope pipeline works on the
cryptography key objects these functions return.

Dependencies: cryptography >= 41.0
"""

import logging
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from . import primitives
from .config import EciesConfig, default_config
from .errors import InvalidEncodingError, InvalidInputError

logger = logging.getLogger(__name__)


def _hex_bytes(text: str, what: str) -> bytes:
    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError(f"A {what} hex string is required.")
    try:
        return bytes.fromhex(text.strip())
    except ValueError as exc:
        raise InvalidEncodingError(f"Invalid {what} hex.") from exc


def load_public_hex(text: str, config: Optional[EciesConfig] = None) -> ec.EllipticCurvePublicKey:
    """Decode a compressed (or uncompressed) point from hex onto the configured curve."""
    cfg = config if config is not None else default_config()
    return primitives.decode_point(_hex_bytes(text, "public key"), cfg.curve)


def load_private_hex(text: str, config: Optional[EciesConfig] = None) -> ec.EllipticCurvePrivateKey:
    """Rebuild a private key (and its public point) from the scalar in hex."""
    cfg = config if config is not None else default_config()
    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError("A private key hex string is required.")
    try:
        scalar = int(text.strip(), 16)
    except ValueError as exc:
        raise InvalidEncodingError("Invalid private key hex.") from exc
    try:
        return ec.derive_private_key(scalar, cfg.curve)
    except (ValueError, TypeError) as exc:
        raise InvalidEncodingError(
            f"Private scalar is out of range for {cfg.curve.name}."
        ) from exc


class EciesKeyPair:
    """An EC key pair for receiving ECIES containers."""

    def __init__(self, private_key: Optional[ec.EllipticCurvePrivateKey] = None,
                 public_key: Optional[ec.EllipticCurvePublicKey] = None):
        """
        Pass existing keys, or call generate() to create new ones.
        A private key alone is enough; the public half is derived from it.
        """
        if private_key is not None and public_key is None:
            public_key = private_key.public_key()
        self._private_key = private_key
        self._public_key  = public_key

    @classmethod
    def generate(cls, config: Optional[EciesConfig] = None) -> "EciesKeyPair":
        """Generate a fresh key pair on the configured curve."""
        cfg = config if config is not None else default_config()
        private_key = primitives.generate_key_pair(cfg.curve)
        logger.debug(f"Generated {cfg.curve.name} recipient key pair")
        return cls(private_key=private_key)

    @classmethod
    def from_hex(cls, private_hex: str = None, public_hex: str = None,
                 config: Optional[EciesConfig] = None) -> "EciesKeyPair":
        priv = load_private_hex(private_hex, config) if private_hex else None
        pub  = load_public_hex(public_hex, config) if public_hex else None
        return cls(private_key=priv, public_key=pub)

    @classmethod
    def from_pem(cls, private_pem: bytes = None,
                 public_pem: bytes = None) -> "EciesKeyPair":
        """Load keys from PEM bytes."""
        try:
            priv = (serialization.load_pem_private_key(private_pem, password=None)
                    if private_pem else None)
            pub  = (serialization.load_pem_public_key(public_pem)
                    if public_pem else None)
        except (ValueError, TypeError) as exc:
            raise InvalidEncodingError("Invalid PEM key.") from exc
        for key in (priv, pub):
            if key is not None and not isinstance(
                    key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
                raise InvalidEncodingError("PEM does not hold an EC key.")
        return cls(private_key=priv, public_key=pub)

    @property
    def private_key(self) -> Optional[ec.EllipticCurvePrivateKey]:
        return self._private_key

    @property
    def public_key(self) -> Optional[ec.EllipticCurvePublicKey]:
        return self._public_key

    def export_public_hex(self) -> str:
        if self._public_key is None:
            raise InvalidInputError("No public key loaded.")
        return primitives.encode_point(self._public_key).hex().upper()

    def export_private_hex(self) -> str:
        if self._private_key is None:
            raise InvalidInputError("No private key loaded.")
        return format(self._private_key.private_numbers().private_value, "X")

    def export_public_pem(self) -> bytes:
        if self._public_key is None:
            raise InvalidInputError("No public key loaded.")
        return self._public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo
        )

    def export_private_pem(self) -> bytes:
        if self._private_key is None:
            raise InvalidInputError("No private key loaded.")
        return self._private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption()
        )

    def __repr__(self):
        key = self._public_key or self._private_key
        name = key.curve.name if key is not None else "empty"
        return f"EciesKeyPair({name}, private={'yes' if self._private_key else 'no'})"
