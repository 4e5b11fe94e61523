"""
Key agreement + KDF
===================
ECDH between a local private key and a counterparty public key, reduced
to one digest of envelope key material:

    envelope_key = HASH(x-coordinate of d * Q)

    encrypt side:  d = ephemeral private,  Q = recipient public
    decrypt side:  d = recipient private,  Q = ephemeral public

Both pairings land on the same point, so both sides derive the same
envelope key bit for bit. The envelope key is split in two:

    [0 : key_length]              cipher key
    [key_length : 2*key_length]   MAC key

Dependencies: cryptography >= 41.0
"""

import logging

from cryptography.hazmat.primitives.asymmetric import ec

from . import primitives
from .config import EciesConfig
from .errors import KeyAgreementError

logger = logging.getLogger(__name__)


def derive_key(config: EciesConfig, shared_secret: bytes) -> bytearray:
    """KDF: a single digest of the shared secret, as a wipeable buffer."""
    return bytearray(primitives.digest(config.hash_algorithm, shared_secret))


def check_curve(config: EciesConfig, key, role: str) -> None:
    if key.curve.name != config.curve.name:
        raise KeyAgreementError(
            f"The {role} key is on {key.curve.name}, expected {config.curve.name}."
        )


def agree(config: EciesConfig, private_key: ec.EllipticCurvePrivateKey,
          public_key: ec.EllipticCurvePublicKey) -> "EnvelopeKey":
    """
    Run ECDH and the KDF together. The intermediate shared secret is wiped
    before returning, whether or not derivation succeeded.
    """
    check_curve(config, private_key, "private")
    check_curve(config, public_key, "public")
    shared = primitives.compute_shared_secret(private_key, public_key)
    try:
        material = derive_key(config, shared)
    finally:
        primitives.wipe(shared)
    return EnvelopeKey(material, config.key_length)


class EnvelopeKey:
    """
    Call-local symmetric secret. Use as a context manager so the buffer is
    zeroed on every exit path:

        with agree(config, priv, pub) as env:
            ... env.cipher_key, env.mac_key ...
    """

    def __init__(self, material: bytearray, key_length: int):
        self._material   = material
        self._key_length = key_length

    @property
    def cipher_key(self) -> bytes:
        return bytes(self._material[:self._key_length])

    @property
    def mac_key(self) -> bytes:
        return bytes(self._material[self._key_length:2 * self._key_length])

    def __len__(self) -> int:
        return len(self._material)

    def wipe(self) -> None:
        primitives.wipe(self._material)

    def __enter__(self) -> "EnvelopeKey":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self):
        return f"EnvelopeKey({len(self._material)}B, key_length={self._key_length})"
