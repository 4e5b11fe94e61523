"""
Configuration — curve, hash and cipher suite
============================================
One ``EciesConfig`` fixes everything the container format depends on:

    curve           secp521r1 (default)   -> key segment = compressed point
    hash_algorithm  SHA-512   (default)   -> KDF output and MAC segment
    cipher          AES-256-CBC (default) -> body block size and key half

The KDF hands out exactly one digest of envelope key material, which is
split into a cipher half and a MAC half. A suite whose cipher key is more
than half the digest size can never be keyed, so it is rejected here,
once, before any message is processed.

The process-wide default is built lazily from ECIES_CURVE / ECIES_HASH /
ECIES_CIPHER on first use and is immutable afterwards.

Dependencies: cryptography >= 41.0
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import BlockCipherAlgorithm, algorithms

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CURVE  = "secp521r1"
DEFAULT_HASH   = "sha512"
DEFAULT_CIPHER = "aes-256-cbc"


@dataclass(frozen=True)
class CipherSuite:
    """A block cipher run in CBC mode with manual zero padding."""

    name: str
    key_length: int
    block_size: int
    algorithm: Callable[[bytes], BlockCipherAlgorithm] = field(
        repr=False, compare=False)


CURVES: Dict[str, Callable[[], ec.EllipticCurve]] = {
    "secp256r1": ec.SECP256R1,
    "prime256v1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
    "secp521r1": ec.SECP521R1,
    "secp256k1": ec.SECP256K1,
}

HASHES: Dict[str, Callable[[], hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
    "sha3-512": hashes.SHA3_512,
}

CIPHERS: Dict[str, CipherSuite] = {
    "aes-128-cbc": CipherSuite("aes-128-cbc", 16, 16, algorithms.AES),
    "aes-192-cbc": CipherSuite("aes-192-cbc", 24, 16, algorithms.AES),
    "aes-256-cbc": CipherSuite("aes-256-cbc", 32, 16, algorithms.AES),
}


def _lookup(registry: dict, kind: str, name: str):
    try:
        return registry[name.strip().lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"Unknown {kind} {name!r}. Choose one of: {', '.join(sorted(registry))}"
        ) from None


@dataclass(frozen=True)
class EciesConfig:
    """Immutable (curve, hash, cipher) triple shared by encrypt and decrypt."""

    curve: ec.EllipticCurve = field(default_factory=ec.SECP521R1)
    hash_algorithm: hashes.HashAlgorithm = field(default_factory=hashes.SHA512)
    cipher: CipherSuite = CIPHERS[DEFAULT_CIPHER]

    def __post_init__(self):
        if not isinstance(self.curve, ec.EllipticCurve):
            raise ConfigurationError(f"Not an elliptic curve: {self.curve!r}")
        if not isinstance(self.hash_algorithm, hashes.HashAlgorithm):
            raise ConfigurationError(f"Not a hash algorithm: {self.hash_algorithm!r}")
        if self.cipher.key_length * 2 > self.hash_algorithm.digest_size:
            raise ConfigurationError(
                "The key derivation method will not produce enough envelope key "
                f"material for {self.cipher.name}. "
                f"(envelope = {self.hash_algorithm.digest_size} bytes / "
                f"required = {self.cipher.key_length * 2} bytes)"
            )
        if self.cipher.block_size <= 0:
            raise ConfigurationError(f"Invalid block size for {self.cipher.name}.")

    @classmethod
    def from_names(cls, curve: str = DEFAULT_CURVE, hash: str = DEFAULT_HASH,
                   cipher: str = DEFAULT_CIPHER) -> "EciesConfig":
        """Build a config from registry names, e.g. ``("secp256r1", "sha512", "aes-128-cbc")``."""
        return cls(
            curve=_lookup(CURVES, "curve", curve)(),
            hash_algorithm=_lookup(HASHES, "hash", hash)(),
            cipher=_lookup(CIPHERS, "cipher", cipher),
        )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "EciesConfig":
        env = os.environ if environ is None else environ
        return cls.from_names(
            curve=env.get("ECIES_CURVE", DEFAULT_CURVE),
            hash=env.get("ECIES_HASH", DEFAULT_HASH),
            cipher=env.get("ECIES_CIPHER", DEFAULT_CIPHER),
        )

    @property
    def digest_size(self) -> int:
        return self.hash_algorithm.digest_size

    @property
    def mac_length(self) -> int:
        return self.hash_algorithm.digest_size

    @property
    def key_length(self) -> int:
        return self.cipher.key_length

    @property
    def block_size(self) -> int:
        return self.cipher.block_size

    @property
    def point_length(self) -> int:
        """Size of a compressed point: one prefix byte plus the x-coordinate."""
        return 1 + (self.curve.key_size + 7) // 8

    def padded_length(self, length: int) -> int:
        """Round ``length`` up to the next multiple of the cipher block size."""
        remainder = length % self.block_size
        return length + (self.block_size - remainder if remainder else 0)

    def describe(self) -> str:
        return f"{self.curve.name}/{self.hash_algorithm.name}/{self.cipher.name}"


_default: Optional[EciesConfig] = None
_default_lock = threading.Lock()


def default_config() -> EciesConfig:
    """
    Return the shared default configuration.
    Built once, from the environment, on the first call from any thread.
    """
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = EciesConfig.from_env()
                logger.info(f"ECIES default configuration: {_default.describe()}")
    return _default
