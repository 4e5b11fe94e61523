"""
ecies_crypto
============
Elliptic Curve Integrated Encryption Scheme.
Ephemeral ECDH + SHA-512 KDF + AES-256-CBC + HMAC-SHA-512, packed into
one self-describing container.

Modules:
    config      EciesConfig — curve / hash / cipher suite, shared default
    primitives  thin facade over the cryptography package
    agreement   ECDH + KDF -> envelope key (cipher half, MAC half)
    container   SecureContainer — header + key / MAC / body segments
    envelope    EciesCipher — encrypt / decrypt pipeline
    keys        EciesKeyPair — generation, hex and PEM encodings
    errors      typed failures

Quick use:
    >>> pair = EciesKeyPair.generate()
    >>> blob = bytes(encrypt(pair.public_key, b"This is a test"))
    >>> decrypt(pair.private_key, blob)
    b'This is a test'

License: Apache 2.0
"""

__version__ = "1.0.0"

from .config     import CipherSuite, EciesConfig, default_config
from .container  import SecureContainer
from .envelope   import EciesCipher, decrypt, decrypt_hex, encrypt, encrypt_hex
from .keys       import EciesKeyPair, load_private_hex, load_public_hex
from .errors     import (
    AllocationError,
    AuthenticationError,
    CipherError,
    ConfigurationError,
    EciesError,
    InvalidEncodingError,
    InvalidInputError,
    KeyAgreementError,
)

__all__ = [
    "CipherSuite",
    "EciesConfig",
    "default_config",
    "SecureContainer",
    "EciesCipher",
    "encrypt",
    "decrypt",
    "encrypt_hex",
    "decrypt_hex",
    "EciesKeyPair",
    "load_public_hex",
    "load_private_hex",
    "EciesError",
    "InvalidInputError",
    "ConfigurationError",
    "KeyAgreementError",
    "InvalidEncodingError",
    "CipherError",
    "AuthenticationError",
    "AllocationError",
]
