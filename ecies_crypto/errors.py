"""
Errors
======
Every failure in the envelope pipeline surfaces as one of these.

Nothing is printed and swallowed: low-level exceptions from the
cryptography package are re-raised as the matching kind below with the
original chained as ``__cause__``.
"""


class EciesError(Exception):
    """Base class for all ecies_crypto failures."""


class InvalidInputError(EciesError, ValueError):
    """A required argument was missing, empty or of the wrong type."""


class ConfigurationError(EciesError):
    """The curve / hash / cipher combination cannot be used together."""


class KeyAgreementError(EciesError):
    """ECDH could not be completed (wrong curve, bad scalar, bad point)."""


class InvalidEncodingError(EciesError, ValueError):
    """A point, scalar or container could not be decoded."""


class CipherError(EciesError):
    """The block cipher rejected the operation."""


class AuthenticationError(EciesError):
    """The MAC over the ciphertext did not verify. Data tampered or wrong key."""


class AllocationError(EciesError, MemoryError):
    """A buffer for the container or the plaintext could not be allocated."""
