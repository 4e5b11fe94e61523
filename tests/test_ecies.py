"""
ecies_crypto — envelope pipeline tests
======================================
Run with:  python -m pytest tests/ -v
"""

import array
import hashlib
import hmac
from concurrent.futures import ThreadPoolExecutor

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ecies_crypto import (
    AuthenticationError,
    CipherError,
    EciesCipher,
    EciesConfig,
    EciesKeyPair,
    InvalidEncodingError,
    InvalidInputError,
    KeyAgreementError,
    SecureContainer,
    decrypt,
    decrypt_hex,
    encrypt,
    encrypt_hex,
)
from ecies_crypto import envelope as envelope_module
from ecies_crypto import primitives
from ecies_crypto.agreement import agree
from ecies_crypto.config import CIPHERS

MSG  = b"This is a test"
FAST = EciesConfig.from_names(curve="secp256r1")


@pytest.fixture(scope="module")
def recipient():
    return EciesKeyPair.generate()


@pytest.fixture(scope="module")
def fast_recipient():
    return EciesKeyPair.generate(FAST)


# ── Round trip ────────────────────────────────────────────────────────────────
def test_round_trip_scenario(recipient):
    box = encrypt(recipient.public_key, MSG)
    assert box.orig_length == 14
    assert box.body_length == 16
    assert box.key_length == 67          # compressed secp521r1 point
    assert box.mac_length == 64          # HMAC-SHA-512
    assert decrypt(recipient.private_key, box) == MSG


@pytest.mark.parametrize("length", [1, 2, 15, 16, 17, 31, 32, 33, 64, 255, 1000, 4097])
def test_length_exactness(fast_recipient, length):
    cipher = EciesCipher(FAST)
    plaintext = bytes((i * 7 + 3) % 256 for i in range(length))
    box = cipher.encrypt(fast_recipient.public_key, plaintext)
    assert box.body_length % 16 == 0
    assert 0 <= box.body_length - box.orig_length < 16
    recovered = cipher.decrypt(fast_recipient.private_key, box)
    assert len(recovered) == length
    assert recovered == plaintext


def test_round_trip_through_wire_bytes(recipient):
    blob = bytes(encrypt(recipient.public_key, MSG))
    assert decrypt(recipient.private_key, blob) == MSG


def test_trailing_zero_bytes_survive(fast_recipient):
    cipher = EciesCipher(FAST)
    plaintext = b"ends in zeros\x00\x00\x00"
    box = cipher.encrypt(fast_recipient.public_key, plaintext)
    assert cipher.decrypt(fast_recipient.private_key, box) == plaintext


def test_large_payload(fast_recipient):
    cipher = EciesCipher(FAST)
    big = b"X" * 100_000
    assert cipher.decrypt(fast_recipient.private_key,
                          cipher.encrypt(fast_recipient.public_key, big)) == big


@pytest.mark.parametrize("curve,hash_name,cipher_name", [
    ("secp256r1", "sha256", "aes-128-cbc"),
    ("secp384r1", "sha384", "aes-192-cbc"),
    ("secp256k1", "sha512", "aes-256-cbc"),
    ("secp521r1", "sha3-512", "aes-256-cbc"),
])
def test_other_suites(curve, hash_name, cipher_name):
    cfg = EciesConfig.from_names(curve=curve, hash=hash_name, cipher=cipher_name)
    pair = EciesKeyPair.generate(cfg)
    cipher = EciesCipher(cfg)
    box = cipher.encrypt(pair.public_key, MSG)
    assert box.key_length == cfg.point_length
    assert box.mac_length == cfg.digest_size
    assert cipher.decrypt(pair.private_key, box) == MSG


# ── Wire format matches a hand-built reference ────────────────────────────────
def test_body_and_tag_match_reference(recipient):
    box = encrypt(recipient.public_key, MSG)
    ephemeral = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP521R1(), box.key_segment)
    shared = recipient.private_key.exchange(ec.ECDH(), ephemeral)
    envelope = hashlib.sha512(shared).digest()
    cipher_key, mac_key = envelope[:32], envelope[32:64]

    assert hmac.new(mac_key, box.body_segment, hashlib.sha512).digest() == box.mac_segment

    decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(bytes(16))).decryptor()
    padded = decryptor.update(box.body_segment) + decryptor.finalize()
    assert padded == MSG + b"\x00" * 2


# ── Tamper detection ─────────────────────────────────────────────────────────
def test_every_body_and_mac_bit_flip_rejected(fast_recipient):
    cipher = EciesCipher(FAST)
    box = cipher.encrypt(fast_recipient.public_key, MSG)
    blob = bytes(box)
    start = len(blob) - box.body_length - box.mac_length
    for offset in range(start, len(blob)):
        for bit in range(8):
            tampered = bytearray(blob)
            tampered[offset] ^= 1 << bit
            with pytest.raises(AuthenticationError):
                cipher.decrypt(fast_recipient.private_key, bytes(tampered))


def test_key_segment_flip_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    key = bytearray(box.key_segment)
    key[10] ^= 0x01
    forged = SecureContainer(bytes(key), box.mac_segment, box.body_segment, box.orig_length)
    with pytest.raises((AuthenticationError, InvalidEncodingError)):
        decrypt(recipient.private_key, forged)


def test_invalid_point_prefix_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    forged = SecureContainer(b"\x05" + box.key_segment[1:], box.mac_segment,
                             box.body_segment, box.orig_length)
    with pytest.raises(InvalidEncodingError):
        decrypt(recipient.private_key, forged)


def test_wrong_key_length_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    forged = SecureContainer(box.key_segment[:-1], box.mac_segment,
                             box.body_segment, box.orig_length)
    with pytest.raises(InvalidEncodingError):
        decrypt(recipient.private_key, forged)


def test_truncated_mac_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    forged = SecureContainer(box.key_segment, box.mac_segment[:32],
                             box.body_segment, box.orig_length)
    with pytest.raises(AuthenticationError):
        decrypt(recipient.private_key, forged)


def test_misaligned_body_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    forged = SecureContainer(box.key_segment, box.mac_segment,
                             box.body_segment[:-1], box.orig_length)
    with pytest.raises(InvalidEncodingError):
        decrypt(recipient.private_key, forged)


def test_wrong_key_rejected(recipient):
    stranger = EciesKeyPair.generate()
    box = encrypt(recipient.public_key, MSG)
    with pytest.raises(AuthenticationError):
        decrypt(stranger.private_key, box)


# ── Header integrity ──────────────────────────────────────────────────────────
def test_rewritten_orig_length_only_truncates(recipient):
    blob = bytearray(bytes(encrypt(recipient.public_key, MSG)))
    blob[16:24] = (3).to_bytes(8, "big")
    assert decrypt(recipient.private_key, bytes(blob)) == MSG[:3]


# ── Non-determinism ──────────────────────────────────────────────────────────
def test_fresh_ephemeral_key_per_message(recipient):
    a = encrypt(recipient.public_key, MSG)
    b = encrypt(recipient.public_key, MSG)
    assert a.key_segment != b.key_segment
    assert a.body_segment != b.body_segment
    assert bytes(a) != bytes(b)
    assert decrypt(recipient.private_key, a) == MSG
    assert decrypt(recipient.private_key, b) == MSG


# ── Input validation ─────────────────────────────────────────────────────────
def test_empty_plaintext_rejected(recipient):
    with pytest.raises(InvalidInputError):
        encrypt(recipient.public_key, b"")


def test_text_plaintext_rejected(recipient):
    with pytest.raises(InvalidInputError):
        encrypt(recipient.public_key, "This is a test")


def test_missing_keys_rejected(recipient):
    box = encrypt(recipient.public_key, MSG)
    with pytest.raises(InvalidInputError):
        encrypt(None, MSG)
    with pytest.raises(InvalidInputError):
        decrypt(None, box)
    with pytest.raises(InvalidInputError):
        decrypt(recipient.private_key, None)


def test_recipient_on_other_curve_rejected(fast_recipient):
    with pytest.raises(KeyAgreementError):
        encrypt(fast_recipient.public_key, MSG)


def test_private_key_on_other_curve_rejected(recipient, fast_recipient):
    box = encrypt(recipient.public_key, MSG)
    with pytest.raises(KeyAgreementError):
        decrypt(fast_recipient.private_key, box)


# ── Key agreement ────────────────────────────────────────────────────────────
def test_both_sides_derive_same_envelope_key(recipient):
    cfg = EciesConfig()
    ephemeral = ec.generate_private_key(cfg.curve)
    with agree(cfg, ephemeral, recipient.public_key) as sender, \
            agree(cfg, recipient.private_key, ephemeral.public_key()) as receiver:
        assert len(sender) == 64
        assert sender.cipher_key == receiver.cipher_key
        assert sender.mac_key == receiver.mac_key
        assert len(sender.cipher_key) == len(sender.mac_key) == 32
        assert sender.cipher_key != sender.mac_key


def test_envelope_key_wiped_on_exit(recipient):
    cfg = EciesConfig()
    ephemeral = ec.generate_private_key(cfg.curve)
    with agree(cfg, ephemeral, recipient.public_key) as env:
        assert env.cipher_key != bytes(32)
    assert env.cipher_key == bytes(32)
    assert env.mac_key == bytes(32)


def test_envelope_key_wiped_on_error(recipient):
    cfg = EciesConfig()
    ephemeral = ec.generate_private_key(cfg.curve)
    with pytest.raises(RuntimeError):
        with agree(cfg, ephemeral, recipient.public_key) as env:
            raise RuntimeError("boom")
    assert env.mac_key == bytes(32)


# ── Concurrency ──────────────────────────────────────────────────────────────
def test_concurrent_calls_are_independent(fast_recipient):
    cipher = EciesCipher(FAST)
    messages = [f"message {i}".encode() * (i + 1) for i in range(32)]

    def round_trip(message):
        box = cipher.encrypt(fast_recipient.public_key, message)
        return box.key_segment, cipher.decrypt(fast_recipient.private_key, box)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(round_trip, messages))

    assert [plain for _, plain in results] == messages
    assert len({key for key, _ in results}) == len(messages)


# ── Hex boundary ─────────────────────────────────────────────────────────────
def test_hex_adapters_round_trip(recipient):
    public_hex  = recipient.export_public_hex()
    private_hex = recipient.export_private_hex()
    box = encrypt_hex(public_hex, MSG)
    assert decrypt_hex(private_hex, box) == MSG
    assert decrypt_hex(private_hex, bytes(box)) == MSG


# ── Bytes-like plaintext ─────────────────────────────────────────────────────
def test_wide_item_memoryview_counts_bytes(fast_recipient):
    cipher = EciesCipher(FAST)
    words = array.array("H", [0x4142, 0x4344])
    box = cipher.encrypt(fast_recipient.public_key, memoryview(words))
    assert box.orig_length == 4
    assert box.body_length == 16
    assert cipher.decrypt(fast_recipient.private_key, box) == words.tobytes()


def test_bytearray_plaintext(fast_recipient):
    cipher = EciesCipher(FAST)
    box = cipher.encrypt(fast_recipient.public_key, bytearray(MSG))
    assert cipher.decrypt(fast_recipient.private_key, box) == MSG


def test_non_contiguous_memoryview_rejected(fast_recipient):
    with pytest.raises(InvalidInputError):
        EciesCipher(FAST).encrypt(fast_recipient.public_key, memoryview(MSG)[::2])


# ── Cipher failures ──────────────────────────────────────────────────────────
def test_block_cipher_rejects_misaligned_input():
    suite = CIPHERS["aes-256-cbc"]
    with pytest.raises(CipherError):
        primitives.block_encrypt(suite, bytes(32), bytes(16), b"x" * 15)
    with pytest.raises(CipherError):
        primitives.block_decrypt(suite, bytes(32), bytes(16), b"x" * 17)


def test_block_cipher_rejects_bad_key_length():
    with pytest.raises(CipherError):
        primitives.block_encrypt(CIPHERS["aes-256-cbc"], bytes(5), bytes(16), bytes(16))


def test_failed_encrypt_wipes_secrets(fast_recipient, monkeypatch):
    envelopes = []
    buffers = []
    real_agree = envelope_module.agree

    def recording_agree(*args):
        env = real_agree(*args)
        envelopes.append(env)
        return env

    def failing_block_encrypt(suite, key, iv, data):
        buffers.append(data)
        assert bytes(data[:len(MSG)]) == MSG
        raise CipherError("cipher unavailable")

    monkeypatch.setattr(envelope_module, "agree", recording_agree)
    monkeypatch.setattr(primitives, "block_encrypt", failing_block_encrypt)

    with pytest.raises(CipherError):
        EciesCipher(FAST).encrypt(fast_recipient.public_key, MSG)

    assert len(envelopes) == 1 and len(buffers) == 1
    assert envelopes[0].cipher_key == bytes(32)
    assert envelopes[0].mac_key == bytes(32)
    assert bytes(buffers[0]) == bytes(16)


# ── PEM boundary ─────────────────────────────────────────────────────────────
def test_password_protected_pem_rejected(recipient):
    locked = recipient.private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.BestAvailableEncryption(b"secret"),
    )
    with pytest.raises(InvalidEncodingError):
        EciesKeyPair.from_pem(private_pem=locked)
