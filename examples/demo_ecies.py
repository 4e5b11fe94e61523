"""
ecies_crypto — Live Demo
========================
Run:  python examples/demo_ecies.py

Generates a recipient key pair, encrypts a message into a container,
prints the segment sizes, decrypts it, and shows tamper rejection.
"""

import logging
import time

from ecies_crypto import (
    AuthenticationError,
    EciesCipher,
    EciesKeyPair,
    SecureContainer,
    default_config,
    decrypt_hex,
    encrypt_hex,
)

LINE = "═" * 70
MSG  = b"This is a test"


def header(name):
    print(f"\n{LINE}")
    print(f"  {name}")
    print(LINE)


def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")


def main():
    logging.basicConfig(level=logging.INFO, format=" %(message)s")
    cfg = default_config()

    header(f"ECIES — {cfg.describe()}")
    recipient = EciesKeyPair.generate(cfg)
    public_hex  = recipient.export_public_hex()
    private_hex = recipient.export_private_hex()
    ok("Recipient public key", public_hex[:40] + "...")
    ok("Message", MSG.decode())

    header("Encrypt")
    t0 = time.perf_counter()
    box = encrypt_hex(public_hex, MSG)
    elapsed = time.perf_counter() - t0
    blob = bytes(box)
    ok("Key segment",  f"{box.key_length} bytes (compressed ephemeral point)")
    ok("MAC segment",  f"{box.mac_length} bytes")
    ok("Body segment", f"{box.body_length} bytes (original {box.orig_length})")
    ok("Container",    f"{len(blob)} bytes")
    ok("Encrypt time", f"{elapsed*1000:.2f} ms")

    header("Decrypt")
    t0 = time.perf_counter()
    plain = decrypt_hex(private_hex, blob)
    elapsed = time.perf_counter() - t0
    ok("Decrypted",    plain.decode())
    ok("Decrypt time", f"{elapsed*1000:.2f} ms")

    header("Tamper detection")
    tampered = bytearray(blob)
    tampered[-1] ^= 0x01
    try:
        EciesCipher(cfg).decrypt(recipient.private_key, SecureContainer.from_bytes(tampered))
        print("  ✗  Tamper NOT detected")
    except AuthenticationError:
        ok("Flipped body bit rejected")

    stranger = EciesKeyPair.generate(cfg)
    try:
        EciesCipher(cfg).decrypt(stranger.private_key, blob)
        print("  ✗  Wrong key NOT detected")
    except AuthenticationError:
        ok("Wrong private key rejected")
    print(LINE + "\n")


if __name__ == "__main__":
    main()
