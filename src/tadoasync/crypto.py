"""Symmetric (authenticated) encryption of a serialized token.

The key is the SHA-256 digest of a passphrase, and the cipher is AES-256-GCM. The
ciphertext is the random nonce followed by the encrypted data & its tag:

    nonce (12 bytes) || AESGCM(key).encrypt(nonce, plaintext)

Slowing down an offline brute force of a weak passphrase is not a goal.
"""

from __future__ import annotations

import hashlib
import os
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from . import exceptions as exc

NONCE_SIZE: Final = 12  # the natural size for GCM


def derive_key(passphrase: str | bytes) -> bytes:
    """Return a 256-bit key derived from a passphrase."""

    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")
    return hashlib.sha256(passphrase).digest()


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """Return the ciphertext (prefixed by a fresh nonce) of the plaintext."""

    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(ciphertext: bytes, key: bytes) -> bytes:
    """Return the plaintext of the ciphertext.

    Will raise InvalidCiphertextError if the ciphertext is too short, or the tag
    does not verify (e.g. the wrong key, or the ciphertext was altered).
    """

    if len(ciphertext) < NONCE_SIZE:
        raise exc.InvalidCiphertextError("invalid ciphertext")

    nonce, data = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]

    try:
        return AESGCM(key).decrypt(nonce, data, None)
    except InvalidTag as err:
        raise exc.InvalidCiphertextError("invalid ciphertext") from err
