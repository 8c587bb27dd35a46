from __future__ import annotations

import hashlib
import secrets
import string
from typing import Dict

from .constants import MARKER_STRING, DEFAULT_KEYGEN_SIZE


CHARSETS: Dict[str, str] = {
    "alnum": string.ascii_letters + string.digits,
    "hex": "0123456789abcdef",
    "printable": string.ascii_letters + string.digits + string.punctuation,
}
DEFAULT_CHARSET = "alnum"


def _encode(passphrase: str | bytes) -> bytes:
    if isinstance(passphrase, bytes):
        return passphrase
    return passphrase.encode("utf-8")


def key_hash(passphrase: str | bytes) -> bytes:
    """Return the 32-byte AES key for ``passphrase``.

    The passphrase is hashed once with SHA-256; there is no salt and no
    stretching.
    """
    return hashlib.sha256(_encode(passphrase)).digest()


def marker_for(passphrase: str | bytes) -> bytes:
    """Return the 32-byte marker written at the head of files encrypted under ``passphrase``."""
    tag = MARKER_STRING.encode("utf-8")
    return hashlib.sha256(tag + _encode(passphrase) + tag).digest()


def generate_key(size: int = DEFAULT_KEYGEN_SIZE, charset: str = DEFAULT_CHARSET) -> str:
    """Sample ``size`` characters from a named character set with a CSPRNG."""
    if size <= 0:
        raise ValueError("Key size must be positive")
    try:
        chars = CHARSETS[charset]
    except KeyError:
        raise ValueError(f"Unknown charset: {charset}") from None
    return "".join(secrets.choice(chars) for _ in range(size))
