from __future__ import annotations

"""AES stream transforms backed by PyCryptodomex.

PyCryptodomex cipher objects only accept whole blocks in CBC mode, so the
helpers here carry partial blocks across ``update`` calls and apply or strip
PKCS#7 padding in ``finalize``. Two interchangeable transforms are provided:

- ``CbcTransform``: AES-256-CBC with PKCS#7 padding. This is the supported
  on-disk format and is always paired with the marker header.
- ``CtrTransform``: AES-256-CTR, no padding, IV-only header. Output length
  equals input length but there is no marker, so an already-encrypted file
  cannot be recognised and decrypting plaintext silently yields garbage.
"""

from typing import Optional

from Cryptodome.Cipher import AES
from Cryptodome.Util.Padding import pad, unpad

from .constants import IV_SIZE, KEY_SIZE
from .errors import AlgorithmError, FormatError


_BLOCK = AES.block_size


def _check_params(key: bytes, iv: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise AlgorithmError(f"Key must be {KEY_SIZE} bytes for AES-256, got {len(key)}")
    if len(iv) != IV_SIZE:
        raise AlgorithmError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")


class _CbcEncryptor:
    def __init__(self, key: bytes, iv: bytes):
        try:
            self._cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        except ValueError as exc:
            raise AlgorithmError(str(exc)) from exc
        self._pending = b""

    def update(self, data: bytes) -> bytes:
        buf = self._pending + data
        n = len(buf) - (len(buf) % _BLOCK)
        self._pending = buf[n:]
        if not n:
            return b""
        return self._cipher.encrypt(buf[:n])

    def finalize(self) -> bytes:
        # An input that is already block aligned still gets a full padding block.
        tail = pad(self._pending, _BLOCK, style="pkcs7")
        self._pending = b""
        return self._cipher.encrypt(tail)


class _CbcDecryptor:
    def __init__(self, key: bytes, iv: bytes):
        try:
            self._cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        except ValueError as exc:
            raise AlgorithmError(str(exc)) from exc
        self._pending = b""

    def update(self, data: bytes) -> bytes:
        buf = self._pending + data
        n = len(buf) - (len(buf) % _BLOCK)
        if n == len(buf):
            # The last whole block may carry padding; hold it back for finalize().
            n -= _BLOCK
        if n <= 0:
            self._pending = buf
            return b""
        self._pending = buf[n:]
        return self._cipher.decrypt(buf[:n])

    def finalize(self) -> bytes:
        if len(self._pending) != _BLOCK:
            raise FormatError("Ciphertext length is not a positive multiple of the AES block size")
        last = self._cipher.decrypt(self._pending)
        self._pending = b""
        try:
            return unpad(last, _BLOCK, style="pkcs7")
        except ValueError as exc:
            raise FormatError("Bad padding; wrong key or corrupted ciphertext") from exc


class _CtrStream:
    def __init__(self, key: bytes, iv: bytes):
        try:
            # The whole 16-byte IV is the initial counter block.
            self._cipher = AES.new(key, AES.MODE_CTR, nonce=b"", initial_value=iv)
        except (ValueError, OverflowError) as exc:
            raise AlgorithmError(str(exc)) from exc

    def update(self, data: bytes) -> bytes:
        if not data:
            return b""
        return self._cipher.encrypt(data)

    def finalize(self) -> bytes:
        return b""


class CbcTransform:
    """AES-256-CBC with PKCS#7 padding; paired with the marker header."""

    name = "cbc"
    uses_marker = True

    def encryptor(self, key: bytes, iv: bytes) -> _CbcEncryptor:
        _check_params(key, iv)
        return _CbcEncryptor(key, iv)

    def decryptor(self, key: bytes, iv: bytes) -> _CbcDecryptor:
        _check_params(key, iv)
        return _CbcDecryptor(key, iv)

    def output_size(self, plaintext_size: int) -> int:
        return plaintext_size + _BLOCK - (plaintext_size % _BLOCK)


class CtrTransform:
    """AES-256-CTR without padding; IV-only header, no idempotency marker."""

    name = "ctr"
    uses_marker = False

    def encryptor(self, key: bytes, iv: bytes) -> _CtrStream:
        _check_params(key, iv)
        return _CtrStream(key, iv)

    def decryptor(self, key: bytes, iv: bytes) -> _CtrStream:
        _check_params(key, iv)
        return _CtrStream(key, iv)

    def output_size(self, plaintext_size: int) -> int:
        return plaintext_size


TRANSFORMS = {
    CbcTransform.name: CbcTransform,
    CtrTransform.name: CtrTransform,
}


def get_transform(name: Optional[str] = None):
    """Return a transform instance by name (default ``"cbc"``)."""
    key = (name or CbcTransform.name).lower()
    try:
        return TRANSFORMS[key]()
    except KeyError:
        raise ValueError(f"Unknown cipher mode: {name}") from None


__all__ = [
    "CbcTransform",
    "CtrTransform",
    "TRANSFORMS",
    "get_transform",
]
