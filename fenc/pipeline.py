from __future__ import annotations

import atexit
import hmac
import os
import shutil
import tempfile
from typing import BinaryIO, Optional, Set

from .ciphers import CbcTransform
from .constants import (
    DEFAULT_BUFFER_SIZE,
    IV_SIZE,
    Mode,
    TEMP_PREFIX,
)
from .errors import AlgorithmError, AlreadyEncryptedError, FormatError, NotEncryptedError
from .keys import key_hash as _key_hash, marker_for
from .status import ErrorKind, Failed, ProcessingOutcome, Skipped, StatusSink, Success


# Temp files still on disk; removed at interpreter exit if nothing else did.
_PENDING_TEMPS: Set[str] = set()


def _cleanup_temps() -> None:
    for path in list(_PENDING_TEMPS):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError:
            continue
        _PENDING_TEMPS.discard(path)


atexit.register(_cleanup_temps)


def create_temp(temp_dir: Optional[str] = None) -> str:
    """Create an empty staging file in ``temp_dir`` (platform temp dir by default)."""
    fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=temp_dir)
    os.close(fd)
    _PENDING_TEMPS.add(path)
    return path


def discard_temp(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    _PENDING_TEMPS.discard(path)


def keep_temp(path: str) -> None:
    """Stop tracking ``path`` so it survives interpreter exit."""
    _PENDING_TEMPS.discard(path)


def replace_file(source: str, target: str) -> None:
    """Replace ``target`` with the contents of ``source`` without a partial state.

    ``source`` usually lives in the platform temp directory, which may sit on a
    different filesystem, so its bytes are first copied into a sibling of
    ``target`` and then renamed over it. ``target`` keeps its permission bits.
    """
    target_dir = os.path.dirname(os.path.abspath(target))
    fd, staging = tempfile.mkstemp(prefix="." + os.path.basename(target) + ".", suffix=".fenc", dir=target_dir)
    try:
        with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
            shutil.copyfileobj(src, out)
            out.flush()
            os.fsync(out.fileno())
        shutil.copymode(target, staging)
        os.replace(staging, target)
    except BaseException:
        try:
            os.unlink(staging)
        except FileNotFoundError:
            pass
        raise


def _read_fully(fh: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, looping over short reads until EOF."""
    parts = []
    remaining = size
    while remaining > 0:
        chunk = fh.read(remaining)
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def encrypt_stream(
    src: BinaryIO,
    dest: BinaryIO,
    *,
    key: bytes,
    marker: bytes,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    transform=None,
) -> None:
    """Encrypt ``src`` into ``dest``.

    Output layout is ``marker || iv || ciphertext`` for marker transforms and
    ``iv || ciphertext`` otherwise.

    Raises:
        AlreadyEncryptedError: ``src`` starts with ``marker``.
        AlgorithmError: the cipher rejected the key or IV.
    """
    transform = transform or CbcTransform()
    head = b""
    if transform.uses_marker:
        head = _read_fully(src, len(marker))
        if hmac.compare_digest(head, marker):
            raise AlreadyEncryptedError("Detected that file is already encrypted. Skipping...")

    iv = os.urandom(IV_SIZE)
    enc = transform.encryptor(key, iv)

    if transform.uses_marker:
        dest.write(marker)
    dest.write(iv)
    # Leading bytes were plaintext; they go through the cipher ahead of the rest.
    dest.write(enc.update(head))
    while True:
        chunk = src.read(buffer_size)
        if not chunk:
            break
        dest.write(enc.update(chunk))
    dest.write(enc.finalize())


def decrypt_stream(
    src: BinaryIO,
    dest: BinaryIO,
    *,
    key: bytes,
    marker: bytes,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    transform=None,
) -> None:
    """Decrypt ``src`` into ``dest``; the inverse of :func:`encrypt_stream`.

    Raises:
        NotEncryptedError: header too short or marker mismatch.
        FormatError: ciphertext is truncated or its padding is invalid.
        AlgorithmError: the cipher rejected the key or IV.
    """
    transform = transform or CbcTransform()
    marker_len = len(marker) if transform.uses_marker else 0
    header_len = marker_len + IV_SIZE
    header = _read_fully(src, header_len)
    if len(header) < header_len:
        raise NotEncryptedError(
            f"Not encrypted (too short): the file has fewer than {header_len} bytes, "
            "so it cannot carry the header written by this program."
        )
    if marker_len and not hmac.compare_digest(header[:marker_len], marker):
        raise NotEncryptedError(
            "Not encrypted (header mismatch): the file does not start with the marker "
            "written for this key. Skipping decryption of this file..."
        )

    dec = transform.decryptor(key, header[marker_len:])
    while True:
        chunk = src.read(buffer_size)
        if not chunk:
            break
        dest.write(dec.update(chunk))
    dest.write(dec.finalize())


class FileCipherPipeline:
    """Encrypt or decrypt single files in place and report one outcome per file.

    The source is streamed into a temporary file which is then swapped over the
    source with :func:`replace_file`; on any failure before the swap the source
    is left as it was. Every outcome is handed to ``sink`` and also returned.
    """

    def __init__(
        self,
        mode: Mode,
        key_hash: bytes,
        marker: bytes,
        sink: StatusSink,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        transform=None,
        temp_dir: Optional[str] = None,
    ):
        if mode not in (Mode.ENCRYPT, Mode.DECRYPT):
            raise ValueError(f"Unsupported cipher mode: {mode}")
        if buffer_size <= 0:
            raise ValueError("Buffer size must be positive")
        self.mode = mode
        self.key_hash = key_hash
        self.marker = marker
        self.sink = sink
        self.buffer_size = buffer_size
        self.transform = transform or CbcTransform()
        self.temp_dir = temp_dir

    @classmethod
    def from_passphrase(cls, mode: Mode, passphrase: str | bytes, sink: StatusSink, **kwargs) -> "FileCipherPipeline":
        if not passphrase:
            raise ValueError("A non-empty key is required")
        return cls(mode, _key_hash(passphrase), marker_for(passphrase), sink, **kwargs)

    @property
    def operation(self) -> str:
        return self.mode.value

    def _operate(self, src: BinaryIO, dest: BinaryIO) -> None:
        fn = encrypt_stream if self.mode is Mode.ENCRYPT else decrypt_stream
        fn(
            src,
            dest,
            key=self.key_hash,
            marker=self.marker,
            buffer_size=self.buffer_size,
            transform=self.transform,
        )

    def process_file(self, path: str | os.PathLike) -> ProcessingOutcome:
        outcome = self._process(os.fspath(path))
        self.sink.report(outcome)
        return outcome

    def _process(self, path: str) -> ProcessingOutcome:
        op = self.operation
        an = "an" if op.startswith("e") else "a"
        temp: Optional[str] = None
        try:
            try:
                size = os.path.getsize(path)
            except OSError as exc:
                return Failed(path, ErrorKind.IO, f"Could not stat {path}; the file was NOT {op}ed. [Err msg: {exc}]")
            if size == 0:
                return Skipped(path, "empty file")

            try:
                temp = create_temp(self.temp_dir)
            except OSError as exc:
                return Failed(
                    path,
                    ErrorKind.TEMP_FILE,
                    f"Failed to create the temporary file that {path} would get {op}ed then written to. "
                    f"(The file was NOT {op}ed.) [Err msg: {exc}]",
                )

            try:
                with open(path, "rb") as src, open(temp, "wb") as dest:
                    self._operate(src, dest)
            except AlgorithmError as exc:
                discard_temp(temp)
                return Failed(
                    path,
                    ErrorKind.ALGORITHM,
                    f"Failed to initialize the {op}ion algorithm while processing file: {path}. [Err msg: {exc}]",
                )
            except FormatError as exc:
                discard_temp(temp)
                return Failed(
                    path,
                    ErrorKind.FORMAT,
                    f"Encountered {an} {op}ion failure while trying to {op} the file {path}. [Err msg: {exc}]",
                )
            except OSError as exc:
                discard_temp(temp)
                return Failed(
                    path,
                    ErrorKind.IO,
                    f"Encountered a file in-out exception while trying to read or write and {op} the file {path}. "
                    f"[Err msg: {exc}]",
                )

            try:
                written = os.path.getsize(temp)
                replace_file(temp, path)
            except OSError as exc:
                keep_temp(temp)
                return Failed(
                    path,
                    ErrorKind.REPLACE,
                    f"{an.capitalize()} {op}ed copy of {path} was written to a temporary file ({temp}) but it could "
                    f"not be moved over the source file. (The file was NOT {op}ed; the temporary copy was kept.) "
                    f"[Err msg: {exc}]",
                )
            discard_temp(temp)
            return Success(path, written)
        except Exception as exc:
            if temp is not None and temp in _PENDING_TEMPS:
                try:
                    discard_temp(temp)
                except OSError:
                    pass
            return Failed(
                path,
                ErrorKind.UNKNOWN,
                f"An unknown failure occurred while processing {path}. The file may or may not have been "
                f"{op}ed. [Err msg: {exc!r}]",
            )


__all__ = [
    "FileCipherPipeline",
    "encrypt_stream",
    "decrypt_stream",
    "replace_file",
    "create_temp",
    "discard_temp",
    "keep_temp",
]
