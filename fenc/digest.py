from __future__ import annotations

import hashlib
import os

from .constants import DEFAULT_BUFFER_SIZE
from .status import ErrorKind, Failed, ProcessingOutcome, StatusSink, Success


def sha256_file(path: str, buffer_size: int = DEFAULT_BUFFER_SIZE) -> bytes:
    """SHA-256 of a file, streamed in ``buffer_size`` chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(buffer_size)
            if not chunk:
                break
            h.update(chunk)
    return h.digest()


def sha256_whole(path: str) -> bytes:
    with open(path, "rb") as fh:
        return hashlib.sha256(fh.read()).digest()


def digest_file(path: str, buffer_size: int = DEFAULT_BUFFER_SIZE) -> bytes:
    """Digest small files in one read and larger ones in chunks; results are identical."""
    if os.path.getsize(path) > buffer_size:
        return sha256_file(path, buffer_size)
    return sha256_whole(path)


class DigestPipeline:
    """Report ``[<hex digest>] - <absolute path>`` for each file."""

    def __init__(self, sink: StatusSink, *, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size <= 0:
            raise ValueError("Buffer size must be positive")
        self.sink = sink
        self.buffer_size = buffer_size

    def process_file(self, path: str | os.PathLike) -> ProcessingOutcome:
        path = os.fspath(path)
        try:
            digest = digest_file(path, self.buffer_size)
        except OSError as exc:
            outcome: ProcessingOutcome = Failed(path, ErrorKind.DIGEST, f"Failure hashing {path}. [Err msg: {exc}]")
        else:
            outcome = Success(path, 0, message=f"[{digest.hex()}] - {os.path.abspath(path)}")
        self.sink.report(outcome)
        return outcome


__all__ = ["DigestPipeline", "digest_file", "sha256_file", "sha256_whole"]
