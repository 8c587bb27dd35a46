from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import List, Optional

from .ciphers import TRANSFORMS
from .constants import DEFAULT_BUFFER_SIZE, DEFAULT_KEYGEN_SIZE, DEFAULT_STATUS_DELAY, Mode
from .keys import CHARSETS, DEFAULT_CHARSET


@dataclass
class Options:
    """Parsed command line configuration consumed by :func:`fenc.cli.run`.

    Attributes:
        mode: What to do with the given paths (encrypt by default).
        key: Passphrase for encrypt/decrypt. Hashed once with SHA-256.
        paths: Files and directories to process.
        buffer_size: Read chunk size in bytes for streaming I/O and the digest
            cut-over between whole-file and streamed hashing.
        quiet: Suppress per-file success lines; failures are always printed.
        periodic: Replace per-file success lines with periodic ``[STAT]`` summaries.
        status_delay: Seconds between periodic summaries.
        cipher: ``"cbc"`` (marker + IV + AES-CBC) or ``"ctr"`` (IV + AES-CTR, no marker).
        keygen_size: Number of characters to generate in keygen mode.
        keygen_charset: Name of the character set to sample in keygen mode.
    """

    mode: Mode = Mode.ENCRYPT
    key: Optional[str] = None
    paths: List[str] = field(default_factory=list)
    buffer_size: int = DEFAULT_BUFFER_SIZE
    quiet: bool = False
    periodic: bool = False
    status_delay: float = DEFAULT_STATUS_DELAY
    cipher: str = "cbc"
    keygen_size: int = DEFAULT_KEYGEN_SIZE
    keygen_charset: str = DEFAULT_CHARSET

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Options":
        if args.decrypt:
            mode = Mode.DECRYPT
        elif args.hash:
            mode = Mode.HASH
        elif args.keygen:
            mode = Mode.KEYGEN
        else:
            mode = Mode.ENCRYPT
        opts = cls(
            mode=mode,
            key=args.key,
            paths=list(args.paths),
            buffer_size=args.buffer_size,
            quiet=args.quiet,
            periodic=args.periodic,
            status_delay=args.status_delay,
            cipher="ctr" if args.ctr else "cbc",
            keygen_size=args.key_size,
            keygen_charset=args.charset,
        )
        opts.validate()
        return opts

    @property
    def needs_key(self) -> bool:
        return self.mode in (Mode.ENCRYPT, Mode.DECRYPT)

    def validate(self) -> None:
        if self.buffer_size <= 0:
            raise ValueError("Buffer size must be positive")
        if self.status_delay < 0:
            raise ValueError("Status delay must be non-negative")
        if self.cipher not in TRANSFORMS:
            raise ValueError(f"Unknown cipher mode: {self.cipher}")
        if self.mode is Mode.KEYGEN:
            if self.keygen_size <= 0:
                raise ValueError("Key size must be positive")
            if self.keygen_charset not in CHARSETS:
                raise ValueError(f"Unknown charset: {self.keygen_charset}")
        elif not self.paths:
            raise ValueError("No files or directories specified")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="fenc",
        description="Encrypt, decrypt, or hash files and directory trees in place",
        epilog=(
            "Encrypted files start with a 32-byte marker derived from the key, then a 16-byte IV, "
            "then AES-256-CBC ciphertext. Files already carrying the marker are never encrypted twice."
        ),
    )
    ap.add_argument("paths", nargs="*", help="Files and/or directories to process")
    ap.add_argument("-k", "--key", help="Encryption/decryption key")

    modes = ap.add_mutually_exclusive_group()
    modes.add_argument("-d", "--dec", "--decrypt", dest="decrypt", action="store_true", help="Decrypt instead of encrypt")
    modes.add_argument("--hash", action="store_true", help="Print the SHA-256 of every file; nothing is modified")
    modes.add_argument("-kg", "--keygen", action="store_true", help="Print a random key and exit")

    ap.add_argument(
        "-bs",
        "--buffer-size",
        type=int,
        default=DEFAULT_BUFFER_SIZE,
        help=f"Bytes read per chunk (default {DEFAULT_BUFFER_SIZE})",
    )
    ap.add_argument(
        "-q",
        "-s",
        "--quiet",
        "--suppress-success-messages",
        dest="quiet",
        action="store_true",
        help="Suppress success messages; failures are still printed",
    )
    ap.add_argument(
        "-p",
        "--periodic",
        action="store_true",
        help="Print periodic [STAT] summaries instead of one line per file",
    )
    ap.add_argument(
        "--status-delay",
        type=float,
        default=DEFAULT_STATUS_DELAY,
        help=f"Seconds between periodic summaries (default {DEFAULT_STATUS_DELAY})",
    )
    ap.add_argument(
        "--ctr",
        action="store_true",
        help=(
            "Use AES-CTR with an IV-only header instead of the default marker + AES-CBC format. "
            "CTR files carry no marker: re-encryption is not detected and they must be decrypted with --ctr"
        ),
    )
    ap.add_argument(
        "-ks",
        "--key-size",
        "--keygen-size",
        dest="key_size",
        type=int,
        default=DEFAULT_KEYGEN_SIZE,
        help=f"Characters to generate with --keygen (default {DEFAULT_KEYGEN_SIZE})",
    )
    ap.add_argument(
        "--charset",
        choices=sorted(CHARSETS),
        default=DEFAULT_CHARSET,
        help=f"Character set for --keygen (default {DEFAULT_CHARSET})",
    )
    return ap


__all__ = ["Options", "build_parser", "Mode"]
