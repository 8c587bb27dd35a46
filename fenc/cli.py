from __future__ import annotations

import getpass as _getpass
import sys
from typing import List, Optional, TextIO

from fenc.ciphers import get_transform
from fenc.constants import Mode
from fenc.digest import DigestPipeline
from fenc.errors import FencError
from fenc.keys import generate_key
from fenc.options import Options, build_parser
from fenc.pipeline import FileCipherPipeline
from fenc.status import MessageSink, PeriodicStatusSink
from fenc.walker import TreeWalker


def make_sink(options: Options, *, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
    """Build the status sink selected by ``options``.

    Args:
        options: Parsed configuration.
        out: Stream for success/status lines (stdout when None).
        err: Stream for failure lines (stderr when None).
    """
    messages = MessageSink(out, err, quiet=options.quiet)
    if options.periodic and options.mode is not Mode.HASH:
        return PeriodicStatusSink(messages, delay=options.status_delay)
    return messages


def cmd_keygen(options: Options, *, out: Optional[TextIO] = None) -> bool:
    """Print one random key of ``options.keygen_size`` characters."""
    print(generate_key(options.keygen_size, options.keygen_charset), file=out or sys.stdout)
    return True


def cmd_hash(options: Options, *, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> bool:
    """Print the SHA-256 digest of every file under ``options.paths``.

    Digest lines are the output of this command, so ``quiet`` and ``periodic``
    do not apply.
    """
    sink = MessageSink(out, err)
    TreeWalker(DigestPipeline(sink, buffer_size=options.buffer_size), sink).walk(options.paths)
    return True


def cmd_cipher(options: Options, *, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> bool:
    """Encrypt or decrypt every file under ``options.paths`` in place.

    Per-file failures are printed to the error stream and do not stop the run.
    """
    if not options.key:
        raise ValueError("A key is required to encrypt or decrypt. Provide --key.")
    sink = make_sink(options, out=out, err=err)
    pipeline = FileCipherPipeline.from_passphrase(
        options.mode,
        options.key,
        sink,
        buffer_size=options.buffer_size,
        transform=get_transform(options.cipher),
    )
    try:
        TreeWalker(pipeline, sink).walk(options.paths)
    finally:
        sink.close()
    return True


def run(options: Options, *, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> bool:
    if options.mode is Mode.KEYGEN:
        return cmd_keygen(options, out=out)
    if options.mode is Mode.HASH:
        return cmd_hash(options, out=out, err=err)
    return cmd_cipher(options, out=out, err=err)


def main(argv: List[str] | None = None):
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        options = Options.from_args(args)
        if options.needs_key and not options.key and sys.stdin.isatty():
            options.key = _getpass.getpass("Key: ")
        run(options)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (FencError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
