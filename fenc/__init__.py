"""
FEnc — in-place file encryption, decryption and digesting.

Features:

- AES-256-CBC streaming encryption with a per-key marker header so files that
  are already encrypted are never encrypted twice.
- Crash-safe replacement: output is staged in a temporary file and only swapped
  over the original once it has been written completely.
- Recursive processing of directory trees, isolating failures per file.
- Immediate or periodic (batched) status reporting on the console.
- SHA-256 digest mode and a small random key generator.

See fenc.pipeline for the on-disk layout of encrypted files.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "keys",
    "ciphers",
    "pipeline",
    "digest",
    "status",
    "walker",
    "options",
    "cli",
]

# Programmatic API: build a sink from fenc.status, a pipeline from
# fenc.pipeline or fenc.digest, and hand both to fenc.walker.TreeWalker.
