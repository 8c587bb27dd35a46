from __future__ import annotations

import os
from typing import Iterable, Protocol, Set, Tuple

from .status import ErrorKind, Failed, ProcessingOutcome, StatusSink


class FilePipeline(Protocol):
    def process_file(self, path: str) -> ProcessingOutcome: ...


class TreeWalker:
    """Run a per-file pipeline over files and directory trees.

    Directories are descended depth first in ``os.listdir`` order. Anything that
    is neither a regular file nor a directory is reported as an abnormal object.
    A failure at one entry is reported through ``sink`` and never stops the walk.
    """

    def __init__(self, pipeline: FilePipeline, sink: StatusSink):
        self.pipeline = pipeline
        self.sink = sink

    def walk(self, roots: Iterable[str | os.PathLike]) -> None:
        for root in roots:
            self.process(root)

    def process(self, path: str | os.PathLike) -> None:
        self._process(os.fspath(path), set())

    def _process(self, path: str, active: Set[Tuple[int, int]]) -> None:
        if os.path.isdir(path):
            self._process_dir(path, active)
        elif os.path.isfile(path):
            self._process_file(path)
        else:
            self.sink.report(
                Failed(path, ErrorKind.ABNORMAL, f"Failed to process the file: {path}; it is not a file or a directory.")
            )

    def _process_file(self, path: str) -> None:
        try:
            self.pipeline.process_file(path)
        except Exception as exc:
            # Pipelines classify their own failures; this only guards the walk.
            self.sink.report(Failed(path, ErrorKind.UNKNOWN, f"Failed to process the file: {path}. [Err msg: {exc!r}]"))

    def _process_dir(self, path: str, active: Set[Tuple[int, int]]) -> None:
        try:
            st = os.stat(path)
            entries = os.listdir(path)
        except OSError as exc:
            self.sink.report(
                Failed(path, ErrorKind.DIRECTORY, f"Failed to iterate over files in {path}. [Err msg: {exc}]")
            )
            return
        ident = (st.st_dev, st.st_ino)
        if ident in active:
            # Symlinked ancestor; descending again would never terminate.
            self.sink.report(
                Failed(path, ErrorKind.DIRECTORY, f"Skipping {path}; it links back to a directory being processed.")
            )
            return
        active.add(ident)
        try:
            for name in entries:
                self._process(os.path.join(path, name), active)
        finally:
            active.discard(ident)


__all__ = ["TreeWalker", "FilePipeline"]
