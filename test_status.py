from __future__ import annotations

import io
import re
import threading
import time
import unittest

from fenc.status import (
    ErrorKind,
    Failed,
    MessageSink,
    PeriodicStatusSink,
    Skipped,
    Success,
    format_line,
)


_STAT_RE = re.compile(r"^\[STAT\]: Processed (\d+) files and wrote (\d+) bytes\.$")


def _stat_totals(text: str) -> tuple[int, int, int]:
    files = nbytes = lines = 0
    for line in text.splitlines():
        m = _STAT_RE.match(line)
        if m:
            lines += 1
            files += int(m.group(1))
            nbytes += int(m.group(2))
    return files, nbytes, lines


class MessageSinkTests(unittest.TestCase):
    def test_format_and_channels(self):
        out, err = io.StringIO(), io.StringIO()
        sink = MessageSink(out, err)
        sink.report(Success("/a", 10))
        sink.report(Skipped("/b", "empty file"))
        sink.report(Failed("/c", ErrorKind.FORMAT, "bad header"))
        self.assertEqual(
            out.getvalue().splitlines(),
            ["[SUCC]: Successfully processed /a", "[SKIP]: Skipped /b (empty file)"],
        )
        self.assertEqual(err.getvalue(), "[ENEX]: bad header\n")
        self.assertEqual(format_line("X", "y"), "[X]: y")

    def test_custom_success_message(self):
        out = io.StringIO()
        MessageSink(out).report(Success("/a", 0, message="[abcd] - /a"))
        self.assertEqual(out.getvalue(), "[SUCC]: [abcd] - /a\n")

    def test_quiet_keeps_failures(self):
        out, err = io.StringIO(), io.StringIO()
        sink = MessageSink(out, err, quiet=True)
        sink.report(Success("/a", 10))
        sink.report(Failed("/c", ErrorKind.IO, "read failed"))
        self.assertEqual(out.getvalue(), "")
        self.assertEqual(err.getvalue(), "[IOEX]: read failed\n")


class PeriodicStatusSinkTests(unittest.TestCase):
    def make(self, delay: float = 0.05):
        self.out, self.err = io.StringIO(), io.StringIO()
        return PeriodicStatusSink(MessageSink(self.out, self.err), delay=delay)

    def test_successes_are_summed(self):
        sink = self.make()
        sizes = [1, 20, 300, 4000, 0]
        for n in sizes:
            sink.report(Success("/f", n))
        self.assertTrue(sink.running)
        self.assertTrue(sink.wait_idle(timeout=5))
        self.assertFalse(sink.running)
        files, nbytes, lines = _stat_totals(self.out.getvalue())
        self.assertEqual(files, len(sizes))
        self.assertEqual(nbytes, sum(sizes))
        self.assertGreaterEqual(lines, 1)
        self.assertEqual(sink.pending(), (0, 0))

    def test_failures_are_immediate(self):
        sink = self.make(delay=10)
        sink.report(Failed("/x", ErrorKind.ABNORMAL, "not a file"))
        self.assertEqual(self.err.getvalue(), "[ABNF]: not a file\n")
        self.assertFalse(sink.running)

    def test_skipped_counts_as_success(self):
        sink = self.make()
        sink.report(Skipped("/e", "empty file"))
        self.assertTrue(sink.wait_idle(timeout=5))
        self.assertEqual(_stat_totals(self.out.getvalue())[:2], (1, 0))

    def test_restart_after_idle(self):
        sink = self.make(delay=0.02)
        sink.success(5)
        self.assertTrue(sink.wait_idle(timeout=5))
        first = sink._thread
        sink.success(7)
        self.assertTrue(sink.running)
        self.assertIsNot(sink._thread, first)
        self.assertTrue(sink.wait_idle(timeout=5))
        files, nbytes, lines = _stat_totals(self.out.getvalue())
        self.assertEqual((files, nbytes, lines), (2, 12, 2))

    def test_worker_exits_after_one_idle_cycle(self):
        delay = 0.05
        sink = self.make(delay=delay)
        sink.success(1)
        start = time.monotonic()
        self.assertTrue(sink.wait_idle(timeout=5))
        # One cycle to report, one empty cycle to stop; allow scheduling slack.
        self.assertLess(time.monotonic() - start, 2 * delay + 1.0)
        sink._thread.join(timeout=1)
        self.assertFalse(sink._thread.is_alive())

    def test_concurrent_producers_lose_nothing(self):
        sink = self.make(delay=0.005)
        per_thread, threads = 500, 4

        def produce():
            for _ in range(per_thread):
                sink.success(3)

        workers = [threading.Thread(target=produce) for _ in range(threads)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        self.assertTrue(sink.wait_idle(timeout=5))
        files, nbytes, _ = _stat_totals(self.out.getvalue())
        self.assertEqual(files, per_thread * threads)
        self.assertEqual(nbytes, 3 * per_thread * threads)

    def test_flush_emits_pending(self):
        sink = self.make(delay=10)
        sink.success(4)
        sink.success(6)
        sink.close()
        self.assertEqual(self.out.getvalue(), "[STAT]: Processed 2 files and wrote 10 bytes.\n")
        self.assertEqual(sink.pending(), (0, 0))

    def test_quiet_output_hides_stat_lines(self):
        out, err = io.StringIO(), io.StringIO()
        sink = PeriodicStatusSink(MessageSink(out, err, quiet=True), delay=0.01)
        sink.success(1)
        self.assertTrue(sink.wait_idle(timeout=5))
        self.assertEqual(out.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
