"""Verification Test: Chaos Monkey - process churn while snapshotting.

Processes are spawned and terminated while the process table is collected.
Collection must never fail because a process exited mid-scan, and a
snapshot of an exited process must surface EntityVanished.
"""

import multiprocessing
import os
import random
import signal
import subprocess
import sys
import time

import pytest

from procstat.errors import EntityVanished
from procstat.models import SourceId
from procstat.monitor import StatMonitor

pytestmark = pytest.mark.skipif(
    not sys.platform.startswith("linux"), reason="requires Linux procfs"
)

SLEEPER = [sys.executable, "-c", "import time; time.sleep(60)"]


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_process_table_survives_termination(self):
        """
        Test collection doesn't fail when processes die mid-scan.

        Every process listed by pids() may exit before its stat file is
        read; those must be skipped, not raised.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        monitor = StatMonitor()

        try:
            snapshots = monitor.process_snapshots()
            assert {p.pid for p in processes} <= set(snapshots)

            to_kill = random.sample(processes, 15)
            for p in to_kill:
                p.terminate()
                try:
                    snapshots = monitor.process_snapshots(SourceId.PROCESS_STAT)
                    monitor.process_snapshots(SourceId.PROCESS_STATUS)
                except Exception as e:
                    pytest.fail(f"Process collection failed with exception: {e}")
                assert os.getpid() in snapshots

        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_exited_process_vanishes(self):
        """Test a reaped process raises EntityVanished for both per-process sources."""
        child = subprocess.Popen(SLEEPER)
        monitor = StatMonitor()

        monitor.snapshot(SourceId.PROCESS_STAT, child.pid)

        child.terminate()
        child.wait(timeout=5.0)

        for source in (SourceId.PROCESS_STAT, SourceId.PROCESS_STATUS):
            with pytest.raises(EntityVanished):
                monitor.snapshot(source, child.pid)

    def test_zombie_process_is_readable(self):
        """
        Test that a zombie still parses, with state 'Z'.

        The child is killed but not yet reaped, so its /proc entry remains
        with most counters zeroed.
        """
        child = subprocess.Popen(SLEEPER)
        monitor = StatMonitor()

        try:
            os.kill(child.pid, signal.SIGKILL)
            state = ""
            deadline = time.monotonic() + 5.0
            while time.monotonic() < deadline:
                state = monitor.snapshot(SourceId.PROCESS_STAT, child.pid).record(child.pid).state
                if state == "Z":
                    break
                time.sleep(0.05)
            assert state == "Z"
        finally:
            child.wait(timeout=5.0)
