"""In-memory snapshot store and hot reload."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from mdserve.index.indexer import ScanError
from mdserve.models import Snapshot

LOGGER = logging.getLogger(__name__)

DEFAULT_RELOAD_INTERVAL = 0.256


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SnapshotStore:
    """Owns the live snapshot. Snapshots are swapped whole, never edited."""

    def __init__(self, snapshot: Snapshot) -> None:
        self._lock = ReadWriteLock()
        self._snapshot = snapshot

    def current(self) -> Snapshot:
        with self._lock.read():
            return self._snapshot

    def replace(self, snapshot: Snapshot) -> Snapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock.write():
            previous, self._snapshot = self._snapshot, snapshot
        return previous


class ReloadFlag:
    """Process-wide "reload requested" marker.

    ``request`` is a single attribute store and takes no lock, so it is safe
    to call from a signal handler.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requested = False

    def request(self) -> None:
        self._requested = True

    def consume(self) -> bool:
        """Clear the flag, returning whether it was set."""
        with self._lock:
            requested, self._requested = self._requested, False
        return requested

    @property
    def requested(self) -> bool:
        return self._requested


def install_signal_handler(flag: ReloadFlag) -> bool:
    """Route SIGHUP to ``flag``. Must be called from the main thread."""
    if not hasattr(signal, "SIGHUP"):
        LOGGER.warning("SIGHUP is not available on this platform; hot reload disabled")
        return False
    signal.signal(signal.SIGHUP, lambda signum, frame: flag.request())
    return True


class ReloadController:
    """Polls a :class:`ReloadFlag` and rebuilds the snapshot when it is set.

    The scan runs outside the store's lock; only the final swap takes the
    write lock. A failed scan leaves the previous snapshot in place.
    """

    def __init__(
        self,
        store: SnapshotStore,
        build: Callable[[], Snapshot],
        flag: ReloadFlag,
        *,
        interval: float = DEFAULT_RELOAD_INTERVAL,
    ) -> None:
        self.store = store
        self.build = build
        self.flag = flag
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def reload_now(self) -> bool:
        LOGGER.info("Reloading state...")
        try:
            snapshot = self.build()
        except ScanError as exc:
            LOGGER.error("Failed to reload state (retaining previous state): %s", exc)
            return False
        except Exception:
            LOGGER.exception("Unexpected error while reloading (retaining previous state)")
            return False

        self.store.replace(snapshot)
        LOGGER.info("State reloaded successfully!")
        return True

    def poll_once(self) -> bool:
        """Reload if requested. Returns whether a new snapshot was installed."""
        if not self.flag.consume():
            return False
        return self.reload_now()

    def run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="mdserve-reload", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
