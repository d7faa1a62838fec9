"""Monitor loop: re-render a file whenever it changes on disk.

File events are debounced, then pushed into a single-slot queue drained by
one worker thread.  A newer trigger replaces a pending one, and renders never
overlap, so the output is never interleaved.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from mdv.errors import MonitorError

logger = logging.getLogger(__name__)

DEBOUNCE_S = 0.1  # 100 ms
CLEAR_SCREEN = "\x1b[2J\x1b[H"
CHANGE_BANNER = "--- File changed, re-rendering ---"


class RenderSlot:
    """Single-slot mailbox for render triggers (latest wins)."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = False
        self._closed = False
        self.dropped = 0

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending

    def put(self) -> None:
        with self._cond:
            if self._pending:
                self.dropped += 1
            self._pending = True
            self._cond.notify()

    def take(self, timeout: float | None = None) -> bool:
        """Wait for a trigger; ``False`` once closed or on timeout."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending or self._closed, timeout):
                return False
            if not self._pending:
                return False
            self._pending = False
            return True

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class Monitor:
    """Watches *path* and re-runs *render* on change, writing via *write*.

    A render that raises is logged and the previous output stays on screen.
    """

    def __init__(
        self,
        path: str,
        render: Callable[[], str],
        write: Callable[[str], None],
        debounce_s: float = DEBOUNCE_S,
    ) -> None:
        self._path = os.path.abspath(path)
        self._render = render
        self._write = write
        self._debounce_s = debounce_s
        self._slot = RenderSlot()
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._observer: Any = None
        self.last_output: str | None = None
        self.render_count = 0

    # -- lifecycle -----------------------------------------------------------

    def start(self, watch: bool = True) -> None:
        """Render once, then start the worker and (optionally) the file watcher."""
        if not os.path.isfile(self._path):
            raise MonitorError(f"Cannot monitor '{self._path}': not a file")

        self.render_once(initial=True)

        self._worker = threading.Thread(target=self._run_worker, name="mdv-monitor", daemon=True)
        self._worker.start()

        if watch:
            self._start_observer()
        logger.info("Monitoring %s", self._path)

    def _start_observer(self) -> None:
        monitor = self

        class _Handler(FileSystemEventHandler):
            def on_any_event(self, event: Any) -> None:
                if event.is_directory or event.event_type not in ("modified", "created", "moved"):
                    return
                paths = [getattr(event, "src_path", ""), getattr(event, "dest_path", "")]
                if any(p and os.path.abspath(os.fsdecode(p)) == monitor._path for p in paths):
                    monitor.trigger()

        try:
            self._observer = Observer()
            self._observer.schedule(_Handler(), os.path.dirname(self._path), recursive=False)
            self._observer.start()
        except OSError as exc:
            raise MonitorError(f"Cannot watch '{self._path}': {exc}") from exc

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        self._slot.close()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
        logger.info("Stopped monitoring %s", self._path)

    def run_forever(self) -> None:
        """Start monitoring and block until interrupted."""
        self.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    # -- triggering ------------------------------------------------------------

    def trigger(self) -> None:
        """Signal a change; bursts inside the debounce window collapse."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_s, self._slot.put)
            self._timer.daemon = True
            self._timer.start()

    def _run_worker(self) -> None:
        while self._slot.take():
            self.render_once()

    def render_once(self, initial: bool = False) -> bool:
        """Run one render pass; keep the previous output if it fails."""
        try:
            output = self._render()
        except Exception:
            logger.exception("Re-render of %s failed; keeping previous output", self._path)
            return False

        self.render_count += 1
        self.last_output = output
        if initial:
            self._write(output)
        else:
            logger.info("File changed, re-rendered %s", self._path)
            self._write(f"{CLEAR_SCREEN}{CHANGE_BANNER}\n{output}")
        return True
