"""Tests for mdv.monitor -- debounced, serialized re-rendering."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

import pytest

from mdv.errors import MonitorError
from mdv.monitor import CHANGE_BANNER, CLEAR_SCREEN, Monitor, RenderSlot


def _wait_for(condition: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def md_file(tmp_path: Path) -> Path:
    path = tmp_path / "doc.md"
    path.write_text("# Hi\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# RenderSlot
# ---------------------------------------------------------------------------


class TestRenderSlot:
    """Single pending trigger; newer triggers replace older ones."""

    def test_latest_wins(self) -> None:
        slot = RenderSlot()
        slot.put()
        slot.put()
        slot.put()
        assert slot.dropped == 2
        assert slot.take(timeout=0) is True
        assert slot.take(timeout=0) is False

    def test_close_releases_waiter(self) -> None:
        slot = RenderSlot()
        slot.close()
        assert slot.take() is False


# ---------------------------------------------------------------------------
# Monitor
# ---------------------------------------------------------------------------


class TestMonitor:
    """Trigger handling without a real file watcher."""

    def test_initial_render(self, md_file: Path) -> None:
        writes: list[str] = []
        monitor = Monitor(str(md_file), lambda: "out", writes.append, debounce_s=0.01)
        monitor.start(watch=False)
        monitor.stop()
        assert writes == ["out"]
        assert monitor.render_count == 1

    def test_burst_collapses_to_one_render(self, md_file: Path) -> None:
        writes: list[str] = []
        monitor = Monitor(str(md_file), lambda: "out", writes.append, debounce_s=0.05)
        monitor.start(watch=False)
        for _ in range(5):
            monitor.trigger()
        assert _wait_for(lambda: monitor.render_count == 2)
        time.sleep(0.2)
        monitor.stop()
        assert monitor.render_count == 2
        assert writes[1] == f"{CLEAR_SCREEN}{CHANGE_BANNER}\nout"

    def test_failed_render_keeps_previous_output(
        self, md_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls: list[int] = []

        def render() -> str:
            calls.append(1)
            if len(calls) > 1:
                raise RuntimeError("boom")
            return "first"

        writes: list[str] = []
        monitor = Monitor(str(md_file), render, writes.append, debounce_s=0.01)
        monitor.start(watch=False)
        monitor.trigger()
        assert _wait_for(lambda: len(calls) == 2)
        monitor.stop()
        assert writes == ["first"]
        assert monitor.last_output == "first"
        assert "Re-render" in caplog.text

    def test_renders_see_latest_content(self, md_file: Path) -> None:
        writes: list[str] = []
        monitor = Monitor(
            str(md_file),
            lambda: md_file.read_text(encoding="utf-8"),
            writes.append,
            debounce_s=0.01,
        )
        monitor.start(watch=False)
        md_file.write_text("# Changed\n", encoding="utf-8")
        monitor.trigger()
        assert _wait_for(lambda: monitor.render_count == 2)
        monitor.stop()
        assert monitor.last_output == "# Changed\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        monitor = Monitor(str(tmp_path / "nope.md"), lambda: "", lambda _: None)
        with pytest.raises(MonitorError):
            monitor.start(watch=False)
