from __future__ import annotations

import threading

from claims_backend.config.config import Settings
from claims_backend.database.storage import MemoryStorageSlot
from claims_backend.services.background import BackgroundPersistence
from claims_backend.services.data_service import DataService


class FlushRecorder:
    def __init__(self) -> None:
        self.calls = 0
        self.flushed = threading.Event()

    def __call__(self) -> bool:
        self.calls += 1
        self.flushed.set()
        return True


def test_visibility_flushes_only_when_hidden() -> None:
    recorder = FlushRecorder()
    persistence = BackgroundPersistence(recorder, interval_seconds=60)

    assert persistence.handle_visibility_change("visible") is False
    assert recorder.calls == 0

    assert persistence.handle_visibility_change("hidden") is True
    assert recorder.calls == 1


def test_timer_flushes_periodically() -> None:
    recorder = FlushRecorder()
    persistence = BackgroundPersistence(recorder, interval_seconds=0.01).start()
    try:
        assert persistence.running
        assert recorder.flushed.wait(timeout=5)
    finally:
        persistence.shutdown()

    assert not persistence.running


def test_shutdown_flushes_once() -> None:
    recorder = FlushRecorder()
    persistence = BackgroundPersistence(recorder, interval_seconds=60).start()

    persistence.shutdown()
    persistence.shutdown()

    assert recorder.calls == 1


def test_closing_autosaving_store_writes_final_snapshot(settings: Settings) -> None:
    primary = MemoryStorageSlot("primary")
    service = DataService(settings, primary=primary, backup=MemoryStorageSlot("backup"), autosave=True)
    primary.clear()

    service.close()

    assert primary.read() is not None
