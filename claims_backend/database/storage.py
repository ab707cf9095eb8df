"""
Storage slots for the persisted application snapshot.

A slot holds one serialized snapshot as text. The store keeps two of them,
"primary" and "backup", and writes the same payload to both.

Provides file-backed slots (atomic replace) and in-memory slots. Either can
be given a byte quota, in which case oversize writes fail the way a full
browser store rejects ``setItem``.
"""

import os
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path
from uuid import uuid4

from claims_backend.config.config import Settings, get_settings
from claims_backend.config.logging_config import get_logger

logger = get_logger(__name__)


class StorageError(RuntimeError):
    """Base error for slot read/write failures."""


class StorageQuotaExceededError(StorageError):
    """Raised when a payload does not fit in the slot quota."""


class StorageSlot(ABC):
    """A named text slot holding one serialized snapshot."""

    def __init__(self, name: str, quota_bytes: int | None = None) -> None:
        self.name = name
        self.quota_bytes = quota_bytes

    @abstractmethod
    def read(self) -> str | None:
        """Return the stored text, or None when the slot is empty."""

    @abstractmethod
    def write(self, payload: str) -> None:
        """Replace the slot contents. Raises StorageError on failure."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the slot contents."""

    def _check_quota(self, payload: str) -> None:
        if self.quota_bytes is None:
            return
        size = len(payload.encode("utf-8"))
        if size > self.quota_bytes:
            raise StorageQuotaExceededError(
                f"Slot '{self.name}' quota exceeded: {size} > {self.quota_bytes} bytes"
            )


class MemoryStorageSlot(StorageSlot):
    """Slot kept in process memory; contents vanish with the process."""

    def __init__(
        self,
        name: str,
        quota_bytes: int | None = None,
        initial: str | None = None,
    ) -> None:
        super().__init__(name, quota_bytes)
        self._payload = initial

    def read(self) -> str | None:
        return self._payload

    def write(self, payload: str) -> None:
        self._check_quota(payload)
        self._payload = payload

    def clear(self) -> None:
        self._payload = None


class FileStorageSlot(StorageSlot):
    """Slot stored as ``<directory>/<name>.json``, replaced atomically."""

    def __init__(self, directory: Path, name: str, quota_bytes: int | None = None) -> None:
        super().__init__(name, quota_bytes)
        self.path = Path(directory) / f"{name}.json"

    def read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Slot read failed", slot=self.name, path=str(self.path), error=str(e))
            return None

    def write(self, payload: str) -> None:
        self._check_quota(payload)
        temp_path = self.path.with_name(f".{self.path.name}.{uuid4().hex}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(payload, encoding="utf-8")
            os.replace(temp_path, self.path)
        except OSError as e:
            raise StorageError(f"Slot '{self.name}' write failed: {e}") from e
        finally:
            with suppress(OSError):
                temp_path.unlink(missing_ok=True)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def build_storage_slots(settings: Settings | None = None) -> tuple[StorageSlot, StorageSlot]:
    """
    Create the primary and backup slots described by the settings.

    Args:
        settings: Application settings. Uses default if not provided.

    Returns:
        ``(primary, backup)`` slot pair.
    """
    settings = settings or get_settings()
    quota = settings.storage_quota_bytes

    if settings.storage_backend == "memory":
        primary: StorageSlot = MemoryStorageSlot(settings.primary_slot_name, quota)
        backup: StorageSlot = MemoryStorageSlot(settings.backup_slot_name, quota)
    else:
        primary = FileStorageSlot(settings.data_dir, settings.primary_slot_name, quota)
        backup = FileStorageSlot(settings.data_dir, settings.backup_slot_name, quota)

    logger.info(
        "Storage slots initialized",
        backend=settings.storage_backend,
        primary=primary.name,
        backup=backup.name,
        quota_bytes=quota,
    )
    return primary, backup
