"""Shared fixtures for filegate tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from filegate._filegate_async import FileGateAsync
from filegate.access.activity import ActivityRecorder
from filegate.access.passwords import PasslibHasher
from filegate.access.permissions import PermissionRegistry
from filegate.access.sharing import SharingService
from filegate.access.size_policy import SizePolicy
from filegate.config import Settings
from filegate.models.files import FileRecord
from filegate.storage.formats import FileFormat, FileType
from filegate.storage.local_disk import LocalDiskStorage
from filegate.store import MemoryStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


class FakeClock:
    """Deterministic clock; each call returns the current value unchanged."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        upload_dir=tmp_path / "uploads",
        share_base_url="https://files.test/share",
        password_schemes=["pbkdf2_sha256"],
    )


@pytest.fixture
def store() -> MemoryStore:
    """Fresh, isolated in-memory store."""
    return MemoryStore()


@pytest.fixture
def registry(store: MemoryStore) -> PermissionRegistry:
    return PermissionRegistry(store)


@pytest.fixture
def size_policy(store: MemoryStore) -> SizePolicy:
    return SizePolicy(store)


@pytest.fixture
def recorder(store: MemoryStore, clock: FakeClock) -> ActivityRecorder:
    return ActivityRecorder(store, clock=clock)


@pytest.fixture
def storage(tmp_path: Path) -> LocalDiskStorage:
    return LocalDiskStorage(tmp_path / "uploads")


@pytest.fixture
def sharing(
    store: MemoryStore,
    registry: PermissionRegistry,
    storage: LocalDiskStorage,
    settings: Settings,
    clock: FakeClock,
) -> SharingService:
    return SharingService(
        store,
        registry,
        storage,
        settings=settings,
        hasher=PasslibHasher(settings.password_schemes),
        clock=clock,
    )


@pytest.fixture
def stored_file(store: MemoryStore, storage: LocalDiskStorage) -> FileRecord:
    """A file owned by ``alice`` in project ``proj-1`` with bytes on disk."""
    content = b"%PDF-1.7 quarterly numbers"
    path = storage.base_dir / storage.storage_key("report.pdf")
    path.write_bytes(content)
    record = FileRecord(
        project_id="proj-1",
        name="report.pdf",
        path=str(path),
        file_type=FileType.DOCUMENT,
        file_format=FileFormat.PDF,
        size_bytes=len(content),
        description="Q3 report",
        uploaded_by="alice",
    )
    store.files.add(record.id, record)
    return record


@pytest.fixture
async def gate(settings: Settings, clock: FakeClock) -> AsyncIterator[FileGateAsync]:
    """FileGateAsync with its own store, a temp upload dir and a fake clock."""
    async with FileGateAsync(settings=settings, clock=clock) as g:
        yield g
