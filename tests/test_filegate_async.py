"""Tests for FileGateAsync: end-to-end flows across the components."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from filegate._filegate_async import FileGateAsync
from filegate.exceptions import (
    FileGateError,
    ForbiddenError,
    NotFoundError,
    ShareLinkExhaustedError,
    SizeLimitExceededError,
    StorageError,
)
from filegate.models.activity import ActivityType
from filegate.models.permissions import Capability
from filegate.storage.formats import FileFormat, FileType
from filegate.store import MemoryStore

if TYPE_CHECKING:
    from filegate.config import Settings
    from filegate.models.files import FileRecord

    from .conftest import FakeClock


async def _upload(gate: FileGateAsync, name: str = "report.pdf", **kwargs) -> FileRecord:
    return await gate.upload_file(
        "proj-1",
        "alice",
        name,
        kwargs.pop("content", b"%PDF-1.7 body"),
        file_type=kwargs.pop("file_type", FileType.DOCUMENT),
        **kwargs,
    )


def _token(url: str) -> str:
    return url.rsplit("/", 1)[-1]


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestUpload:
    async def test_upload_creates_record(self, gate: FileGateAsync, settings: Settings):
        record = await _upload(gate, description="Q3")
        assert record.project_id == "proj-1"
        assert record.uploaded_by == "alice"
        assert record.file_type is FileType.DOCUMENT
        assert record.file_format is FileFormat.PDF
        assert record.size_bytes == len(b"%PDF-1.7 body")
        assert record.description == "Q3"
        assert not record.is_shared
        assert Path(record.path).parent == settings.upload_dir.resolve()
        assert gate.get_file(record.id) is record

    async def test_uploader_gets_full_capabilities(self, gate: FileGateAsync):
        record = await _upload(gate)
        own = gate.permissions.get_permissions(record.id, "alice")
        assert own is not None
        assert Capability.FULL_ACCESS in own.capabilities

    async def test_explicit_format_wins(self, gate: FileGateAsync):
        record = await _upload(gate, name="scan", file_format=FileFormat.PNG)
        assert record.file_format is FileFormat.PNG

    async def test_records_file_added(self, gate: FileGateAsync, clock: FakeClock):
        record = await _upload(gate)
        [entry] = gate.query_activity("proj-1")
        assert entry.activity_type is ActivityType.FILE_ADDED
        assert entry.user_id == "alice"
        assert entry.timestamp == clock.now
        assert entry.details == {
            "file_id": record.id,
            "file_name": "report.pdf",
            "file_type": "document",
            "file_format": "pdf",
            "file_size": record.size_bytes,
        }

    async def test_size_rejected_before_write(self, gate: FileGateAsync):
        gate.update_size_limit(4)
        with pytest.raises(SizeLimitExceededError, match="maximum allowed limit"):
            await _upload(gate, content=b"12345")
        assert len(gate.store.files) == 0
        assert not list(gate.storage.base_dir.iterdir())
        assert gate.query_activity("proj-1") == []

    async def test_override_rule_applies(self, gate: FileGateAsync):
        gate.update_size_limit(3, affected_formats=[FileFormat.GIF])
        with pytest.raises(SizeLimitExceededError, match="for this file type"):
            await _upload(gate, name="cat.gif", content=b"GIF89a", file_type=FileType.IMAGE)
        await _upload(gate, name="cat.png", content=b"PNGPNG", file_type=FileType.IMAGE)

    async def test_global_limit_from_settings(self, settings: Settings):
        small = settings.model_copy(update={"global_max_file_size": 2})
        async with FileGateAsync(settings=small) as g:
            assert g.size_policy.global_limit == 2
            with pytest.raises(SizeLimitExceededError):
                await g.upload_file("p", "u", "a.txt", b"abc")

    async def test_evaluate_upload_size(self, gate: FileGateAsync):
        gate.evaluate_upload_size(209_715_200, FileType.DOCUMENT, FileFormat.PDF)
        with pytest.raises(SizeLimitExceededError):
            gate.evaluate_upload_size(209_715_201, FileType.DOCUMENT, FileFormat.PDF)


# ---------------------------------------------------------------------------
# Download / delete
# ---------------------------------------------------------------------------


class TestDownloadDelete:
    async def test_owner_download(self, gate: FileGateAsync):
        record = await _upload(gate)
        download = await gate.download_file(record.id, "alice")
        assert download.content == b"%PDF-1.7 body"
        assert download.name == "report.pdf"
        assert gate.query_activity("proj-1", limit=1)[0].activity_type is (
            ActivityType.FILE_DOWNLOADED
        )

    async def test_download_requires_capability(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW])
        with pytest.raises(ForbiddenError, match="download permission"):
            await gate.download_file(record.id, "bob")

        gate.set_file_permissions(record.id, "bob", [Capability.DOWNLOAD])
        assert (await gate.download_file(record.id, "bob")).content == b"%PDF-1.7 body"

    async def test_download_unknown_file(self, gate: FileGateAsync):
        with pytest.raises(NotFoundError):
            await gate.download_file("missing", "alice")

    async def test_delete(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW])
        link = await gate.issue_share_link(record.id, "alice", [Capability.VIEW])

        await gate.delete_file(record.id, "alice")

        assert len(gate.store.files) == 0
        assert not Path(record.path).exists()
        assert gate.permissions.list_permissions(record.id) == []
        with pytest.raises(NotFoundError):
            gate.get_file(record.id)
        with pytest.raises(NotFoundError):
            await gate.redeem_share_link(_token(link.url))
        assert gate.query_activity("proj-1", limit=1)[0].activity_type is (
            ActivityType.FILE_DELETED
        )

    async def test_delete_keeps_record_when_removal_fails(
        self, gate: FileGateAsync, monkeypatch: pytest.MonkeyPatch
    ):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW])

        async def broken_remove(path):
            raise StorageError("Failed to delete file: device busy")

        monkeypatch.setattr(gate.storage, "remove", broken_remove)
        with pytest.raises(StorageError, match="Failed to delete file"):
            await gate.delete_file(record.id, "alice")

        assert gate.get_file(record.id) is record
        assert Path(record.path).exists()
        assert gate.has_capability(record.id, "bob", Capability.VIEW)
        kinds = [e.activity_type for e in gate.query_activity("proj-1")]
        assert ActivityType.FILE_DELETED not in kinds

    async def test_delete_requires_capability(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.EDIT])
        with pytest.raises(ForbiddenError, match="delete permission"):
            await gate.delete_file(record.id, "bob")
        assert gate.get_file(record.id) is record


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class TestFilePermissions:
    async def test_share_holder_sees_all(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW])
        view = gate.get_file_permissions(record.id, "alice")
        assert view.complete
        assert {p.user_id for p in view.permissions} == {"alice", "bob"}

    async def test_viewer_sees_only_own(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW])
        gate.set_file_permissions(record.id, "carol", [Capability.VIEW])
        view = gate.get_file_permissions(record.id, "bob")
        assert not view.complete
        assert [p.user_id for p in view.permissions] == ["bob"]

    async def test_requires_view(self, gate: FileGateAsync):
        record = await _upload(gate)
        with pytest.raises(ForbiddenError, match="view permission"):
            gate.get_file_permissions(record.id, "mallory")

    async def test_update_file_permissions(self, gate: FileGateAsync):
        record = await _upload(gate)
        updated = gate.update_file_permissions(
            record.id,
            "alice",
            {"bob": ["view", "download"], "carol": [Capability.EDIT]},
        )
        assert {r.user_id for r in updated} == {"bob", "carol"}
        assert gate.has_capability(record.id, "bob", Capability.DOWNLOAD)
        assert gate.has_capability(record.id, "carol", "edit")

        entry = gate.query_activity("proj-1", limit=1)[0]
        assert entry.activity_type is ActivityType.FILE_PERMISSION_UPDATED
        assert entry.details["updated_permissions"] == {
            "bob": ["download", "view"],
            "carol": ["edit"],
        }

    async def test_update_requires_share(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.set_file_permissions(record.id, "bob", [Capability.VIEW, Capability.EDIT])
        with pytest.raises(ForbiddenError, match="share permission"):
            gate.update_file_permissions(record.id, "bob", {"bob": ["full_access"]})
        assert not gate.has_capability(record.id, "bob", Capability.DELETE)


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


class TestSharingFlows:
    async def test_single_use_password_link(self, gate: FileGateAsync):
        record = await _upload(gate)
        link = await gate.issue_share_link(
            record.id,
            "alice",
            [Capability.DOWNLOAD],
            password="secret123",
            max_uses=1,
        )
        assert link.url.startswith("https://files.test/share/")
        assert gate.get_file(record.id).is_shared

        result = await gate.redeem_share_link(_token(link.url), "secret123")
        assert result.content == b"%PDF-1.7 body"
        with pytest.raises(ShareLinkExhaustedError):
            await gate.redeem_share_link(_token(link.url), "secret123")

        assert [v.use_count for v in gate.list_share_links(record.id)] == [1]

    async def test_issue_records_activity(self, gate: FileGateAsync):
        record = await _upload(gate)
        await gate.issue_share_link(record.id, "alice", [Capability.VIEW])
        entry = gate.query_activity("proj-1", limit=1)[0]
        assert entry.activity_type is ActivityType.FILE_SHARED
        assert entry.details["share_link"] is True
        assert entry.details["permissions"] == ["view"]

    async def test_share_with_user(self, gate: FileGateAsync):
        record = await _upload(gate)
        gate.share_with_user(record.id, "alice", "bob", [Capability.DOWNLOAD])
        assert (await gate.download_file(record.id, "bob")).size_bytes == record.size_bytes
        shared = [
            e for e in gate.query_activity("proj-1")
            if e.activity_type is ActivityType.FILE_SHARED
        ]
        assert shared[0].details["shared_with_user_id"] == "bob"

    async def test_share_with_email(self, gate: FileGateAsync):
        record = await _upload(gate)
        share = gate.share_with_email(record.id, "alice", "dana@example.com", ["view"])
        assert share.email == "dana@example.com"
        entry = gate.query_activity("proj-1", limit=1)[0]
        assert entry.details["shared_with_email"] == "dana@example.com"


# ---------------------------------------------------------------------------
# Activity and lifecycle
# ---------------------------------------------------------------------------


class TestActivityAndLifecycle:
    async def test_record_and_query(self, gate: FileGateAsync, clock: FakeClock):
        gate.record_activity("proj-9", "alice", ActivityType.CREATED)
        clock.advance(minutes=1)
        gate.record_activity("proj-9", "bob", "commented", {"text": "hi"})
        entries = gate.query_activity("proj-9")
        assert [e.user_id for e in entries] == ["bob", "alice"]

    def test_shared_store(self, settings: Settings):
        store = MemoryStore()
        a = FileGateAsync(settings=settings, store=store)
        b = FileGateAsync(settings=settings, store=store)
        a.record_activity("p", "u", ActivityType.CREATED)
        assert len(b.query_activity("p")) == 1

    async def test_closed_rejects_io(self, settings: Settings):
        g = FileGateAsync(settings=settings)
        await g.close()
        with pytest.raises(FileGateError, match="closed"):
            await g.upload_file("p", "u", "a.txt", b"x")

    async def test_closed_rejects_in_memory_calls(self, settings: Settings):
        g = FileGateAsync(settings=settings)
        record = await g.upload_file("p", "alice", "a.txt", b"x")
        await g.close()
        calls = [
            lambda: g.get_file(record.id),
            lambda: g.set_file_permissions(record.id, "bob", ["view"]),
            lambda: g.has_capability(record.id, "alice", "view"),
            lambda: g.require_capability(record.id, "alice", "view"),
            lambda: g.get_file_permissions(record.id, "alice"),
            lambda: g.update_file_permissions(record.id, "alice", {"bob": ["view"]}),
            lambda: g.share_with_user(record.id, "alice", "bob", ["view"]),
            lambda: g.share_with_email(record.id, "alice", "b@example.com", ["view"]),
            lambda: g.list_share_links(record.id),
            lambda: g.evaluate_upload_size(1),
            lambda: g.update_size_limit(10),
            lambda: g.record_activity("p", "alice", ActivityType.CREATED),
            lambda: g.query_activity("p"),
        ]
        for call in calls:
            with pytest.raises(FileGateError, match="closed"):
                call()
        assert g.permissions.get_permissions(record.id, "bob") is None
