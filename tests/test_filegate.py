"""Tests for the synchronous FileGate facade."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from filegate import FileGate
from filegate.exceptions import (
    FileGateError,
    ForbiddenError,
    ShareLinkExhaustedError,
    SizeLimitExceededError,
    UnauthorizedError,
)
from filegate.models.activity import ActivityType
from filegate.models.permissions import Capability
from filegate.storage.formats import FileFormat, FileType

if TYPE_CHECKING:
    from collections.abc import Iterator

    from filegate.config import Settings

    from .conftest import FakeClock


@pytest.fixture
def fg(settings: Settings, clock: FakeClock) -> Iterator[FileGate]:
    g = FileGate(settings=settings, clock=clock)
    yield g
    g.close()


def _token(url: str) -> str:
    return url.rsplit("/", 1)[-1]


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestSyncFiles:
    def test_upload_download_delete(self, fg: FileGate):
        record = fg.upload_file(
            "proj-1", "alice", "clip.mp4", b"\x00\x01video", file_type=FileType.VIDEO
        )
        assert record.file_format is FileFormat.MP4
        assert fg.get_file(record.id).name == "clip.mp4"

        assert fg.download_file(record.id, "alice").content == b"\x00\x01video"

        fg.delete_file(record.id, "alice")
        kinds = [e.activity_type for e in fg.query_activity("proj-1")]
        assert kinds == [
            ActivityType.FILE_DELETED,
            ActivityType.FILE_DOWNLOADED,
            ActivityType.FILE_ADDED,
        ]

    def test_size_limits(self, fg: FileGate):
        rule = fg.update_size_limit(10, affected_types=[FileType.AUDIO])
        assert rule is not None
        fg.evaluate_upload_size(100, FileType.VIDEO)
        with pytest.raises(SizeLimitExceededError, match="for this file type"):
            fg.evaluate_upload_size(11, FileType.AUDIO)

    def test_permissions(self, fg: FileGate):
        record = fg.upload_file("proj-1", "alice", "a.txt", b"a")
        fg.set_file_permissions(record.id, "bob", ["view"])
        assert fg.has_capability(record.id, "bob", Capability.VIEW)
        with pytest.raises(ForbiddenError):
            fg.require_capability(record.id, "bob", Capability.EDIT)

        fg.update_file_permissions(record.id, "alice", {"bob": ["edit"]})
        assert fg.get_file_permissions(record.id, "bob").permissions[0].capabilities == (
            frozenset({Capability.EDIT})
        )


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


class TestSyncSharing:
    def test_link_lifecycle(self, fg: FileGate):
        record = fg.upload_file("proj-1", "alice", "a.pdf", b"pdf")
        link = fg.issue_share_link(
            record.id, "alice", ["download"], password="pw", max_uses=1
        )
        with pytest.raises(UnauthorizedError):
            fg.redeem_share_link(_token(link.url))

        assert fg.redeem_share_link(_token(link.url), "pw").content == b"pdf"
        with pytest.raises(ShareLinkExhaustedError):
            fg.redeem_share_link(_token(link.url), "pw")
        assert fg.list_share_links(record.id)[0].use_count == 1

    def test_direct_shares(self, fg: FileGate):
        record = fg.upload_file("proj-1", "alice", "a.pdf", b"pdf")
        fg.share_with_user(record.id, "alice", "bob", [Capability.DOWNLOAD])
        fg.share_with_email(record.id, "alice", "eve@example.com", [Capability.VIEW])
        assert fg.download_file(record.id, "bob").content == b"pdf"
        assert len(fg.aio.sharing.list_email_shares(record.id)) == 1

    def test_threaded_single_use_redeem(self, fg: FileGate):
        record = fg.upload_file("proj-1", "alice", "a.pdf", b"pdf")
        link = fg.issue_share_link(record.id, "alice", ["view"], max_uses=1)
        token = _token(link.url)

        outcomes: list[str] = []
        lock = threading.Lock()

        def redeem() -> None:
            try:
                fg.redeem_share_link(token)
                result = "ok"
            except ShareLinkExhaustedError:
                result = "exhausted"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=redeem) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["exhausted"] * 5 + ["ok"]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_context_manager(self, settings: Settings):
        with FileGate(settings=settings) as g:
            g.record_activity("p", "u", ActivityType.CREATED)
            assert len(g.query_activity("p")) == 1
        assert not g._thread.is_alive()

    def test_close_is_idempotent(self, settings: Settings):
        g = FileGate(settings=settings)
        g.close()
        g.close()

    def test_closed_rejects_every_call(self, settings: Settings):
        g = FileGate(settings=settings)
        record = g.upload_file("p", "alice", "a.txt", b"x")
        g.close()
        with pytest.raises(FileGateError, match="closed"):
            g.upload_file("p", "alice", "b.txt", b"y")
        with pytest.raises(FileGateError, match="closed"):
            g.redeem_share_link("token")
        with pytest.raises(FileGateError, match="closed"):
            g.set_file_permissions(record.id, "bob", ["view"])
        with pytest.raises(FileGateError, match="closed"):
            g.share_with_user(record.id, "alice", "bob", ["view"])
        with pytest.raises(FileGateError, match="closed"):
            g.record_activity("p", "alice", ActivityType.CREATED)
        with pytest.raises(FileGateError, match="closed"):
            g.query_activity("p")
