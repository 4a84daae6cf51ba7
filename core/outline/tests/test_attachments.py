"""Tests for chapter attachments."""

import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.outline.attachments import (
    AttachmentPanel,
    AttachmentTooLargeError,
    attachment_to_dict,
    chapter_index_for,
    create_attachment,
    safe_filename,
)
from core.outline.flattener import project_outline


def test_subchapters_map_to_their_root_chapter(course_tree):
    records = project_outline(course_tree)
    env_vars = records[3]
    assert chapter_index_for(env_vars) == 0
    assert chapter_index_for(records[5]) == 4


def test_safe_filename_strips_directories_and_odd_characters():
    name = safe_filename("../../etc/My Notes (final).pdf")
    assert "/" not in name
    assert name.endswith("-My-Notes-final.pdf")


def test_attachment_to_dict():
    attachment_id = uuid.uuid4()
    data = attachment_to_dict(
        {
            "attachment_id": attachment_id,
            "course_id": "c",
            "chapter_index": 4,
            "filename": "abc-notes.pdf",
            "original_name": "notes.pdf",
            "mime_type": "application/pdf",
            "size": 10,
            "uploaded_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
        }
    )
    assert data["id"] == str(attachment_id)
    assert data["lessonIndex"] == 4
    assert data["downloadUrl"] == f"/api/attachments/{attachment_id}/download"


class TestCreateAttachment:
    @pytest.mark.asyncio
    async def test_rejects_oversized_upload(self, tmp_path):
        conn = AsyncMock()
        with patch("core.outline.attachments.get_max_attachment_bytes", return_value=4):
            with pytest.raises(AttachmentTooLargeError):
                await create_attachment(
                    conn,
                    course_id="c",
                    chapter_index=0,
                    original_name="big.bin",
                    data=b"12345",
                    storage_dir=tmp_path,
                )
        conn.execute.assert_not_awaited()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_stores_file_and_row(self, tmp_path):
        stored_row = MagicMock()
        stored_row._mapping = {"filename": "stored"}
        result = MagicMock()
        result.fetchone.return_value = stored_row
        conn = AsyncMock()
        conn.execute.return_value = result

        row = await create_attachment(
            conn,
            course_id="c",
            chapter_index=2,
            original_name="notes.txt",
            data=b"hello",
            storage_dir=tmp_path,
        )

        assert row == {"filename": "stored"}
        files = list((tmp_path / "c").iterdir())
        assert len(files) == 1
        assert files[0].read_bytes() == b"hello"
        params = conn.execute.await_args.args[0].compile().params
        assert params["mime_type"] == "text/plain"
        assert params["chapter_index"] == 2

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_file(self, tmp_path):
        conn = AsyncMock()
        conn.execute.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await create_attachment(
                conn,
                course_id="c1",
                chapter_index=0,
                original_name="notes.pdf",
                data=b"%PDF",
                storage_dir=tmp_path,
            )

        assert list((tmp_path / "c1").iterdir()) == []


class TestAttachmentPanel:
    @pytest.mark.asyncio
    async def test_applies_result_for_current_selection(self):
        fetch = AsyncMock(return_value=[{"id": "a1"}])
        panel = AttachmentPanel(fetch=fetch)

        assert await panel.show("c", 0) is True
        assert panel.attachments == [{"id": "a1"}]
        assert panel.loading is False

    @pytest.mark.asyncio
    async def test_discards_result_after_selection_changed(self):
        first_release = asyncio.Event()

        async def fetch(course_id, chapter_index):
            if chapter_index == 0:
                await first_release.wait()
                return [{"id": "old"}]
            return [{"id": "new"}]

        panel = AttachmentPanel(fetch=fetch)
        slow = asyncio.create_task(panel.show("c", 0))
        await asyncio.sleep(0)

        assert await panel.show("c", 4) is True
        first_release.set()
        assert await slow is False

        assert panel.selected == ("c", 4)
        assert panel.attachments == [{"id": "new"}]

    @pytest.mark.asyncio
    async def test_fetch_failure_shows_empty_list(self):
        panel = AttachmentPanel(fetch=AsyncMock(side_effect=RuntimeError("boom")))
        panel.attachments = [{"id": "stale"}]

        assert await panel.show("c", 1) is True
        assert panel.attachments == []

    def test_remove(self):
        panel = AttachmentPanel(fetch=AsyncMock(), attachments=[{"id": "a"}, {"id": "b"}])
        panel.remove("a")
        assert panel.attachments == [{"id": "b"}]
