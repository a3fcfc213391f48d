"""
Test cases for the session service
"""
from datetime import timedelta

import pytest

from conftest import make_cv, make_document, make_job_offer, make_session
from pipeline.scheduler import needs_analysis
from pipeline.sessions import SessionService, apply_progress, refresh_statistics
from shared.config import Settings
from shared.exceptions import (
    DocumentNotFoundError,
    DocumentValidationError,
    SessionNotFoundError,
)
from shared.models import ComparisonMatrix, DocumentStatus, SessionStatus


@pytest.fixture
def service(store, settings):
    return SessionService(store, settings)


@pytest.fixture
def cv_files(tmp_path):
    files = {}
    for name, size in [("ana.pdf", 1000), ("luis.docx", 2000), ("notes.txt", 10)]:
        path = tmp_path / name
        path.write_bytes(b"x" * size)
        files[name] = str(path)
    return files


class TestLifecycle:
    """Test cases for session creation, listing and deletion"""

    async def test_create_and_get(self, service):
        session = await service.create_session(make_job_offer(title="Data Engineer"))

        stored = await service.get_session(session.id)
        assert stored.job_offer.title == "Data Engineer"
        assert stored.status == SessionStatus.CREATED
        assert stored.progress == 0

    async def test_list_sessions_paginates_newest_first(self, service, store):
        created = []
        for i in range(3):
            session = make_session(make_job_offer(title=f"Job {i}"))
            session.created_at = session.created_at + timedelta(minutes=i)
            await store.save(session)
            created.append(session)

        first_page = await service.list_sessions(page=1, page_size=2)
        second_page = await service.list_sessions(page=2, page_size=2)

        assert [s.id for s in first_page] == [created[2].id, created[1].id]
        assert [s.id for s in second_page] == [created[0].id]

    async def test_delete(self, service):
        session = await service.create_session(make_job_offer())
        assert await service.delete_session(session.id)
        assert await service.get_session(session.id) is None
        assert not await service.delete_session(session.id)

    async def test_delete_document(self, service, store):
        session = make_session()
        cv = make_cv()
        cv.score.overall = 77
        keep = make_document(session.id, "ok", DocumentStatus.PROCESSED, cv)
        drop = make_document(session.id, "bad", DocumentStatus.FAILED, error_message="boom")
        session.documents = [keep, drop]
        session.comparison_matrix = ComparisonMatrix(session_id=session.id)
        refresh_statistics(session)
        await store.save(session)

        deleted = await service.delete_document(session.id, drop.id)

        assert deleted.id == drop.id
        stored = await store.get(session.id)
        assert [d.id for d in stored.documents] == [keep.id]
        assert stored.comparison_matrix is None
        assert stored.statistics.total_documents == 1
        assert stored.statistics.failed_documents == 0
        assert stored.statistics.average_score == 77
        assert needs_analysis(stored)

    async def test_delete_document_missing(self, service):
        session = await service.create_session(make_job_offer())

        with pytest.raises(DocumentNotFoundError):
            await service.delete_document(session.id, "missing")
        with pytest.raises(SessionNotFoundError):
            await service.delete_document("missing", "missing")


class TestUploads:
    """Test cases for document registration and validation"""

    async def test_add_document(self, service, cv_files):
        session = await service.create_session(make_job_offer())

        document = await service.add_document(session.id, cv_files["ana.pdf"])

        assert document.status == DocumentStatus.UPLOADED
        assert document.file_name == "ana.pdf"
        assert document.file_size == 1000
        assert document.content_type == "application/pdf"
        stored = await service.get_session(session.id)
        assert [d.id for d in stored.documents] == [document.id]

    @pytest.mark.parametrize(
        "file_name, size, message",
        [
            ("cv.exe", 100, "File type not supported"),
            ("cv", 100, "File type not supported"),
            ("cv.pdf", 11 * 1024 * 1024, "File size exceeds limit"),
            ("cv.pdf", 0, "File is empty"),
        ],
    )
    async def test_add_document_rejects_invalid_files(self, service, file_name, size, message):
        session = await service.create_session(make_job_offer())

        with pytest.raises(DocumentValidationError, match=message):
            await service.add_document(session.id, f"/uploads/{file_name}", file_size=size)

        assert (await service.get_session(session.id)).documents == []

    async def test_add_document_to_missing_session(self, service, cv_files):
        with pytest.raises(SessionNotFoundError):
            await service.add_document("missing", cv_files["ana.pdf"])

    async def test_batch_returns_rejected_documents(self, service, cv_files, tmp_path):
        session = await service.create_session(make_job_offer())
        image = tmp_path / "photo.png"
        image.write_bytes(b"png")

        documents = await service.add_documents(
            session.id, [cv_files["ana.pdf"], str(image), cv_files["luis.docx"]]
        )

        assert [d.status for d in documents] == [
            DocumentStatus.UPLOADED,
            DocumentStatus.REJECTED,
            DocumentStatus.UPLOADED,
        ]
        assert "File type not supported" in documents[1].error_message

        stored = await service.get_session(session.id)
        assert [d.file_name for d in stored.documents] == ["ana.pdf", "luis.docx"]

    async def test_batch_file_limit(self, store, cv_files):
        service = SessionService(store, Settings(_env_file=None, max_files_per_batch=2))
        session = await service.create_session(make_job_offer())

        with pytest.raises(DocumentValidationError, match="maximum files"):
            await service.add_documents(session.id, list(cv_files.values()))

        assert (await service.get_session(session.id)).documents == []

    async def test_batch_size_limit(self, store, cv_files):
        service = SessionService(store, Settings(_env_file=None, max_batch_size=1500))
        session = await service.create_session(make_job_offer())

        with pytest.raises(DocumentValidationError, match="maximum size"):
            await service.add_documents(session.id, list(cv_files.values()))


class TestStatus:
    """Test cases for status, progress and reprocessing"""

    def test_progress_is_monotonic(self):
        session = make_session()
        apply_progress(session, 60)
        apply_progress(session, 40)
        assert session.progress == 60
        assert session.status == SessionStatus.PROCESSING

    def test_progress_is_clamped(self):
        session = make_session()
        apply_progress(session, 150)
        assert session.progress == 100

    def test_failed_session_progress_can_drop(self):
        session = make_session()
        session.progress = 80
        session.status = SessionStatus.FAILED
        apply_progress(session, 10)
        assert session.progress == 10
        assert session.status == SessionStatus.FAILED

    async def test_update_status_completed(self, service):
        session = await service.create_session(make_job_offer())

        updated = await service.update_status(session.id, SessionStatus.COMPLETED, "done")

        assert updated.progress == 100
        assert updated.completed_at is not None
        assert updated.total_processing_time_ms >= 0
        assert (await service.get_session(session.id)).status_message == "done"

    async def test_update_progress(self, service):
        session = await service.create_session(make_job_offer())
        await service.update_progress(session.id, 70)
        await service.update_progress(session.id, 20)
        assert (await service.get_session(session.id)).progress == 70

    async def test_update_missing_session(self, service):
        with pytest.raises(SessionNotFoundError):
            await service.update_status("missing", SessionStatus.COMPLETED)

    async def test_cancel(self, service):
        session = await service.create_session(make_job_offer())
        cancelled = await service.cancel_session(session.id)
        assert cancelled.status == SessionStatus.CANCELLED

    async def test_reprocess_failed(self, service, store):
        session = make_session()
        session.documents = [
            make_document(session.id, "ok", DocumentStatus.PROCESSED, make_cv()),
            make_document(session.id, "bad", DocumentStatus.FAILED, error_message="boom"),
        ]
        session.comparison_matrix = ComparisonMatrix(session_id=session.id)
        session.status = SessionStatus.COMPLETED
        await store.save(session)

        reset = await service.reprocess_failed(session.id)

        assert [d.file_name for d in reset] == ["bad.txt"]
        stored = await store.get(session.id)
        assert stored.documents[1].status == DocumentStatus.UPLOADED
        assert stored.documents[1].error_message is None
        assert stored.documents[0].status == DocumentStatus.PROCESSED
        assert stored.comparison_matrix is None
        assert stored.status == SessionStatus.PROCESSING

    async def test_reprocess_without_failures(self, service):
        session = await service.create_session(make_job_offer())
        assert await service.reprocess_failed(session.id) == []

    async def test_get_status(self, service, store):
        session = make_session()
        cv = make_cv()
        cv.score.overall = 77
        session.documents = [
            make_document(session.id, "ok", DocumentStatus.PROCESSED, cv),
            make_document(session.id, "bad", DocumentStatus.FAILED, error_message="boom"),
            make_document(session.id, "new"),
        ]
        refresh_statistics(session)
        await store.save(session)

        report = await service.get_status(session.id)

        assert report.total_documents == 3
        assert report.processed_documents == 1
        assert report.failed_documents == 1
        assert report.pending_documents == 1
        assert not report.has_comparison_matrix
        assert report.statistics.processed_documents == 1
        assert report.statistics.average_score == 77
        assert report.statistics.highest_score == 77
