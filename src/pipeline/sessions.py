"""
Session Service - Screening session lifecycle.

Creates sessions, registers uploaded CV files, applies status and progress
updates, and exposes status reports. Workers reuse the `apply_*` helpers on
sessions they have already loaded.
"""

import mimetypes
from pathlib import Path
from typing import Optional

from loguru import logger

from shared.config import Settings, get_settings
from shared.database import SessionStore
from shared.exceptions import (
    DocumentNotFoundError,
    DocumentValidationError,
    SessionNotFoundError,
)
from shared.models import (
    Document,
    DocumentStatus,
    JobOffer,
    Session,
    SessionStatistics,
    SessionStatus,
    SessionStatusReport,
    utc_now,
)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}


# -------------------------------------------------------------------------
# In-place helpers
# -------------------------------------------------------------------------


def apply_progress(session: Session, progress: int) -> None:
    """
    Set session progress, clamped to 0-100.

    Progress never goes down unless the session has failed. A session
    still in Created moves to Processing once progress is reported.
    """
    progress = max(0, min(100, progress))
    if session.status == SessionStatus.FAILED:
        session.progress = progress
    else:
        session.progress = max(session.progress, progress)
    if session.status == SessionStatus.CREATED:
        session.status = SessionStatus.PROCESSING


def apply_status(
    session: Session,
    status: SessionStatus,
    message: Optional[str] = None,
) -> None:
    """Set session status; Completed also stamps completion time and duration."""
    session.status = status
    session.status_message = message
    if status == SessionStatus.COMPLETED:
        now = utc_now()
        session.completed_at = now
        session.progress = 100
        session.total_processing_time_ms = int(
            (now - session.created_at).total_seconds() * 1000
        )


def refresh_statistics(session: Session) -> SessionStatistics:
    """Recompute document counters and score summary from the documents."""
    processed = [
        d
        for d in session.documents
        if d.status == DocumentStatus.PROCESSED and d.extracted_data is not None
    ]
    scores = [d.extracted_data.score.overall for d in processed]

    session.statistics = SessionStatistics(
        total_documents=len(session.documents),
        processed_documents=len(processed),
        failed_documents=len(session.documents_with_status(DocumentStatus.FAILED)),
        average_score=sum(scores) / len(scores) if scores else 0.0,
        highest_score=max(scores, default=0),
        lowest_score=min(scores, default=0),
    )
    return session.statistics


# -------------------------------------------------------------------------
# Service
# -------------------------------------------------------------------------


class SessionService:
    """Session operations on top of a session store."""

    def __init__(self, store: SessionStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    async def _require(self, session_id: str) -> Session:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def create_session(self, job_offer: JobOffer) -> Session:
        session = Session(job_offer=job_offer, status_message="Session created")
        await self.store.save(session)
        logger.info(f"Session created: {session.id} ({job_offer.title})")
        return session

    async def get_session(self, session_id: str) -> Optional[Session]:
        return await self.store.get(session_id)

    async def list_sessions(self, page: int = 1, page_size: int = 20) -> list[Session]:
        """Sessions ordered by creation time, newest first."""
        sessions = sorted(await self.store.get_all(), key=lambda s: s.created_at, reverse=True)
        start = max(0, page - 1) * page_size
        return sessions[start : start + page_size]

    async def delete_session(self, session_id: str) -> bool:
        deleted = await self.store.delete(session_id)
        if deleted:
            logger.info(f"Session deleted: {session_id}")
        else:
            logger.warning(f"Session not found for deletion: {session_id}")
        return deleted

    async def delete_document(self, session_id: str, document_id: str) -> Document:
        """
        Remove one document from its session.

        The comparison matrix is dropped because the candidate pool changed.

        Raises:
            SessionNotFoundError: unknown session
            DocumentNotFoundError: the session has no such document
        """
        session = await self._require(session_id)
        document = session.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(session_id, document_id)

        session.documents = [d for d in session.documents if d.id != document_id]
        session.comparison_matrix = None
        refresh_statistics(session)
        await self.store.save(session)

        logger.info(f"Document deleted: {document_id} ({document.file_name}) from {session_id}")
        return document

    # Upload validation ---------------------------------------------------

    def validate_file(self, file_name: str, file_size: int) -> None:
        """
        Raises:
            DocumentValidationError: unsupported extension, empty or oversized file
        """
        extension = Path(file_name).suffix.lower()
        if extension not in self.settings.supported_extensions_list:
            raise DocumentValidationError(f"File type not supported: {extension or '(none)'}")
        if file_size > self.settings.max_file_size:
            raise DocumentValidationError(f"File size exceeds limit: {file_size} bytes")
        if file_size == 0:
            raise DocumentValidationError("File is empty")

    def _new_document(
        self,
        session_id: str,
        file_path: str,
        file_size: Optional[int],
    ) -> Document:
        path = Path(file_path)
        if file_size is None:
            file_size = path.stat().st_size if path.exists() else 0
        extension = path.suffix.lower()
        content_type = CONTENT_TYPES.get(extension) or (
            mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        )
        return Document(
            session_id=session_id,
            file_name=path.name,
            file_path=str(path),
            file_size=file_size,
            content_type=content_type,
        )

    async def add_document(
        self,
        session_id: str,
        file_path: str,
        file_size: Optional[int] = None,
    ) -> Document:
        """
        Register one uploaded file as an Uploaded document.

        Raises:
            SessionNotFoundError: unknown session
            DocumentValidationError: the file fails upload validation
        """
        session = await self._require(session_id)
        document = self._new_document(session_id, file_path, file_size)
        self.validate_file(document.file_name, document.file_size)

        session.documents.append(document)
        await self.store.save(session)
        logger.info(f"Document uploaded: {document.id} ({document.file_name}) to {session_id}")
        return document

    async def add_documents(self, session_id: str, file_paths: list[str]) -> list[Document]:
        """
        Register a batch of files.

        Files failing validation come back as Rejected documents and are not
        added to the session.

        Raises:
            SessionNotFoundError: unknown session
            DocumentValidationError: the batch exceeds the file count or size limit
        """
        session = await self._require(session_id)
        candidates = [self._new_document(session_id, p, None) for p in file_paths]

        if len(candidates) > self.settings.max_files_per_batch:
            raise DocumentValidationError(
                f"Batch exceeds maximum files limit: {self.settings.max_files_per_batch}"
            )
        total_size = sum(d.file_size for d in candidates)
        if total_size > self.settings.max_batch_size:
            raise DocumentValidationError(
                f"Batch exceeds maximum size limit: {self.settings.max_batch_size} bytes"
            )

        results = []
        accepted = 0
        for document in candidates:
            try:
                self.validate_file(document.file_name, document.file_size)
            except DocumentValidationError as e:
                logger.error(f"Failed to upload file {document.file_name}: {e}")
                document.status = DocumentStatus.REJECTED
                document.error_message = str(e)
            else:
                session.documents.append(document)
                accepted += 1
            results.append(document)

        if accepted:
            await self.store.save(session)
        logger.info(
            f"Uploaded batch to {session_id}: {accepted} accepted, "
            f"{len(results) - accepted} rejected"
        )
        return results

    # Status ---------------------------------------------------------------

    async def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        message: Optional[str] = None,
    ) -> Session:
        session = await self._require(session_id)
        apply_status(session, status, message)
        await self.store.save(session)
        logger.info(f"Session status updated: {session_id} -> {status.value}")
        return session

    async def update_progress(self, session_id: str, progress: int) -> Session:
        session = await self._require(session_id)
        apply_progress(session, progress)
        await self.store.save(session)
        logger.debug(f"Session progress updated: {session_id} -> {session.progress}%")
        return session

    async def refresh_statistics(self, session_id: str) -> SessionStatistics:
        session = await self._require(session_id)
        statistics = refresh_statistics(session)
        await self.store.save(session)
        return statistics

    async def cancel_session(self, session_id: str) -> Session:
        """Cancelled sessions are ignored by the scheduler."""
        return await self.update_status(session_id, SessionStatus.CANCELLED, "Cancelled by user")

    async def reprocess_failed(self, session_id: str) -> list[Document]:
        """
        Reset Failed documents to Uploaded so the scheduler picks them up again.

        The comparison matrix is dropped so the session is analyzed again.
        """
        session = await self._require(session_id)
        failed = session.documents_with_status(DocumentStatus.FAILED)
        if not failed:
            logger.info(f"No failed documents to reprocess in {session_id}")
            return []

        for document in failed:
            document.status = DocumentStatus.UPLOADED
            document.error_message = None
            document.processed_at = None
            document.processing_time_ms = None

        session.comparison_matrix = None
        session.completed_at = None
        session.status = SessionStatus.PROCESSING
        session.status_message = f"Reprocessing {len(failed)} failed documents"
        refresh_statistics(session)
        await self.store.save(session)

        logger.info(f"Re-queued {len(failed)} failed documents of {session_id}")
        return failed

    async def get_status(self, session_id: str) -> SessionStatusReport:
        session = await self._require(session_id)
        processed = len(session.documents_with_status(DocumentStatus.PROCESSED))
        failed = len(session.documents_with_status(DocumentStatus.FAILED))
        return SessionStatusReport(
            session_id=session.id,
            status=session.status,
            total_documents=len(session.documents),
            processed_documents=processed,
            failed_documents=failed,
            pending_documents=len(session.documents) - processed - failed,
            progress=session.progress,
            status_message=session.status_message,
            has_comparison_matrix=session.comparison_matrix is not None,
            statistics=session.statistics,
        )
