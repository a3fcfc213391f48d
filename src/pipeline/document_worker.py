"""
Document Processing Workers - Extract queued documents concurrently.
"""

import asyncio
import time
from typing import Optional

from loguru import logger

from extraction.llm_extractor import ExtractionService
from extraction.text import read_document_text
from shared.database import SessionStore
from shared.exceptions import DocumentNotFoundError, SessionNotFoundError
from shared.models import Document, DocumentStatus, Session, SessionStatus, utc_now
from shared.notifications import Notifier

from .jobs import DocumentProcessingJob
from .queue import BoundedWorkQueue
from .sessions import apply_progress, apply_status, refresh_statistics
from .stats import PipelineStats


class DocumentWorkerPool:
    """
    N workers draining the document queue.

    Every dequeued document ends Processed or Failed. Business errors are
    contained per document; only the stop event ends a worker, after its
    current job.
    """

    def __init__(
        self,
        store: SessionStore,
        extractor: ExtractionService,
        notifier: Notifier,
        queue: BoundedWorkQueue[DocumentProcessingJob],
        worker_count: int = 1,
        error_backoff_seconds: float = 1.0,
        stats: Optional[PipelineStats] = None,
    ):
        self.store = store
        self.extractor = extractor
        self.notifier = notifier
        self.queue = queue
        self.worker_count = max(1, worker_count)
        self.error_backoff_seconds = error_backoff_seconds
        self.stats = stats or PipelineStats()

    async def _load(self, job: DocumentProcessingJob) -> tuple[Session, Document]:
        session = await self.store.get(job.session_id)
        if session is None:
            raise SessionNotFoundError(job.session_id)
        document = session.get_document(job.document_id)
        if document is None:
            raise DocumentNotFoundError(job.session_id, job.document_id)
        return session, document

    async def _document_text(self, document: Document, job: DocumentProcessingJob) -> str:
        if document.extracted_text:
            return document.extracted_text
        return await asyncio.to_thread(read_document_text, document.file_path or job.document_path)

    async def _update_session_progress(self, session: Session) -> None:
        total = len(session.documents)
        if total == 0:
            return
        terminal = sum(1 for d in session.documents if d.status.is_terminal)
        progress = terminal * 100 // total

        apply_progress(session, progress)
        refresh_statistics(session)

        all_done = terminal == total and session.status != SessionStatus.CANCELLED
        if all_done:
            processed = len(session.documents_with_status(DocumentStatus.PROCESSED))
            failed = len(session.documents_with_status(DocumentStatus.FAILED))
            apply_status(
                session,
                SessionStatus.COMPLETED,
                f"Processing completed. {processed} successful, {failed} failed",
            )

        await self.store.save(session)
        await self.notifier.progress(
            session.id, progress, f"Processed {terminal}/{total} documents"
        )

        if all_done:
            await self.notifier.status_changed(
                session.id, SessionStatus.COMPLETED.value, "All documents processed"
            )
            logger.info(f"Session {session.id} processing completed")

    async def process_job(self, job: DocumentProcessingJob, worker_name: str = "worker") -> None:
        """Extract one document and record the outcome on its session."""
        try:
            session, document = await self._load(job)
        except (SessionNotFoundError, DocumentNotFoundError) as e:
            logger.warning(f"{worker_name} - {e}, dropping job")
            return

        try:
            document.status = DocumentStatus.EXTRACTING
            await self.store.save(session)
            await self.notifier.document_result(
                job.session_id, job.document_id, False, "Processing started"
            )

            start_time = time.perf_counter()
            text = await self._document_text(document, job)
            document.status = DocumentStatus.ANALYZING
            await self.store.save(session)
            cv_data = await self.extractor.extract(text, session.job_offer)
            processing_ms = int((time.perf_counter() - start_time) * 1000)

            document.extracted_text = text
            document.extracted_data = cv_data
            document.status = DocumentStatus.PROCESSED
            document.error_message = None
            document.processed_at = utc_now()
            document.processing_time_ms = processing_ms
            await self.store.save(session)

            await self.notifier.document_result(job.session_id, job.document_id, True)
            await self._update_session_progress(session)

            self.stats.documents_processed += 1
            logger.info(
                f"{worker_name} successfully processed document {job.document_id} "
                f"in {processing_ms}ms"
            )

        except Exception as e:
            self.stats.documents_failed += 1
            logger.error(f"{worker_name} failed to process document {job.document_id}: {e}")
            await self._mark_failed(job, str(e) or type(e).__name__, worker_name)

    async def _mark_failed(self, job: DocumentProcessingJob, error: str, worker_name: str) -> None:
        try:
            session, document = await self._load(job)
            document.status = DocumentStatus.FAILED
            document.error_message = error
            document.extracted_data = None
            refresh_statistics(session)
            await self.store.save(session)
        except Exception as update_error:
            logger.error(
                f"{worker_name} failed to update document status after error: {update_error}"
            )

        await self.notifier.document_result(job.session_id, job.document_id, False, error)

    async def run_worker(self, worker_name: str, stop_event: asyncio.Event) -> None:
        logger.debug(f"{worker_name} started")

        while not stop_event.is_set():
            try:
                job = await self.queue.dequeue(stop_event)
                if job is None:
                    if self.queue.closed:
                        break
                    continue

                logger.info(
                    f"{worker_name} processing document {job.document_id} "
                    f"from session {job.session_id}"
                )
                await self.process_job(job, worker_name)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats.errors += 1
                logger.exception(f"{worker_name} encountered an error: {e}")
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.error_backoff_seconds)
                except asyncio.TimeoutError:
                    pass

        logger.debug(f"{worker_name} stopped")

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run all workers until the stop event is set."""
        logger.info(
            f"Document processing started with {self.worker_count} concurrent workers"
        )
        await asyncio.gather(
            *(self.run_worker(f"Worker-{i}", stop_event) for i in range(self.worker_count))
        )
        logger.info("Document processing stopped")
