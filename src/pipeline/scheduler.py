"""
Job Scheduler - Periodic scan of all sessions.

Queues uploaded documents for extraction and finished sessions for analysis.
"""

import asyncio
from datetime import datetime
from typing import Optional

from loguru import logger

from shared.database import SessionStore
from shared.models import Document, DocumentStatus, Session, SessionStatus, utc_now

from .jobs import DocumentProcessingJob, SessionAnalysisJob
from .queue import BoundedWorkQueue
from .stats import PipelineStats

MB = 1024 * 1024


def calculate_priority(document: Document, session: Session, now: Optional[datetime] = None) -> int:
    """
    Higher is more urgent: older uploads, smaller files and smaller sessions
    score higher.
    """
    now = now or utc_now()
    hours_waiting = max(0.0, (now - document.uploaded_at).total_seconds() / 3600)
    priority = int(min(hours_waiting, 24))

    if document.file_size < MB:
        priority += 10
    elif document.file_size < 5 * MB:
        priority += 5

    document_count = len(session.documents)
    if document_count <= 5:
        priority += 15
    elif document_count <= 20:
        priority += 10
    else:
        priority += 5

    return priority


def needs_analysis(session: Session) -> bool:
    """All documents terminal, at least one processed, no matrix yet."""
    return (
        session.comparison_matrix is None
        and session.all_documents_terminal
        and any(d.status == DocumentStatus.PROCESSED for d in session.documents)
    )


class JobScheduler:
    """Polls the session store and feeds both work queues."""

    def __init__(
        self,
        store: SessionStore,
        document_queue: BoundedWorkQueue[DocumentProcessingJob],
        analysis_queue: BoundedWorkQueue[SessionAnalysisJob],
        interval_seconds: float = 30.0,
        error_backoff_seconds: float = 60.0,
        stats: Optional[PipelineStats] = None,
    ):
        self.store = store
        self.document_queue = document_queue
        self.analysis_queue = analysis_queue
        self.interval_seconds = interval_seconds
        self.error_backoff_seconds = error_backoff_seconds
        self.stats = stats or PipelineStats()

        # sessions with an analysis job still pending
        self._analysis_queued: set[str] = set()

    async def _schedule_documents(self, session: Session) -> int:
        uploaded = session.documents_with_status(DocumentStatus.UPLOADED)
        if not uploaded:
            return 0

        now = utc_now()
        for document in uploaded:
            job = DocumentProcessingJob(
                session_id=session.id,
                document_id=document.id,
                document_path=document.file_path,
                priority=calculate_priority(document, session, now),
            )
            await self.document_queue.enqueue(job)
            document.status = DocumentStatus.EXTRACTING
            logger.debug(
                f"Queued document {document.id} of {session.id} (priority {job.priority})"
            )

        # One save after every enqueue. A full queue delays it, and a result a
        # worker wrote in the meantime is overwritten (last writer wins).
        await self.store.save(session)
        logger.info(f"Scheduled {len(uploaded)} documents for session {session.id}")
        return len(uploaded)

    async def _schedule_analysis(self, session: Session) -> bool:
        if session.status == SessionStatus.FAILED or not needs_analysis(session):
            self._analysis_queued.discard(session.id)
            return False
        if session.id in self._analysis_queued:
            return False

        await self.analysis_queue.enqueue(SessionAnalysisJob(session_id=session.id))
        self._analysis_queued.add(session.id)

        processed = len(session.documents_with_status(DocumentStatus.PROCESSED))
        failed = len(session.documents_with_status(DocumentStatus.FAILED))
        logger.info(
            f"Scheduled analysis for session {session.id} "
            f"({processed} processed, {failed} failed)"
        )
        return True

    async def tick(self) -> tuple[int, int]:
        """
        Scan every session once.

        Returns:
            (documents enqueued, analyses enqueued)
        """
        sessions = await self.store.get_all()
        self._analysis_queued &= {s.id for s in sessions}

        documents_enqueued = 0
        analyses_enqueued = 0
        for session in sessions:
            if session.status == SessionStatus.CANCELLED:
                continue
            try:
                documents_enqueued += await self._schedule_documents(session)
                if await self._schedule_analysis(session):
                    analyses_enqueued += 1
            except Exception as e:
                logger.error(f"Error scheduling session {session.id}: {e}")

        self.stats.documents_scheduled += documents_enqueued
        self.stats.analyses_scheduled += analyses_enqueued
        if documents_enqueued or analyses_enqueued:
            logger.info(
                f"Scheduler tick: {documents_enqueued} documents, "
                f"{analyses_enqueued} analyses queued"
            )
        return documents_enqueued, analyses_enqueued

    async def _wait(self, stop_event: asyncio.Event, seconds: float) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self, stop_event: asyncio.Event) -> None:
        """Tick every interval until the stop event is set."""
        logger.info(f"Job scheduler started (interval: {self.interval_seconds}s)")

        while not stop_event.is_set():
            tick_task = asyncio.ensure_future(self.tick())
            stop_task = asyncio.ensure_future(stop_event.wait())
            try:
                await asyncio.wait({tick_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                tick_task.cancel()
                raise
            finally:
                stop_task.cancel()

            if not tick_task.done():
                # stop requested mid-tick
                tick_task.cancel()
                await asyncio.gather(tick_task, return_exceptions=True)
                break

            if tick_task.exception() is not None:
                logger.error(f"Error in job scheduler: {tick_task.exception()}")
                await self._wait(stop_event, self.error_backoff_seconds)
                continue

            await self._wait(stop_event, self.interval_seconds)

        logger.info("Job scheduler stopped")
