"""
Processing Pipeline - Queues, workers and scheduler in one process.

Scheduler → document queue → document workers
          → analysis queue → analysis worker
"""

import asyncio
from typing import Optional

from loguru import logger

from extraction.llm_extractor import ExtractionService, LLMExtractor
from shared.config import Settings, get_settings
from shared.database import SessionStore, create_session_store
from shared.notifications import Notifier, create_notifier

from .analysis_worker import SessionAnalysisWorker
from .document_worker import DocumentWorkerPool
from .jobs import DocumentProcessingJob, SessionAnalysisJob
from .queue import BoundedWorkQueue
from .scheduler import JobScheduler
from .stats import PipelineStats


class ProcessingPipeline:
    """
    Background CV processing: extraction workers, analysis worker and the
    session scheduler, sharing one stop signal.

    Collaborators default to the configured implementations and can be
    injected for tests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SessionStore] = None,
        extractor: Optional[ExtractionService] = None,
        notifier: Optional[Notifier] = None,
        worker_count: Optional[int] = None,
        scheduler_interval: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or create_session_store(self.settings)
        self.extractor = extractor or LLMExtractor(settings=self.settings)
        self.notifier = notifier or create_notifier(self.settings)
        self.worker_count = worker_count or self.settings.worker_count
        self.scheduler_interval = scheduler_interval or self.settings.scheduler_interval_seconds

        self.stats = PipelineStats()
        self.stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

        # Components (built in initialize)
        self.document_queue: Optional[BoundedWorkQueue[DocumentProcessingJob]] = None
        self.analysis_queue: Optional[BoundedWorkQueue[SessionAnalysisJob]] = None
        self.scheduler: Optional[JobScheduler] = None
        self.document_workers: Optional[DocumentWorkerPool] = None
        self.analysis_worker: Optional[SessionAnalysisWorker] = None

    async def initialize(self) -> None:
        """Connect the store and build queues and workers."""
        logger.info("Initializing processing pipeline...")
        await self.store.connect()
        await self.store.ensure_indexes()

        self.document_queue = BoundedWorkQueue(
            self.settings.document_queue_capacity, name="document_processing"
        )
        self.analysis_queue = BoundedWorkQueue(
            self.settings.analysis_queue_capacity, name="session_analysis"
        )

        self.scheduler = JobScheduler(
            self.store,
            self.document_queue,
            self.analysis_queue,
            interval_seconds=self.scheduler_interval,
            error_backoff_seconds=self.settings.scheduler_error_backoff_seconds,
            stats=self.stats,
        )
        self.document_workers = DocumentWorkerPool(
            self.store,
            self.extractor,
            self.notifier,
            self.document_queue,
            worker_count=self.worker_count,
            error_backoff_seconds=self.settings.worker_error_backoff_seconds,
            stats=self.stats,
        )
        self.analysis_worker = SessionAnalysisWorker(
            self.store,
            self.notifier,
            self.analysis_queue,
            top_n=self.settings.recommendations_top_n,
            error_backoff_seconds=self.settings.analysis_error_backoff_seconds,
            stats=self.stats,
        )
        logger.info("Pipeline initialized successfully")

    def _require_initialized(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("Pipeline not initialized. Call initialize() first.")

    async def start(self) -> None:
        """Start scheduler and workers as background tasks."""
        self._require_initialized()
        if self._tasks:
            return

        self.stop_event.clear()
        self.stats = PipelineStats()
        self.scheduler.stats = self.stats
        self.document_workers.stats = self.stats
        self.analysis_worker.stats = self.stats

        self._tasks = [
            asyncio.create_task(self.scheduler.run(self.stop_event), name="job-scheduler"),
            asyncio.create_task(self.document_workers.run(self.stop_event), name="document-workers"),
            asyncio.create_task(self.analysis_worker.run(self.stop_event), name="analysis-worker"),
        ]
        logger.info(f"Pipeline started ({self.worker_count} document workers)")

    async def stop(self) -> None:
        """Signal every loop to stop and wait for in-flight jobs to finish."""
        if not self._tasks:
            return

        logger.info("Stopping processing pipeline...")
        self.stop_event.set()
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for task, result in zip(self._tasks, results):
            if isinstance(result, Exception):
                logger.error(f"{task.get_name()} ended with error: {result}")
        self._tasks = []
        logger.info(f"Pipeline stopped: {self.stats}")

    async def run_forever(self) -> None:
        """Run until cancelled (e.g. Ctrl+C), then stop gracefully."""
        await self.start()
        try:
            await self.stop_event.wait()
        finally:
            await self.stop()

    async def cleanup(self) -> None:
        """Cleanup resources."""
        if self.document_queue:
            self.document_queue.close()
        if self.analysis_queue:
            self.analysis_queue.close()
        await self.notifier.close()
        await self.store.disconnect()

    # Manual enqueue surface ------------------------------------------------

    async def enqueue_document_job(
        self,
        session_id: str,
        document_id: str,
        priority: int = 100,
    ) -> DocumentProcessingJob:
        """Queue a document directly, bypassing the scheduler."""
        self._require_initialized()

        document_path = ""
        session = await self.store.get(session_id)
        if session is not None:
            document = session.get_document(document_id)
            if document is not None:
                document_path = document.file_path

        job = DocumentProcessingJob(
            session_id=session_id,
            document_id=document_id,
            document_path=document_path,
            priority=priority,
        )
        await self.document_queue.enqueue(job)
        logger.info(f"Document job queued manually: {document_id} ({session_id})")
        return job

    async def enqueue_analysis_job(
        self,
        session_id: str,
        generate_matrix: bool = True,
        generate_recommendations: bool = True,
    ) -> SessionAnalysisJob:
        """Queue an analysis directly, e.g. to re-run a failed one."""
        self._require_initialized()

        job = SessionAnalysisJob(
            session_id=session_id,
            generate_matrix=generate_matrix,
            generate_recommendations=generate_recommendations,
        )
        await self.analysis_queue.enqueue(job)
        logger.info(f"Analysis job queued manually: {session_id}")
        return job

    def queue_depth(self) -> dict[str, int]:
        self._require_initialized()
        return {
            "document_processing": self.document_queue.count,
            "session_analysis": self.analysis_queue.count,
        }
