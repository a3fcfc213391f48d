"""
Session Analysis Worker - Comparison matrix, recommendations and skill gap.
"""

import asyncio
import time
from typing import Any, Optional

from loguru import logger

from scoring.ranking import build_comparison_matrix, generate_hiring_recommendations
from scoring.skill_gap import analyze_session_skill_gap
from shared.database import SessionStore
from shared.models import (
    ComparisonMatrix,
    DocumentStatus,
    HiringRecommendationDetail,
    SessionStatus,
    SkillGapAnalysis,
)
from shared.notifications import Notifier

from .jobs import SessionAnalysisJob
from .queue import BoundedWorkQueue
from .sessions import apply_status
from .stats import PipelineStats


def summarize_results(
    matrix: Optional[ComparisonMatrix],
    recommendations: Optional[list[HiringRecommendationDetail]],
    skill_gap: SkillGapAnalysis,
) -> dict[str, Any]:
    """JSON-ready summary sent with the analysis-complete notification."""
    results: dict[str, Any] = {}

    if matrix is not None:
        top = matrix.candidates[0].name if matrix.candidates else None
        results["comparisonMatrix"] = {
            "sessionId": matrix.session_id,
            "candidatesCount": len(matrix.candidates),
            "topCandidate": top,
            "averageScore": matrix.statistics.average_score,
            "generatedAt": matrix.generated_at.isoformat(),
        }

    if recommendations is not None:
        results["recommendations"] = [
            {
                "candidateName": r.candidate.name,
                "recommendation": r.recommendation.value,
                "reasoning": r.reasoning,
                "priority": r.priority,
            }
            for r in recommendations
        ]

    results["skillGapAnalysis"] = {
        "overallCoverage": skill_gap.overall_coverage,
        "scarceSkillsCount": len(skill_gap.scarce_skills),
        "missingSkillsCount": len(skill_gap.missing_skills),
        "abundantSkillsCount": len(skill_gap.abundant_skills),
    }
    return results


class SessionAnalysisWorker:
    """Single consumer of the analysis queue."""

    def __init__(
        self,
        store: SessionStore,
        notifier: Notifier,
        queue: BoundedWorkQueue[SessionAnalysisJob],
        top_n: int = 5,
        error_backoff_seconds: float = 5.0,
        stats: Optional[PipelineStats] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.queue = queue
        self.top_n = top_n
        self.error_backoff_seconds = error_backoff_seconds
        self.stats = stats or PipelineStats()

    async def process_job(self, job: SessionAnalysisJob) -> Optional[dict[str, Any]]:
        """
        Analyze one session.

        Returns:
            The results summary, or None when the job was dropped or failed
        """
        session = await self.store.get(job.session_id)
        if session is None:
            logger.warning(f"Session {job.session_id} not found for analysis")
            return None

        processed = session.documents_with_status(DocumentStatus.PROCESSED)
        if not processed:
            logger.warning(f"No processed documents found in session {job.session_id}")
            return None

        logger.info(
            f"Starting analysis for session {job.session_id} "
            f"with {len(processed)} processed documents"
        )

        try:
            await self.notifier.progress(job.session_id, 90, "Starting analysis...")
            start_time = time.perf_counter()

            matrix: Optional[ComparisonMatrix] = None
            if job.generate_matrix:
                logger.debug(f"Generating comparison matrix for session {job.session_id}")
                matrix = build_comparison_matrix(session)
                session.comparison_matrix = matrix
                await self.store.save(session)

            recommendations = None
            if job.generate_recommendations:
                logger.debug(f"Generating hiring recommendations for session {job.session_id}")
                source = matrix or session.comparison_matrix or build_comparison_matrix(session)
                recommendations = generate_hiring_recommendations(source, self.top_n)

            logger.debug(f"Generating skill gap analysis for session {job.session_id}")
            skill_gap = analyze_session_skill_gap(session)

            results = summarize_results(matrix, recommendations, skill_gap)
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)

            apply_status(session, SessionStatus.COMPLETED, f"Analysis completed in {elapsed_ms}ms")
            await self.store.save(session)

            await self.notifier.progress(job.session_id, 100, "Analysis completed")
            await self.notifier.analysis_complete(job.session_id, results)
            await self.notifier.status_changed(
                job.session_id, SessionStatus.COMPLETED.value, "Analysis completed successfully"
            )

            self.stats.analyses_completed += 1
            logger.info(f"Analysis completed for session {job.session_id} in {elapsed_ms}ms")
            return results

        except Exception as e:
            self.stats.analyses_failed += 1
            logger.error(f"Failed to process analysis for session {job.session_id}: {e}")
            await self._mark_failed(job.session_id, f"Analysis failed: {e}")
            return None

    async def _mark_failed(self, session_id: str, message: str) -> None:
        try:
            # re-fetch so writes made before the failure are kept
            session = await self.store.get(session_id)
            if session is not None:
                apply_status(session, SessionStatus.FAILED, message)
                await self.store.save(session)
        except Exception as update_error:
            logger.error(f"Failed to mark session {session_id} as failed: {update_error}")

        await self.notifier.processing_error(session_id, message)
        await self.notifier.status_changed(session_id, SessionStatus.FAILED.value, "Analysis failed")

    async def run(self, stop_event: asyncio.Event) -> None:
        """Drain the analysis queue until the stop event is set."""
        logger.info("Session analysis worker started")

        while not stop_event.is_set():
            try:
                job = await self.queue.dequeue(stop_event)
                if job is None:
                    if self.queue.closed:
                        break
                    continue

                logger.info(f"Processing analysis job for session {job.session_id}")
                await self.process_job(job)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats.errors += 1
                logger.exception(f"Error in session analysis worker: {e}")
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.error_backoff_seconds)
                except asyncio.TimeoutError:
                    pass

        logger.info("Session analysis worker stopped")
