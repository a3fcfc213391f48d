"""
CV Processing Pipeline - Background extraction and analysis.
Scheduler → Document workers → Analysis worker, fed by bounded queues.
"""

from .jobs import DocumentProcessingJob, Job, SessionAnalysisJob
from .queue import BoundedWorkQueue
from .runner import ProcessingPipeline
from .sessions import SessionService
from .stats import PipelineStats

__all__ = [
    "BoundedWorkQueue",
    "DocumentProcessingJob",
    "Job",
    "PipelineStats",
    "ProcessingPipeline",
    "SessionAnalysisJob",
    "SessionService",
]
