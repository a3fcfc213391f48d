"""
Counters for a pipeline run.
"""

import time
from dataclasses import dataclass, field


@dataclass
class PipelineStats:
    """Statistics for pipeline run."""

    documents_processed: int = 0
    documents_failed: int = 0
    analyses_completed: int = 0
    analyses_failed: int = 0
    documents_scheduled: int = 0
    analyses_scheduled: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def duration_seconds(self) -> float:
        return time.time() - self.start_time

    def __str__(self) -> str:
        return (
            f"Scheduled: {self.documents_scheduled} documents, {self.analyses_scheduled} analyses | "
            f"Documents: {self.documents_processed} ok, {self.documents_failed} failed | "
            f"Analyses: {self.analyses_completed} ok, {self.analyses_failed} failed | "
            f"Errors: {self.errors}, Duration: {self.duration_seconds:.1f}s"
        )
