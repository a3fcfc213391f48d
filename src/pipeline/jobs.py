"""
Work items carried by the pipeline queues.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from shared.models import utc_now


@dataclass(frozen=True)
class DocumentProcessingJob:
    """Extract one uploaded document."""

    session_id: str
    document_id: str
    document_path: str
    priority: int = 100  # informational, queues are FIFO
    enqueued_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SessionAnalysisJob:
    """Build the comparison, recommendations and skill gap of a session."""

    session_id: str
    generate_matrix: bool = True
    generate_recommendations: bool = True
    enqueued_at: datetime = field(default_factory=utc_now)


Job = Union[DocumentProcessingJob, SessionAnalysisJob]
