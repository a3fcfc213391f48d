"""
Exceptions raised by the screening pipeline and its collaborators.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class SessionNotFoundError(PipelineError):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class DocumentNotFoundError(PipelineError):
    def __init__(self, session_id: str, document_id: str):
        super().__init__(f"Document {document_id} not found in session {session_id}")
        self.session_id = session_id
        self.document_id = document_id


class DocumentValidationError(PipelineError):
    """Upload rejected (file type, size or batch limits)."""


class ExtractionError(PipelineError):
    """LLM extraction failed or returned unusable data."""


class QueueClosedError(PipelineError):
    """Enqueue attempted on a closed work queue."""
