"""
Pytest configuration and shared fakes for the pipeline tests.
"""

from datetime import date
from typing import Any, Optional, Union

import pytest

from extraction.llm_extractor import ExtractionService
from shared.config import Settings
from shared.database import InMemorySessionStore
from shared.models import (
    CVData,
    Document,
    DocumentStatus,
    Education,
    Experience,
    JobOffer,
    PersonalInfo,
    Session,
)
from shared.notifications import NotificationSink, Notifier


class FakeExtractor(ExtractionService):
    """Returns canned CV data (or raises) keyed by the document text."""

    def __init__(self, results: Optional[dict[str, Union[CVData, Exception]]] = None):
        self.results = results or {}
        self.calls: list[str] = []

    async def extract(self, raw_text: str, job_offer: JobOffer) -> CVData:
        self.calls.append(raw_text)
        result = self.results.get(raw_text)
        if result is None:
            raise RuntimeError(f"no canned result for {raw_text!r}")
        if isinstance(result, Exception):
            raise result
        return result


class RecordingSink(NotificationSink):
    """Keeps every event as (name, session_id, payload)."""

    def __init__(self):
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def named(self, name: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [e for e in self.events if e[0] == name]

    async def progress(self, session_id, percent, message=None):
        self.events.append(("progress", session_id, {"percent": percent, "message": message}))

    async def document_result(self, session_id, document_id, success, error=None):
        self.events.append(
            (
                "document_result",
                session_id,
                {"document_id": document_id, "success": success, "error": error},
            )
        )

    async def analysis_complete(self, session_id, results):
        self.events.append(("analysis_complete", session_id, {"results": results}))

    async def processing_error(self, session_id, message):
        self.events.append(("processing_error", session_id, {"message": message}))

    async def status_changed(self, session_id, status, message=None):
        self.events.append(("status_changed", session_id, {"status": status, "message": message}))


class BrokenSink(NotificationSink):
    """Fails on every event."""

    async def progress(self, session_id, percent, message=None):
        raise ConnectionError("sink down")

    async def document_result(self, session_id, document_id, success, error=None):
        raise ConnectionError("sink down")

    async def analysis_complete(self, session_id, results):
        raise ConnectionError("sink down")

    async def processing_error(self, session_id, message):
        raise ConnectionError("sink down")

    async def status_changed(self, session_id, status, message=None):
        raise ConnectionError("sink down")


# -------------------------------------------------------------------------
# Builders
# -------------------------------------------------------------------------


def make_job_offer(**overrides) -> JobOffer:
    data = {
        "title": "Backend Developer",
        "description": "Build and run .NET services",
        "required_skills": ["C#", "SQL"],
        "min_experience_years": 5,
    }
    data.update(overrides)
    return JobOffer(**data)


def make_cv(
    name: str = "Ana Torres",
    skills: Optional[list[str]] = None,
    years: int = 6,
    technologies: Optional[list[str]] = None,
    education: Optional[list[Education]] = None,
) -> CVData:
    """CV with one experience entry spanning `years` whole years."""
    experience = []
    if years:
        experience.append(
            Experience(
                company="Contoso",
                position="Software Engineer",
                start_date=date(2010, 1, 1),
                end_date=date(2010 + years, 1, 10),
                technologies=technologies if technologies is not None else ["C#"],
            )
        )
    return CVData(
        personal_info=PersonalInfo(name=name, email=f"{name.split()[0].lower()}@example.com"),
        experience=experience,
        skills=skills if skills is not None else ["C#", "SQL", "Azure"],
        education=education or [],
    )


def make_document(
    session_id: str,
    text: str,
    status: DocumentStatus = DocumentStatus.UPLOADED,
    extracted_data: Optional[CVData] = None,
    file_size: int = 2048,
    error_message: Optional[str] = None,
) -> Document:
    return Document(
        session_id=session_id,
        file_name=f"{text}.txt",
        file_path=f"/tmp/{text}.txt",
        file_size=file_size,
        content_type="text/plain",
        status=status,
        extracted_text=text,
        extracted_data=extracted_data,
        error_message=error_message,
    )


def make_session(job_offer: Optional[JobOffer] = None) -> Session:
    return Session(job_offer=job_offer or make_job_offer())


# -------------------------------------------------------------------------
# Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        store_backend="memory",
        openai_api_key="test-key",
        openai_retry_delay_ms=1,
        document_workers=2,
        worker_error_backoff_seconds=0.01,
        analysis_error_backoff_seconds=0.01,
        scheduler_interval_seconds=0.05,
        scheduler_error_backoff_seconds=0.05,
        log_format="text",
    )


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifier(sink):
    return Notifier([sink])
