"""
Pydantic models for screening sessions, documents and analysis results.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from dateutil import parser as date_parser
from pydantic import BaseModel, BeforeValidator, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class DocumentStatus(str, Enum):
    """Document processing status."""

    UPLOADED = "uploaded"  # Waiting for the scheduler
    EXTRACTING = "extracting"  # Queued or being extracted
    ANALYZING = "analyzing"  # LLM call in progress
    PROCESSED = "processed"  # Extracted data available
    FAILED = "failed"  # Extraction error
    REJECTED = "rejected"  # Failed upload validation

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.PROCESSED, DocumentStatus.FAILED)


class SessionStatus(str, Enum):
    """Screening session status."""

    CREATED = "created"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class HiringRecommendation(str, Enum):
    """Hiring recommendation category."""

    HIGHLY_RECOMMENDED = "highly_recommended"
    RECOMMENDED = "recommended"
    CONSIDER = "consider"
    NOT_RECOMMENDED = "not_recommended"


class RankingCriteria(str, Enum):
    """Score used to order candidates."""

    OVERALL = "overall"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    EDUCATION = "education"
    JOB_MATCH = "job_match"


# -------------------------------------------------------------------------
# Job offer
# -------------------------------------------------------------------------


class SalaryRange(BaseModel):
    """Salary range of a job offer."""

    min: float = 0
    max: float = 0
    currency: str = Field(..., description="ISO currency code")


class JobOffer(BaseModel):
    """Job offer the CVs of a session are compared against."""

    title: str = Field(..., description="Position title")
    description: str = Field(default="", description="Full job description")
    required_skills: list[str] = Field(default_factory=list)
    preferred_skills: list[str] = Field(default_factory=list)
    min_experience_years: int = Field(default=0, ge=0)
    education_level: Optional[str] = Field(default=None, description="e.g. 'Bachelor'")
    location: Optional[str] = None
    work_mode: Optional[str] = Field(default=None, description="remote, on-site or hybrid")
    salary_range: Optional[SalaryRange] = None
    created_at: datetime = Field(default_factory=utc_now)


# -------------------------------------------------------------------------
# Extracted CV data
# -------------------------------------------------------------------------


def _lenient_date(value: Any) -> Optional[date]:
    """Parse LLM-provided dates, dropping values like 'Present' or 'n/a'."""
    if isinstance(value, datetime):
        return value.date()
    if value is None or isinstance(value, date):
        return value
    try:
        return date_parser.parse(str(value), default=datetime(2000, 1, 1)).date()
    except (ValueError, OverflowError):
        return None


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


LenientDate = Annotated[Optional[date], BeforeValidator(_lenient_date)]
StrList = Annotated[list[str], BeforeValidator(_none_to_list)]


class PersonalInfo(BaseModel):
    """Candidate contact details."""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    linkedin: Optional[str] = None
    summary: Optional[str] = None


class Experience(BaseModel):
    """Work experience entry."""

    company: str
    position: str
    duration: Optional[str] = None
    start_date: LenientDate = None
    end_date: LenientDate = None
    responsibilities: StrList = Field(default_factory=list)
    technologies: StrList = Field(default_factory=list)
    is_current: bool = False


class Education(BaseModel):
    """Education entry."""

    institution: str
    degree: str
    field: Optional[str] = None
    year: Optional[int] = None
    grade: Optional[str] = None


class Certification(BaseModel):
    """Certification or course."""

    name: str
    issuer: str = ""
    issue_date: LenientDate = None
    expiry_date: LenientDate = None
    credential_id: Optional[str] = None


class Language(BaseModel):
    """Spoken language and level."""

    name: str
    level: str = ""


class CVScore(BaseModel):
    """Score breakdown of a CV against a job offer (all 0-100)."""

    overall: int = Field(default=0, ge=0, le=100)
    experience: int = Field(default=0, ge=0, le=100)
    skills: int = Field(default=0, ge=0, le=100)
    education: int = Field(default=0, ge=0, le=100)
    job_match: int = Field(default=0, ge=0, le=100)


class CVData(BaseModel):
    """Structured data extracted from a CV."""

    personal_info: PersonalInfo
    experience: Annotated[list[Experience], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )
    skills: StrList = Field(default_factory=list)
    education: Annotated[list[Education], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )
    certifications: Annotated[list[Certification], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )
    languages: Annotated[list[Language], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )
    score: CVScore = Field(default_factory=CVScore)
    extracted_at: datetime = Field(default_factory=utc_now)


# -------------------------------------------------------------------------
# Comparison and analysis results
# -------------------------------------------------------------------------


class SkillFrequency(BaseModel):
    """How often a skill appears across candidates."""

    skill: str
    count: int = 0
    percentage: float = 0.0


class ExperienceDistribution(BaseModel):
    """Candidates per experience tier (relevant years)."""

    junior: int = 0  # <= 2 years
    mid: int = 0  # 3-5 years
    senior: int = 0  # > 5 years


class ComparisonStatistics(BaseModel):
    """Aggregated statistics of a comparison matrix."""

    total_candidates: int = 0
    average_score: float = 0.0
    highest_score: int = 0
    lowest_score: int = 0
    score_standard_deviation: float = 0.0
    common_skills: list[SkillFrequency] = Field(default_factory=list)
    experience_distribution: ExperienceDistribution = Field(
        default_factory=ExperienceDistribution
    )


class CandidateComparison(BaseModel):
    """Per-document snapshot inside a comparison matrix."""

    document_id: str
    name: str
    email: Optional[str] = None
    overall_score: int = Field(..., ge=0, le=100)
    scores: CVScore
    ranking: int = 0
    matching_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    relevant_experience_years: int = 0
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendation: HiringRecommendation = HiringRecommendation.NOT_RECOMMENDED


class ComparisonMatrix(BaseModel):
    """Ranked comparison of all processed candidates of a session."""

    session_id: str
    candidates: list[CandidateComparison] = Field(default_factory=list)
    statistics: ComparisonStatistics = Field(default_factory=ComparisonStatistics)
    generated_at: datetime = Field(default_factory=utc_now)
    generation_time_ms: int = 0


class SkillGap(BaseModel):
    """A required skill that fewer than half of the candidates have."""

    skill: str
    required: int = 1
    available: int = 0
    gap_percentage: float = 0.0


class SkillGapAnalysis(BaseModel):
    """Coverage of the required skills by the candidate pool."""

    scarce_skills: list[SkillGap] = Field(default_factory=list)
    abundant_skills: list[SkillFrequency] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    overall_coverage: float = 0.0


class HiringRecommendationDetail(BaseModel):
    """Recommendation for one of the top candidates."""

    candidate: CandidateComparison
    recommendation: HiringRecommendation
    reasoning: str
    next_steps: list[str] = Field(default_factory=list)
    priority: int


# -------------------------------------------------------------------------
# Session aggregate
# -------------------------------------------------------------------------


class Document(BaseModel):
    """Uploaded CV file and its processing state."""

    id: str = Field(default_factory=new_id)
    session_id: str
    file_name: str
    file_path: str
    file_size: int = 0
    content_type: str = "application/octet-stream"
    status: DocumentStatus = DocumentStatus.UPLOADED
    extracted_data: Optional[CVData] = None
    extracted_text: Optional[str] = None
    error_message: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utc_now)
    processed_at: Optional[datetime] = None
    processing_time_ms: Optional[int] = None


class SessionStatistics(BaseModel):
    """Document counters and score summary of a session."""

    total_documents: int = 0
    processed_documents: int = 0
    failed_documents: int = 0
    average_score: float = 0.0
    highest_score: int = 0
    lowest_score: int = 0


class Session(BaseModel):
    """Screening session: one job offer and its uploaded CVs."""

    id: str = Field(default_factory=new_id)
    job_offer: JobOffer
    documents: list[Document] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.CREATED
    comparison_matrix: Optional[ComparisonMatrix] = None
    progress: int = Field(default=0, ge=0, le=100)
    status_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    total_processing_time_ms: Optional[int] = None
    statistics: SessionStatistics = Field(default_factory=SessionStatistics)

    def get_document(self, document_id: str) -> Optional[Document]:
        """Find a document of this session by id."""
        return next((d for d in self.documents if d.id == document_id), None)

    def documents_with_status(self, *statuses: DocumentStatus) -> list[Document]:
        return [d for d in self.documents if d.status in statuses]

    @property
    def all_documents_terminal(self) -> bool:
        return bool(self.documents) and all(d.status.is_terminal for d in self.documents)


class SessionStatusReport(BaseModel):
    """Read-only status summary of a session."""

    session_id: str
    status: SessionStatus
    total_documents: int
    processed_documents: int
    failed_documents: int
    pending_documents: int
    progress: int
    status_message: Optional[str] = None
    has_comparison_matrix: bool = False
    statistics: SessionStatistics
