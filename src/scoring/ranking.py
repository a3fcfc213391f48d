"""
Candidate ranking, comparison statistics and hiring recommendations.
"""

import statistics
import time
from datetime import date
from typing import Optional

from shared.models import (
    CandidateComparison,
    ComparisonMatrix,
    ComparisonStatistics,
    DocumentStatus,
    ExperienceDistribution,
    HiringRecommendation,
    HiringRecommendationDetail,
    RankingCriteria,
    Session,
    SkillFrequency,
)

from .engine import compare_candidate

COMMON_SKILLS_LIMIT = 10

_SORT_KEYS = {
    RankingCriteria.OVERALL: lambda c: c.overall_score,
    RankingCriteria.EXPERIENCE: lambda c: c.scores.experience,
    RankingCriteria.SKILLS: lambda c: c.scores.skills,
    RankingCriteria.EDUCATION: lambda c: c.scores.education,
    RankingCriteria.JOB_MATCH: lambda c: c.scores.job_match,
}

_REASONING = {
    HiringRecommendation.HIGHLY_RECOMMENDED: (
        "Outstanding candidate with a {score}% match. Meets most technical "
        "requirements and has relevant experience."
    ),
    HiringRecommendation.RECOMMENDED: (
        "Good candidate with a {score}% match. Solid profile that fits the position well."
    ),
    HiringRecommendation.CONSIDER: (
        "Candidate to consider with a {score}% match. Shows potential but needs "
        "further evaluation."
    ),
    HiringRecommendation.NOT_RECOMMENDED: (
        "Not recommended with a {score}% match. Does not meet the minimum requirements."
    ),
}

_NEXT_STEPS = {
    HiringRecommendation.HIGHLY_RECOMMENDED: [
        "Schedule a technical interview immediately",
        "Prepare a competitive offer",
    ],
    HiringRecommendation.RECOMMENDED: [
        "Run an initial interview",
        "Assess cultural fit",
    ],
    HiringRecommendation.CONSIDER: [
        "Screening interview",
        "Evaluate missing skills",
    ],
    HiringRecommendation.NOT_RECOMMENDED: [
        "Archive profile",
    ],
}


def rank_candidates(
    candidates: list[CandidateComparison],
    sort_by: RankingCriteria = RankingCriteria.OVERALL,
    ascending: bool = False,
) -> list[CandidateComparison]:
    """
    Sort candidates by a score and assign 1-based rankings.

    The sort is stable: candidates with equal scores keep their relative
    order. Returns new objects; the input list is not modified.
    """
    ordered = sorted(candidates, key=_SORT_KEYS[sort_by], reverse=not ascending)
    return [
        candidate.model_copy(update={"ranking": position})
        for position, candidate in enumerate(ordered, start=1)
    ]


def _experience_distribution(candidates: list[CandidateComparison]) -> ExperienceDistribution:
    years = [c.relevant_experience_years for c in candidates]
    return ExperienceDistribution(
        junior=sum(1 for y in years if y <= 2),
        mid=sum(1 for y in years if 2 < y <= 5),
        senior=sum(1 for y in years if y > 5),
    )


def _common_skills(candidates: list[CandidateComparison]) -> list[SkillFrequency]:
    counts: dict[str, int] = {}
    spelling: dict[str, str] = {}
    for candidate in candidates:
        for skill in candidate.matching_skills:
            key = skill.strip().lower()
            spelling.setdefault(key, skill)
            counts[key] = counts.get(key, 0) + 1

    # sorted() is stable, ties keep first-seen order
    top = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:COMMON_SKILLS_LIMIT]
    return [
        SkillFrequency(
            skill=spelling[key],
            count=count,
            percentage=count / len(candidates) * 100,
        )
        for key, count in top
    ]


def generate_statistics(candidates: list[CandidateComparison]) -> ComparisonStatistics:
    """Score summary, common matching skills and experience tiers."""
    if not candidates:
        return ComparisonStatistics()

    scores = [c.overall_score for c in candidates]
    return ComparisonStatistics(
        total_candidates=len(candidates),
        average_score=statistics.fmean(scores),
        highest_score=max(scores),
        lowest_score=min(scores),
        score_standard_deviation=statistics.pstdev(scores),
        common_skills=_common_skills(candidates),
        experience_distribution=_experience_distribution(candidates),
    )


def build_comparison_matrix(session: Session, today: Optional[date] = None) -> ComparisonMatrix:
    """
    Compare every processed document of a session against its job offer.

    Raises:
        ValueError: the session has no processed documents with extracted data
    """
    start_time = time.perf_counter()

    processed = [
        d
        for d in session.documents
        if d.status == DocumentStatus.PROCESSED and d.extracted_data is not None
    ]
    if not processed:
        raise ValueError(f"No processed documents found in session {session.id}")

    comparisons = [
        compare_candidate(d.id, d.extracted_data, session.job_offer, today) for d in processed
    ]
    candidates = rank_candidates(comparisons)

    return ComparisonMatrix(
        session_id=session.id,
        candidates=candidates,
        statistics=generate_statistics(candidates),
        generation_time_ms=int((time.perf_counter() - start_time) * 1000),
    )


def recommendation_reasoning(candidate: CandidateComparison) -> str:
    return _REASONING[candidate.recommendation].format(score=candidate.overall_score)


def next_steps(candidate: CandidateComparison) -> list[str]:
    return list(_NEXT_STEPS[candidate.recommendation])


def generate_hiring_recommendations(
    matrix: ComparisonMatrix, top_n: int = 5
) -> list[HiringRecommendationDetail]:
    """Recommendations for the top-N ranked candidates of a matrix."""
    top_candidates = sorted(matrix.candidates, key=lambda c: c.ranking)[:top_n]
    return [
        HiringRecommendationDetail(
            candidate=candidate,
            recommendation=candidate.recommendation,
            reasoning=recommendation_reasoning(candidate),
            next_steps=next_steps(candidate),
            priority=candidate.ranking,
        )
        for candidate in top_candidates
    ]
