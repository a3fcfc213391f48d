"""
Skill-gap analysis: how well the candidate pool covers the required skills.
"""

from shared.models import (
    Document,
    DocumentStatus,
    JobOffer,
    Session,
    SkillFrequency,
    SkillGap,
    SkillGapAnalysis,
)

SCARCE_THRESHOLD = 0.5  # fewer than half of the candidates
ABUNDANT_THRESHOLD = 0.7  # at least 70% of the candidates


def analyze_skill_gap(documents: list[Document], job_offer: JobOffer) -> SkillGapAnalysis:
    """
    Count, for each required skill, the documents whose extracted skills
    contain it (case-insensitive).

    Only processed documents with extracted data take part.
    """
    candidate_skill_sets = [
        {s.strip().lower() for s in d.extracted_data.skills}
        for d in documents
        if d.status == DocumentStatus.PROCESSED and d.extracted_data is not None
    ]
    total = len(candidate_skill_sets)

    scarce: list[SkillGap] = []
    abundant: list[SkillFrequency] = []
    missing: list[str] = []
    covered = 0
    seen: set[str] = set()

    for skill in job_offer.required_skills:
        key = skill.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)

        available = sum(1 for skills in candidate_skill_sets if key in skills)
        share = available / total if total else 0.0

        if available == 0:
            missing.append(skill)
        else:
            covered += 1
        if share < SCARCE_THRESHOLD:
            scarce.append(
                SkillGap(
                    skill=skill,
                    available=available,
                    gap_percentage=1.0 - share,
                )
            )
        elif share >= ABUNDANT_THRESHOLD:
            abundant.append(
                SkillFrequency(skill=skill, count=available, percentage=share * 100)
            )

    coverage = covered / len(seen) * 100 if seen else 100.0

    return SkillGapAnalysis(
        scarce_skills=scarce,
        abundant_skills=abundant,
        missing_skills=missing,
        overall_coverage=coverage,
    )


def analyze_session_skill_gap(session: Session) -> SkillGapAnalysis:
    return analyze_skill_gap(session.documents, session.job_offer)
