"""
Candidate scoring against a job offer.

Pure functions: no I/O, no logging. Skill comparisons are case-insensitive.

Weights of the overall score:
- 30% experience
- 40% skills
- 20% education
- 10% job match
"""

import math
import re
from datetime import date
from typing import Iterable, Optional

from shared.models import (
    CVData,
    CVScore,
    CandidateComparison,
    Education,
    Experience,
    HiringRecommendation,
    JobOffer,
)

EXPERIENCE_WEIGHT = 0.3
SKILLS_WEIGHT = 0.4
EDUCATION_WEIGHT = 0.2
JOB_MATCH_WEIGHT = 0.1

NEUTRAL_EDUCATION_SCORE = 70
JOB_MATCH_BASE = 70

_YEARS_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:years?|yrs?|a[ñn]os?)\b", re.IGNORECASE)
_MONTHS_PATTERN = re.compile(r"(\d+)\s*(?:months?|mos?|mes(?:es)?)\b", re.IGNORECASE)


def _normalize(skill: str) -> str:
    return skill.strip().lower()


def _skill_set(skills: Iterable[str]) -> set[str]:
    return {_normalize(s) for s in skills if s and s.strip()}


def matching_skills(candidate_skills: list[str], required_skills: list[str]) -> list[str]:
    """Candidate skills that are required, in candidate order and spelling."""
    required = _skill_set(required_skills)
    seen: set[str] = set()
    matches = []
    for skill in candidate_skills:
        key = _normalize(skill)
        if key in required and key not in seen:
            seen.add(key)
            matches.append(skill)
    return matches


def missing_skills(candidate_skills: list[str], required_skills: list[str]) -> list[str]:
    """Required skills the candidate lacks, in job offer order and spelling."""
    candidate = _skill_set(candidate_skills)
    seen: set[str] = set()
    missing = []
    for skill in required_skills:
        key = _normalize(skill)
        if key not in candidate and key not in seen:
            seen.add(key)
            missing.append(skill)
    return missing


# -------------------------------------------------------------------------
# Experience
# -------------------------------------------------------------------------


def parse_duration_years(duration: Optional[str]) -> int:
    """
    Best-effort parse of a free-text duration ("3 years", "2 años 6 meses",
    "18 months"). Defaults to 1 year when nothing usable is found.
    """
    if not duration:
        return 1

    years_match = _YEARS_PATTERN.search(duration)
    months_match = _MONTHS_PATTERN.search(duration)
    months = int(months_match.group(1)) if months_match else 0

    if years_match:
        years = float(years_match.group(1).replace(",", "."))
        return int(years) + months // 12
    if months_match:
        return max(1, months // 12)
    return 1


def experience_years(experience: Experience, today: Optional[date] = None) -> int:
    """Whole years of one experience entry; explicit dates win over the duration text."""
    start, end = experience.start_date, experience.end_date
    if start and not end and experience.is_current:
        end = today or date.today()
    if start and end:
        return max(0, (end - start).days // 365)
    return parse_duration_years(experience.duration)


def total_experience_years(experiences: list[Experience], today: Optional[date] = None) -> int:
    return sum(experience_years(e, today) for e in experiences)


def is_relevant_experience(experience: Experience, job_offer: JobOffer) -> bool:
    """Technologies overlap the required skills, or the position names one of them."""
    required = _skill_set(job_offer.required_skills)
    if required & _skill_set(experience.technologies):
        return True
    position = experience.position.lower()
    return any(skill in position for skill in required)


def relevant_experience_years(
    experiences: list[Experience], job_offer: JobOffer, today: Optional[date] = None
) -> int:
    return sum(
        experience_years(e, today) for e in experiences if is_relevant_experience(e, job_offer)
    )


# -------------------------------------------------------------------------
# Sub-scores
# -------------------------------------------------------------------------


def calculate_experience_score(total_years: int, min_required: int) -> int:
    if total_years >= min_required * 1.5:
        return 100
    if total_years >= min_required:
        return 80
    if total_years >= min_required * 0.7:
        return 60
    return max(0, math.floor(40 * total_years / min_required))


def calculate_skills_score(
    candidate_skills: list[str],
    required_skills: list[str],
    preferred_skills: list[str],
) -> int:
    candidate = _skill_set(candidate_skills)
    required = _skill_set(required_skills)
    preferred = _skill_set(preferred_skills)

    required_score = 80 * len(candidate & required) / len(required) if required else 80
    preferred_score = 20 * len(candidate & preferred) / len(preferred) if preferred else 20

    return min(100, int(required_score + preferred_score))


def calculate_education_score(education: list[Education], required_level: Optional[str]) -> int:
    if not required_level or not required_level.strip():
        return NEUTRAL_EDUCATION_SCORE

    level = required_level.strip().lower()
    if any(level in (e.degree or "").lower() for e in education):
        return 100
    return 50


def calculate_job_match_score(matching_skill_count: int) -> int:
    return min(100, JOB_MATCH_BASE + min(30, 5 * matching_skill_count))


def calculate_score(cv_data: CVData, job_offer: JobOffer, today: Optional[date] = None) -> CVScore:
    """Score a CV against a job offer."""
    experience = calculate_experience_score(
        total_experience_years(cv_data.experience, today), job_offer.min_experience_years
    )
    skills = calculate_skills_score(
        cv_data.skills, job_offer.required_skills, job_offer.preferred_skills
    )
    education = calculate_education_score(cv_data.education, job_offer.education_level)
    job_match = calculate_job_match_score(
        len(matching_skills(cv_data.skills, job_offer.required_skills))
    )

    overall = round(
        EXPERIENCE_WEIGHT * experience
        + SKILLS_WEIGHT * skills
        + EDUCATION_WEIGHT * education
        + JOB_MATCH_WEIGHT * job_match
    )

    return CVScore(
        overall=overall,
        experience=experience,
        skills=skills,
        education=education,
        job_match=job_match,
    )


# -------------------------------------------------------------------------
# Recommendation
# -------------------------------------------------------------------------


def determine_recommendation(
    overall_score: int, matching_count: int, required_count: int
) -> HiringRecommendation:
    skill_match = matching_count / required_count if required_count > 0 else 1.0

    if overall_score >= 85 and skill_match >= 0.8:
        return HiringRecommendation.HIGHLY_RECOMMENDED
    if overall_score >= 70 and skill_match >= 0.6:
        return HiringRecommendation.RECOMMENDED
    if overall_score >= 50:
        return HiringRecommendation.CONSIDER
    return HiringRecommendation.NOT_RECOMMENDED


def generate_strengths(cv_data: CVData, job_offer: JobOffer) -> list[str]:
    strengths = []
    required_count = len(job_offer.required_skills)
    matches = matching_skills(cv_data.skills, job_offer.required_skills)

    if required_count and len(matches) > required_count * 0.7:
        strengths.append(
            f"Strong technical match ({len(matches)}/{required_count} required skills)"
        )
    if len(cv_data.experience) >= 3:
        strengths.append("Broad professional experience")
    if cv_data.education:
        strengths.append("Solid academic background")
    return strengths


def generate_weaknesses(
    cv_data: CVData, job_offer: JobOffer, today: Optional[date] = None
) -> list[str]:
    weaknesses = []
    missing = missing_skills(cv_data.skills, job_offer.required_skills)
    if missing:
        weaknesses.append(f"Missing key skills: {', '.join(missing[:3])}")

    total_years = total_experience_years(cv_data.experience, today)
    if total_years < job_offer.min_experience_years:
        weaknesses.append(
            f"Insufficient experience ({total_years} vs "
            f"{job_offer.min_experience_years} years required)"
        )
    return weaknesses


def compare_candidate(
    document_id: str,
    cv_data: CVData,
    job_offer: JobOffer,
    today: Optional[date] = None,
) -> CandidateComparison:
    """Build the comparison snapshot of one processed document (ranking unset)."""
    score = calculate_score(cv_data, job_offer, today)
    matches = matching_skills(cv_data.skills, job_offer.required_skills)

    return CandidateComparison(
        document_id=document_id,
        name=cv_data.personal_info.name,
        email=cv_data.personal_info.email,
        overall_score=score.overall,
        scores=score,
        matching_skills=matches,
        missing_skills=missing_skills(cv_data.skills, job_offer.required_skills),
        relevant_experience_years=relevant_experience_years(
            cv_data.experience, job_offer, today
        ),
        strengths=generate_strengths(cv_data, job_offer),
        weaknesses=generate_weaknesses(cv_data, job_offer, today),
        recommendation=determine_recommendation(
            score.overall, len(matches), len(job_offer.required_skills)
        ),
    )
