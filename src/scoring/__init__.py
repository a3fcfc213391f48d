"""
Scoring Engine - Deterministic candidate scoring and ranking.

Turns extracted CV data into scores, a ranked comparison matrix,
hiring recommendations and a skill-gap report.
"""

from .engine import calculate_score, compare_candidate, determine_recommendation
from .ranking import (
    build_comparison_matrix,
    generate_hiring_recommendations,
    generate_statistics,
    rank_candidates,
)
from .skill_gap import analyze_session_skill_gap, analyze_skill_gap

__all__ = [
    "calculate_score",
    "compare_candidate",
    "determine_recommendation",
    "build_comparison_matrix",
    "generate_hiring_recommendations",
    "generate_statistics",
    "rank_candidates",
    "analyze_session_skill_gap",
    "analyze_skill_gap",
]
