"""
Test cases for ranking, statistics and the comparison matrix
"""
import pytest

from conftest import make_cv, make_document, make_job_offer, make_session
from scoring.ranking import (
    build_comparison_matrix,
    generate_hiring_recommendations,
    generate_statistics,
    rank_candidates,
)
from shared.models import (
    CandidateComparison,
    CVScore,
    DocumentStatus,
    HiringRecommendation,
    RankingCriteria,
)


def candidate(name, overall, skills_score=50, relevant_years=0, matching=None):
    return CandidateComparison(
        document_id=f"doc-{name}",
        name=name,
        overall_score=overall,
        scores=CVScore(overall=overall, skills=skills_score),
        relevant_experience_years=relevant_years,
        matching_skills=matching or [],
        recommendation=HiringRecommendation.CONSIDER,
    )


class TestRankCandidates:
    """Test cases for rank_candidates"""

    def test_highest_score_ranks_first(self):
        ranked = rank_candidates([candidate("b", 70), candidate("a", 90), candidate("c", 50)])

        assert [(c.name, c.ranking) for c in ranked] == [("a", 1), ("b", 2), ("c", 3)]

        stats = generate_statistics(ranked)
        assert stats.average_score == pytest.approx(70)
        assert stats.score_standard_deviation == pytest.approx(16.33, abs=0.01)
        assert stats.highest_score == 90
        assert stats.lowest_score == 50
        assert stats.total_candidates == 3

    def test_ties_keep_input_order(self):
        ranked = rank_candidates([candidate("a", 80), candidate("b", 80), candidate("c", 90)])
        assert [c.name for c in ranked] == ["c", "a", "b"]

    def test_idempotent(self):
        once = rank_candidates([candidate("a", 60), candidate("b", 80), candidate("c", 60)])
        twice = rank_candidates(once)
        assert [(c.name, c.ranking) for c in twice] == [(c.name, c.ranking) for c in once]

    def test_input_not_mutated(self):
        candidates = [candidate("a", 60), candidate("b", 80)]
        rank_candidates(candidates)
        assert [c.ranking for c in candidates] == [0, 0]

    def test_other_criteria_and_ascending(self):
        candidates = [
            candidate("a", 90, skills_score=40),
            candidate("b", 60, skills_score=95),
        ]
        by_skills = rank_candidates(candidates, sort_by=RankingCriteria.SKILLS)
        assert [c.name for c in by_skills] == ["b", "a"]

        ascending = rank_candidates(candidates, ascending=True)
        assert [c.name for c in ascending] == ["b", "a"]
        assert ascending[0].ranking == 1


class TestStatistics:
    """Test cases for generate_statistics"""

    def test_empty(self):
        stats = generate_statistics([])
        assert stats.total_candidates == 0
        assert stats.average_score == 0
        assert stats.common_skills == []

    def test_experience_distribution(self):
        stats = generate_statistics(
            [
                candidate("a", 50, relevant_years=1),
                candidate("b", 50, relevant_years=2),
                candidate("c", 50, relevant_years=4),
                candidate("d", 50, relevant_years=8),
            ]
        )
        assert stats.experience_distribution.junior == 2
        assert stats.experience_distribution.mid == 1
        assert stats.experience_distribution.senior == 1

    def test_common_skills(self):
        stats = generate_statistics(
            [
                candidate("a", 50, matching=["SQL", "C#"]),
                candidate("b", 50, matching=["sql"]),
                candidate("c", 50, matching=["Docker"]),
                candidate("d", 50, matching=["C#", "SQL"]),
            ]
        )
        top = stats.common_skills[0]
        assert top.skill == "SQL"
        assert top.count == 3
        assert top.percentage == pytest.approx(75)
        assert [s.skill for s in stats.common_skills] == ["SQL", "C#", "Docker"]


class TestComparisonMatrix:
    """Test cases for build_comparison_matrix and recommendations"""

    @pytest.fixture
    def session(self):
        session = make_session(make_job_offer(required_skills=["C#", "SQL"]))
        session.documents = [
            make_document(
                session.id,
                "strong",
                DocumentStatus.PROCESSED,
                make_cv(name="Ana Torres", skills=["C#", "SQL"], years=8),
            ),
            make_document(
                session.id,
                "weak",
                DocumentStatus.PROCESSED,
                make_cv(name="Luis Gil", skills=["Excel"], years=1, technologies=[]),
            ),
            make_document(session.id, "broken", DocumentStatus.FAILED, error_message="boom"),
        ]
        return session

    def test_only_processed_documents(self, session):
        matrix = build_comparison_matrix(session)

        assert matrix.session_id == session.id
        assert [c.name for c in matrix.candidates] == ["Ana Torres", "Luis Gil"]
        assert [c.ranking for c in matrix.candidates] == [1, 2]
        assert matrix.statistics.total_candidates == 2
        assert matrix.generation_time_ms >= 0

    def test_no_processed_documents(self):
        session = make_session()
        with pytest.raises(ValueError):
            build_comparison_matrix(session)

    def test_recommendations(self, session):
        matrix = build_comparison_matrix(session)
        recommendations = generate_hiring_recommendations(matrix, top_n=1)

        assert len(recommendations) == 1
        top = recommendations[0]
        assert top.priority == 1
        assert top.candidate.name == "Ana Torres"
        assert top.recommendation == HiringRecommendation.HIGHLY_RECOMMENDED
        assert f"{top.candidate.overall_score}%" in top.reasoning
        assert top.next_steps

    def test_recommendations_cover_whole_pool(self, session):
        matrix = build_comparison_matrix(session)
        assert len(generate_hiring_recommendations(matrix, top_n=5)) == 2
