"""
Tests for the grading functions and constants.
"""

import pytest

from auditflow.analysis.grading import (
    CATEGORY_WEIGHTS,
    SEVERITY_WEIGHTS,
    build_categories,
    build_recommendations,
    calculate_overall_score,
    calculate_weighted_score,
    count_by_severity,
    get_grade,
    get_recommended_action,
)


class TestGrades:
    """Grade bands: >=90 A, >=75 B, >=60 C, else D."""

    @pytest.mark.parametrize("score,grade", [
        (100, "A"), (90, "A"), (89, "B"), (82, "B"), (75, "B"),
        (74, "C"), (60, "C"), (59, "D"), (0, "D"),
    ])
    def test_bands(self, score, grade):
        assert get_grade(score) == grade

    def test_recommended_action_for_each_grade(self):
        for grade in ("A", "B", "C", "D"):
            assert get_recommended_action(grade)
        assert "critical" in get_recommended_action("D").lower()


class TestWeights:

    def test_category_weights_sum_to_one(self):
        assert sum(CATEGORY_WEIGHTS.values()) == pytest.approx(1.0)

    def test_severity_weights(self):
        assert SEVERITY_WEIGHTS == {
            "critical": 1.0, "high": 0.8, "medium": 0.5, "low": 0.3, "info": 0.1,
        }


class TestWeightedScore:

    def test_no_issues_is_perfect(self):
        assert calculate_weighted_score({}) == 100

    def test_one_critical_issue(self):
        assert calculate_weighted_score({"critical": 1}) == 90

    def test_mixed_severities(self):
        # 0.8 + 2 * 0.5 + 0.3 = 2.1 weighted issues -> 21 point penalty
        assert calculate_weighted_score({"high": 1, "medium": 2, "low": 1}) == 79

    def test_full_penalty_caps_at_zero(self):
        assert calculate_weighted_score({"critical": 25}) == 0

    def test_count_by_severity_ignores_unknown(self):
        counts = count_by_severity([
            {"severity": "high"}, {"severity": "high"}, {"severity": "bogus"}, {},
        ])
        assert counts["high"] == 2
        assert sum(counts.values()) == 2


class TestOverallScore:

    def test_weighted_mean(self):
        scores = {name: 80 for name in CATEGORY_WEIGHTS}
        assert calculate_overall_score(scores) == 80

    def test_uneven_categories(self):
        scores = {
            "performance": 100, "content": 60, "on_page": 80,
            "mobile_usability": 100, "security": 100, "structured_data": 50,
        }
        # 20 + 15 + 16 + 15 + 10 + 5 = 81
        assert calculate_overall_score(scores) == 81
        assert get_grade(calculate_overall_score(scores)) == "B"

    def test_missing_categories_are_renormalized(self):
        assert calculate_overall_score({"security": 50}) == 50
        assert calculate_overall_score({}) == 0

    def test_overall_within_bounds(self):
        assert 0 <= calculate_overall_score({name: 0 for name in CATEGORY_WEIGHTS}) <= 100
        assert calculate_overall_score({name: 100 for name in CATEGORY_WEIGHTS}) == 100


class TestRecommendations:

    def test_categories_in_canonical_order(self):
        categories = build_categories({"security": 90, "performance": 40})
        assert [c["name"] for c in categories] == ["performance", "security"]
        assert categories[0]["grade"] == "D"
        assert categories[0]["label"] == "Performance"

    def test_weakest_category_first_and_a_grades_skipped(self):
        categories = build_categories({"performance": 40, "content": 70, "security": 95})
        recommendations = build_recommendations(categories, [])

        assert [r["category"] for r in recommendations] == ["performance", "content"]
        assert recommendations[0]["priority"] == "high"
        assert recommendations[1]["priority"] == "medium"

    def test_severe_issues_add_their_fix(self):
        issues = [
            {"category": "security", "severity": "critical", "recommendation": "Serve over HTTPS"},
            {"category": "on_page", "severity": "low", "recommendation": "Shorten title"},
        ]
        recommendations = build_recommendations([], issues)
        assert recommendations == [
            {"category": "security", "priority": "high", "action": "Serve over HTTPS"},
        ]
