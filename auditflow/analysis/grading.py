"""
Grading Functions and Constants

Severity weights, category weights, grade bands, and the helpers that turn
issue lists into 0-100 scores and letter grades. Shared by the analysis
engine, the audit orchestrator and the report renderer.
"""

from typing import Dict, Any, List, Iterable, Mapping


# ============================================================================
# CATEGORIES
# ============================================================================

CATEGORY_WEIGHTS: Dict[str, float] = {
    "performance": 0.20,
    "content": 0.25,
    "on_page": 0.20,
    "mobile_usability": 0.15,
    "security": 0.10,
    "structured_data": 0.10,
}

CATEGORY_LABELS: Dict[str, str] = {
    "performance": "Performance",
    "content": "Content",
    "on_page": "On-Page SEO",
    "mobile_usability": "Mobile Usability",
    "security": "Security",
    "structured_data": "Structured Data",
}


# ============================================================================
# SEVERITY
# ============================================================================

SEVERITY_WEIGHTS: Dict[str, float] = {
    "critical": 1.0,   # Full weight
    "high": 0.8,
    "medium": 0.5,
    "low": 0.3,
    "info": 0.1,
}

# Weighted issue count at which a category loses its whole score
MAX_ISSUES_BEFORE_FULL_PENALTY = 10


# ============================================================================
# GRADES
# ============================================================================

GRADE_BANDS: List[tuple] = [
    (90, "A"),
    (75, "B"),
    (60, "C"),
]
LOWEST_GRADE = "D"

RECOMMENDED_ACTIONS: Dict[str, str] = {
    "A": "Maintain current implementation and monitor periodically",
    "B": "Address minor issues to reach excellent status",
    "C": "Implement recommended improvements to enhance performance",
    "D": "Prioritize addressing critical issues immediately",
}

GRADE_LABELS: Dict[str, str] = {
    "A": "Excellent",
    "B": "Good",
    "C": "Average",
    "D": "Poor",
}


def get_grade(score: float) -> str:
    """
    Letter grade for a 0-100 score.

    Examples:
        >>> get_grade(82)
        'B'
    """
    for threshold, letter in GRADE_BANDS:
        if score >= threshold:
            return letter
    return LOWEST_GRADE


def get_recommended_action(grade: str) -> str:
    return RECOMMENDED_ACTIONS.get(grade, "Review and implement suggested improvements")


def count_by_severity(issues: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    """Count issues per severity level. Unknown severities are ignored."""
    counts = {severity: 0 for severity in SEVERITY_WEIGHTS}
    for issue in issues:
        severity = issue.get("severity")
        if severity in counts:
            counts[severity] += 1
    return counts


def calculate_weighted_score(
    severity_counts: Mapping[str, int],
    base_score: float = 100.0,
    max_penalty: float = 100.0,
    max_issues_before_full_penalty: int = MAX_ISSUES_BEFORE_FULL_PENALTY,
) -> int:
    """
    Apply the severity-weighted penalty to a base score.

    Penalty = max_penalty * min(1, weighted_issues / max_issues_before_full_penalty)

    Returns:
        Score clamped to [0, 100]
    """
    weighted_issues = sum(
        severity_counts.get(severity, 0) * weight
        for severity, weight in SEVERITY_WEIGHTS.items()
    )
    penalty_fraction = min(1.0, weighted_issues / max_issues_before_full_penalty)
    penalty = max_penalty * penalty_fraction
    return max(0, min(100, round(base_score - penalty)))


def calculate_overall_score(scores: Mapping[str, float]) -> int:
    """
    Weighted mean of category scores.

    Categories missing from `scores` are left out and the remaining weights
    renormalized, so a partial audit still lands in [0, 100].
    """
    total_weight = sum(CATEGORY_WEIGHTS[name] for name in scores if name in CATEGORY_WEIGHTS)
    if total_weight <= 0:
        return 0
    weighted = sum(
        scores[name] * CATEGORY_WEIGHTS[name]
        for name in scores if name in CATEGORY_WEIGHTS
    )
    return max(0, min(100, round(weighted / total_weight)))


def build_categories(scores: Mapping[str, int]) -> List[Dict[str, Any]]:
    """Category summaries in canonical order: name, label, score, grade, weight."""
    categories = []
    for name, weight in CATEGORY_WEIGHTS.items():
        if name not in scores:
            continue
        score = scores[name]
        categories.append({
            "name": name,
            "label": CATEGORY_LABELS[name],
            "score": score,
            "grade": get_grade(score),
            "weight": weight,
        })
    return categories


def build_recommendations(
    categories: List[Dict[str, Any]],
    issues: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Recommendations derived from category grades and issues.

    One grade-driven action per category below A, weakest first, followed
    by the fix for each critical or high issue.
    """
    recommendations = []

    for category in sorted(categories, key=lambda c: c["score"]):
        if category["grade"] == "A":
            continue
        recommendations.append({
            "category": category["name"],
            "priority": "high" if category["grade"] == LOWEST_GRADE else "medium",
            "action": f"{category['label']}: {get_recommended_action(category['grade'])}",
        })

    for issue in issues:
        if issue.get("severity") in ("critical", "high") and issue.get("recommendation"):
            recommendations.append({
                "category": issue["category"],
                "priority": "high",
                "action": issue["recommendation"],
            })

    return recommendations
