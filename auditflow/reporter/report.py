"""
Audit Report Builder

HTML document for one completed audit report, rendered to PDF by WeasyPrint.

Sections:
- Cover with overall score and grade
- Category breakdown (bar chart, grades, recommended actions)
- Issues grouped by severity
- Recommendations
- Score history trend for the audited domain
"""

import html
import logging
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from auditflow.analysis.grading import GRADE_LABELS, SEVERITY_WEIGHTS, get_recommended_action
from .charts import ChartGenerator, score_color

logger = logging.getLogger(__name__)

STYLES = """
@page { size: A4; margin: 18mm 16mm; }
body { font-family: "Helvetica Neue", Arial, sans-serif; color: #222; font-size: 11px; line-height: 1.5; }
h1 { font-size: 20px; margin: 0 0 12px; }
h2 { font-size: 15px; margin: 22px 0 8px; border-bottom: 2px solid #4361ee; padding-bottom: 4px; }
table { width: 100%; border-collapse: collapse; margin: 8px 0; }
th, td { text-align: left; padding: 5px 6px; border-bottom: 1px solid #e5e5e5; vertical-align: top; }
th { background: #f4f6fb; font-weight: 600; }
.cover { text-align: center; padding: 40px 0 24px; }
.cover .url { color: #555; word-break: break-all; }
.score { font-size: 56px; font-weight: 700; margin: 12px 0 0; }
.grade { font-size: 18px; font-weight: 600; }
.muted { color: #888; }
.badge { display: inline-block; padding: 1px 6px; border-radius: 3px; color: white; font-size: 10px; }
.severity-critical { background: #9b2226; }
.severity-high { background: #e76f51; }
.severity-medium { background: #e9c46a; color: #222; }
.severity-low { background: #2a9d8f; }
.severity-info { background: #8d99ae; }
"""


class ReportBuilder:
    """
    Builds the audit report HTML.

    Usage:
        html_doc = ReportBuilder().build(report_dict, history_points)
    """

    def __init__(self):
        self.charts = ChartGenerator()

    def build(
        self,
        report: Dict[str, Any],
        history: Sequence[Tuple[datetime, int]] = (),
    ) -> str:
        """
        Build the complete HTML document.

        Args:
            report: Serialized report (camelCase keys)
            history: Ascending (computed_at, overall_score) pairs for the domain
        """
        sections = [
            self._build_cover(report),
            self._build_categories(report.get("categories") or []),
            self._build_issues(report.get("issues") or []),
            self._build_recommendations(report.get("recommendations") or []),
            self._build_trend(history),
        ]
        logger.debug(
            f"Built report HTML for {report.get('id')} "
            f"({len(report.get('issues') or [])} issues, {len(history)} history points)"
        )
        return self._wrap_html(sections, report.get("name") or report.get("url") or "Audit")

    def _wrap_html(self, sections: List[str], title: str) -> str:
        content = "\n".join(sections)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{html.escape(title)} - SEO Audit Report</title>
    <style>{STYLES}</style>
</head>
<body>
    {content}
</body>
</html>"""

    def _build_cover(self, report: Dict[str, Any]) -> str:
        score = report.get("overallScore")
        grade = report.get("overallGrade") or "N/A"
        completed = report.get("completedAt") or report.get("createdAt") or ""
        score_text = "N/A" if score is None else str(score)
        color = score_color(score) if score is not None else "#888"

        return f"""
        <div class="cover">
            <h1>{html.escape(report.get("name") or "SEO Audit Report")}</h1>
            <div class="url">{html.escape(report.get("url") or "")}</div>
            <div class="score" style="color: {color}">{score_text}</div>
            <div class="grade">Grade {html.escape(grade)} &middot; {GRADE_LABELS.get(grade, "Not graded")}</div>
            <p>{html.escape(get_recommended_action(grade))}</p>
            <div class="muted">Completed {html.escape(completed[:10])}</div>
        </div>
        """

    def _build_categories(self, categories: List[Dict[str, Any]]) -> str:
        if not categories:
            return '<h2>Category Scores</h2><p class="muted">No category scores recorded.</p>'

        rows = "".join(
            f"""
            <tr>
                <td>{html.escape(c.get("label") or c.get("name", ""))}</td>
                <td>{c.get("score")}</td>
                <td>{html.escape(c.get("grade", ""))}</td>
                <td>{c.get("weight", 0) * 100:.0f}%</td>
                <td>{html.escape(get_recommended_action(c.get("grade", "")))}</td>
            </tr>
            """
            for c in categories
        )
        return f"""
        <h2>Category Scores</h2>
        {self.charts.generate_bar_chart(categories, label_key="label", value_key="score")}
        <table>
            <tr><th>Category</th><th>Score</th><th>Grade</th><th>Weight</th><th>Action</th></tr>
            {rows}
        </table>
        """

    def _build_issues(self, issues: List[Dict[str, Any]]) -> str:
        if not issues:
            return '<h2>Issues</h2><p class="muted">No issues detected.</p>'

        # Most severe first
        order = {severity: i for i, severity in enumerate(SEVERITY_WEIGHTS)}
        ranked = sorted(issues, key=lambda issue: order.get(issue.get("severity"), len(order)))

        rows = ""
        for issue in ranked:
            severity = issue.get("severity", "info")
            rows += f"""
            <tr>
                <td><span class="badge severity-{html.escape(severity)}">{html.escape(severity)}</span></td>
                <td>{html.escape(issue.get("category", ""))}</td>
                <td>{html.escape(issue.get("description", ""))}</td>
                <td>{html.escape(issue.get("recommendation", ""))}</td>
            </tr>
            """
        return f"""
        <h2>Issues ({len(issues)})</h2>
        <table>
            <tr><th>Severity</th><th>Category</th><th>Issue</th><th>Fix</th></tr>
            {rows}
        </table>
        """

    def _build_recommendations(self, recommendations: List[Dict[str, Any]]) -> str:
        if not recommendations:
            return '<h2>Recommendations</h2><p class="muted">Nothing to recommend, keep monitoring.</p>'

        items = "".join(
            f'<li><strong>[{html.escape(r.get("priority", ""))}]</strong> {html.escape(r.get("action", ""))}</li>'
            for r in recommendations
        )
        return f"<h2>Recommendations</h2><ol>{items}</ol>"

    def _build_trend(self, history: Sequence[Tuple[datetime, int]]) -> str:
        if len(history) < 2:
            note = '<p class="muted">Score history will appear after the next analysis.</p>'
            return f"<h2>Score History</h2>{note}"
        return f"""
        <h2>Score History</h2>
        {self.charts.generate_trend_chart(history)}
        <p class="muted">{len(history)} analyses between {history[0][0]:%Y-%m-%d} and {history[-1][0]:%Y-%m-%d}</p>
        """
