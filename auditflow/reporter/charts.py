"""
Chart Generator for Reports

Inline SVG charts for PDF reports (WeasyPrint renders SVG natively).
"""

import html
import logging
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

logger = logging.getLogger(__name__)

NO_DATA_HTML = '<p class="muted">No data available for chart.</p>'


def score_color(score: float) -> str:
    if score >= 75:
        return "#2a9d8f"
    if score >= 60:
        return "#e9c46a"
    return "#e76f51"


class ChartGenerator:
    """
    Generates charts for reports.

    Uses inline SVG for PDF compatibility.
    """

    @staticmethod
    def generate_trend_chart(
        points: Sequence[Tuple[datetime, int]],
        width: int = 600,
        height: int = 240,
        color: str = "#4361ee",
    ) -> str:
        """
        Line chart of (timestamp, score) points on a fixed 0-100 scale.

        Args:
            points: Ascending (computed_at, overall_score) pairs
            width: Chart width
            height: Chart height
            color: Line color

        Returns:
            SVG string
        """
        if not points:
            return NO_DATA_HTML

        margin = {"top": 20, "right": 20, "bottom": 40, "left": 50}
        chart_width = width - margin["left"] - margin["right"]
        chart_height = height - margin["top"] - margin["bottom"]
        span = len(points) - 1 or 1

        def x_at(i: int) -> float:
            if len(points) == 1:
                return margin["left"] + chart_width / 2
            return margin["left"] + (i / span) * chart_width

        def y_at(score: float) -> float:
            return margin["top"] + chart_height - (max(0, min(100, score)) / 100) * chart_height

        coords = [(x_at(i), y_at(score)) for i, (_, score) in enumerate(points)]
        path_d = "M " + " L ".join(f"{x:.1f},{y:.1f}" for x, y in coords)

        grid = "".join(
            f'<line x1="{margin["left"]}" y1="{y_at(v):.1f}" x2="{width - margin["right"]}" '
            f'y2="{y_at(v):.1f}" stroke="#eee" stroke-width="1"/>'
            f'<text x="{margin["left"] - 8}" y="{y_at(v) + 3:.1f}" text-anchor="end" '
            f'font-size="9" fill="#666">{v}</text>'
            for v in (0, 25, 50, 75, 100)
        )
        dots = "".join(
            f'<circle cx="{x:.1f}" cy="{y:.1f}" r="3.5" fill="{color}"/>' for x, y in coords
        )

        first_label = points[0][0].strftime("%Y-%m-%d")
        last_label = points[-1][0].strftime("%Y-%m-%d")
        labels = (
            f'<text x="{margin["left"]}" y="{height - 12}" font-size="9" fill="#666">{first_label}</text>'
            f'<text x="{width - margin["right"]}" y="{height - 12}" text-anchor="end" '
            f'font-size="9" fill="#666">{last_label}</text>'
        )

        return (
            f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">'
            f'<rect width="{width}" height="{height}" fill="white"/>'
            f"{grid}"
            f'<path d="{path_d}" fill="none" stroke="{color}" stroke-width="2"/>'
            f"{dots}{labels}"
            "</svg>"
        )

    @staticmethod
    def generate_bar_chart(
        data: List[Dict[str, Any]],
        label_key: str = "label",
        value_key: str = "score",
        width: int = 600,
        height: int = 220,
    ) -> str:
        """
        Horizontal bar chart of 0-100 values, colored by score band.

        Returns:
            SVG string
        """
        if not data:
            return NO_DATA_HTML

        margin = {"left": 150, "right": 50, "top": 10, "bottom": 10}
        chart_width = width - margin["left"] - margin["right"]
        row = (height - margin["top"] - margin["bottom"]) / len(data)
        bar_height = row * 0.7

        bars = ""
        for i, d in enumerate(data):
            label = html.escape(str(d.get(label_key, ""))[:24])
            value = d.get(value_key) or 0
            bar_width = (max(0, min(100, value)) / 100) * chart_width
            y = margin["top"] + i * row

            bars += (
                f'<text x="{margin["left"] - 10}" y="{y + bar_height / 2 + 4:.1f}" '
                f'text-anchor="end" font-size="10" fill="#333">{label}</text>'
                f'<rect x="{margin["left"]}" y="{y:.1f}" width="{bar_width:.1f}" '
                f'height="{bar_height:.1f}" fill="{score_color(value)}" rx="2"/>'
                f'<text x="{margin["left"] + bar_width + 5:.1f}" y="{y + bar_height / 2 + 4:.1f}" '
                f'font-size="10" fill="#666">{value:.0f}</text>'
            )

        return (
            f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">'
            f'<rect width="{width}" height="{height}" fill="white"/>'
            f"{bars}"
            "</svg>"
        )
