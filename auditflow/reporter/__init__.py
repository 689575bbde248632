"""
Audit Report Rendering

- HTML report builder with inline SVG charts
- PDF conversion with WeasyPrint, stored once per report
"""

from .charts import ChartGenerator
from .generator import ReportRenderer, artifact_key
from .report import ReportBuilder

__all__ = [
    "ChartGenerator",
    "ReportBuilder",
    "ReportRenderer",
    "artifact_key",
]
