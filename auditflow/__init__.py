"""
Auditflow SEO Pipeline

The audit and content-intelligence backend that:
1. Runs technical SEO audits with cached, versioned score history
2. Rewrites content with Claude AI while preserving E-E-A-T signals
3. Analyzes competitor content over time
4. Renders completed audits into durable PDF reports
"""

__version__ = "0.1.0"
