"""LLM-backed content rewriting with version history."""

from .engine import ContentRewriter, clean_keywords
from .schemas import RewriteParams, RewriteOutput, EEATSignals, parse_rewrite_output

__all__ = [
    "ContentRewriter",
    "clean_keywords",
    "RewriteParams",
    "RewriteOutput",
    "EEATSignals",
    "parse_rewrite_output",
]
