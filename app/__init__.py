"""Competitor Analysis: AI-researched competitive intelligence reports per company domain."""

__version__ = "0.1.0"
