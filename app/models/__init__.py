"""SQLAlchemy models."""

from app.models.analysis import Analysis

__all__ = ["Analysis"]
