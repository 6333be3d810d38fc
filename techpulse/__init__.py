"""
TechPulse Backend

A FastAPI backend that aggregates technology news feeds, classifies and
deduplicates articles, computes trending topics, and holds per-article AI
conversations.
"""

__version__ = "1.0.0"
