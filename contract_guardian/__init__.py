"""
Contract Guardian - AI-assisted contract review.
Chunked multi-pass clause analysis with deduplication, summaries and job tracking.
"""

__version__ = "1.1.0"
