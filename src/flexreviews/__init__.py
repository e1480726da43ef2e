"""
FlexReviews
===========

Guest review aggregation, curation and analytics for managed
short-let properties.

Subpackages:
    data     - Upstream clients, source adapters, config, approval state
    reviews  - Normalization, aggregation, filtering, statistics
    api      - FastAPI application
"""

__version__ = "1.0.0"
