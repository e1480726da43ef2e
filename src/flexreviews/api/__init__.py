"""
FlexReviews API
===============

FastAPI application exposing the review pipeline to the dashboard.
"""
