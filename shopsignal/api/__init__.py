"""
Shopsignal API Module
=====================

FastAPI application exposing tracking ingestion, interest scores,
insights and viability verdicts.
"""
