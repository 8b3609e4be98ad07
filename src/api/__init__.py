"""
HTTP API for the review index (FastAPI).
"""
