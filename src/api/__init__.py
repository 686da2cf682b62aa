"""
FastAPI application layer for the code review service.

Exposes the review endpoint used by the Streamlit UI, plus health checks.
"""
