"""
FastAPI dependencies for request processing.

Dependencies provide reusable logic that can be injected into API endpoints,
such as request shape checks and access to the shared model manager.
"""
