"""FastAPI application module for VecRec.

This module contains the FastAPI application, route handlers, and API
endpoints that expose the vector model's recommend and rank operations.
"""
