"""
API Routes
==========

Routers included by the FastAPI application factory.
"""
