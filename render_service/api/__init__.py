"""
FastAPI REST Endpoints
======================

REST API endpoints for HTTP access to video rendering.

Endpoints:
- POST /api/render-and-download: Render a composition and download the video
- GET /health: Health check endpoint
- GET /: Service information
"""
