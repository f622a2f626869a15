"""
Core Business Logic
==================

Core business logic for render jobs.

Modules:
- rendering: artifact path allocation, renderer invocation, delivery and cleanup
"""
