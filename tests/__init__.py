"""
Test Suite
==========

Test suite matching the render_service/ directory structure.

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP contract tests against a fake Remotion CLI
"""
