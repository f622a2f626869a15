"""
Rendering Module
===============

Render job lifecycle around the Remotion CLI.

Components:
- allocator: unique output paths and download names
- invoker: subprocess invocation and outcome classification
- coordinator: validate, render, deliver and clean up
- errors: error taxonomy surfaced to the API layer
"""
