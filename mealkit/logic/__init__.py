
"""Core business logic layer.

Subpackages:
- shopping: merging and categorizing grocery lines
- planning: week projection, meal context and rollover
- jobs: background AI operations and their triggers
"""
__all__ = ["shopping", "planning", "jobs"]
