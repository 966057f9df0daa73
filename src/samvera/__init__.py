"""
samvera

Top-level package for the Samvera multi-tenant school-management API.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
