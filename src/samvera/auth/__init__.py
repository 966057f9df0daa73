"""
samvera.auth

Authentication/authorization package.

Responsibilities:
- Session tokens and principal resolution.
- The role policy table, redaction rules and the per-principal rate limiter.
- FastAPI dependencies that turn a request into a `RequestContext`.
"""

# Package marker.
