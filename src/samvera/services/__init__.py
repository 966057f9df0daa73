"""
samvera.services

Service layer.

Responsibilities:
- Organization scope checks shared by every resource-scoped handler.
- Audit recording for writes.
- Multi-step flows (messaging) that own their transaction.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: validate, guard, call a repository or service, serialize.
