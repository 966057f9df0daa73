"""
samvera.api

HTTP layer for the school-management API.

Responsibilities:
- FastAPI app factory, router modules and exception handlers.
- API-layer dependency wiring and response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: guard, validate, delegate to repositories/services, serialize.
