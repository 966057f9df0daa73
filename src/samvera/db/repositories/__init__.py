"""
samvera.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories filter by tenant and soft-delete; authorization decisions stay in
# `auth` and `services.scoping`.
