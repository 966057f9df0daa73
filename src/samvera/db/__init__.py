"""
samvera.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# SQLite (aiosqlite) in dev/test, Postgres (asyncpg) in production; nothing above
# this package depends on which one is configured.
