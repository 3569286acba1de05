"""
dataroom.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories for the Role Store
  and the Document Registry.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Role rows and document rows share an engine but never a transaction; the two
# stores are independent resource domains.
