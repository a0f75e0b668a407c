"""User administration service.

The ASGI application lives in ``useradmin.api:app``; importing it creates the
database tables, so the package itself stays import-light for Alembic.
"""

__version__ = "0.1.0"
