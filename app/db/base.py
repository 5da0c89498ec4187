"""
Declarative base - every ORM model inherits from Base.

Importing app.models registers all tables on Base.metadata, which is what
alembic autogenerate and the test fixtures (create_all/drop_all) read.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""
    pass
