# backend/app/db/base.py
"""
SQLAlchemy declarative base.

All ORM models inherit from ``Base``; ``Base.metadata`` is what
``init_db.py`` and the application lifespan create tables from.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Usage:
        class User(Base):
            __tablename__ = "users"
            id = Column(Integer, primary_key=True)
            ...
    """
    pass
