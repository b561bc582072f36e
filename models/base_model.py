#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the Blog Auth API.

- Integer autoincrement primary key (the token `id` claim carries it)
- created_at / updated_at timestamps

Persistence goes through the stores (RefreshTokenStore, UserDirectory),
which add and commit via DBStorage.

Notes:
- Server-side defaults (func.now()) keep timestamps consistent across backends.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        The id is assigned by the database on flush.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
