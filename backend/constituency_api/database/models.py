"""
Relational models (PostgreSQL/SQLite via SQLAlchemy).
Only the secure key-value store lives here; office records are documents.
"""

import datetime as dt
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SecureItem(Base):
    __tablename__ = "secure_items"
    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)
