"""Shared SQLAlchemy metadata for all tables."""

from sqlalchemy import MetaData

# One metadata object so cross-table foreign keys resolve in create_all
metadata = MetaData()
