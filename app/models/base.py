"""Shared metadata for all queue tables."""

from sqlalchemy import MetaData

# Metadata for all tables
metadata = MetaData()
