from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import declarative_base

# Operational database (drivers, divisions, fines, payments)
Base = declarative_base()

# External license registry, read-only from this service
LicenseBase = declarative_base()


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, server_default=func.now())
