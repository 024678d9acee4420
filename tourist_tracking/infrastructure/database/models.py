# tourist_tracking/infrastructure/database/models.py

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from tourist_tracking.infrastructure.database.session import Base


class BaseModel(Base):
    __abstract__ = True

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    is_deleted = Column(Boolean, default=False)


class Tourist(BaseModel):
    """Tourist profile fields the location store needs: tier inputs only."""

    __tablename__ = "tourists"

    id = Column(String, primary_key=True)
    subscription_tier = Column(String, nullable=True)
    safety_score = Column(Float, nullable=True)


class PartitionTtlRule(BaseModel):
    """Expiry rule per location history partition (PostgreSQL has no per-row TTL)."""

    __tablename__ = "partition_ttl_rules"

    partition_name = Column(String(63), primary_key=True)
    field = Column(String, nullable=False, default="timestamp")
    expire_after_seconds = Column(Integer, nullable=False)
