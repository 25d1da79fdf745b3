"""Experiment and variant tables."""
from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from abexp.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExperimentRecord(Base):
    """Stored experiment."""

    __tablename__ = "experiments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    # Ordered by position: the order fixes the bucket boundaries
    variants = relationship(
        "ExperimentVariantRecord",
        back_populates="experiment",
        order_by="ExperimentVariantRecord.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Experiment {self.name} finished={self.finished_at is not None}>"


class ExperimentVariantRecord(Base):
    """Stored variant of an experiment."""

    __tablename__ = "experiment_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    experiment_id = Column(Uuid, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    data = Column(Text, nullable=False)
    distribution = Column(Float, nullable=False)

    # Relationships
    experiment = relationship("ExperimentRecord", back_populates="variants")

    def __repr__(self):
        return f"<ExperimentVariant {self.position} {self.distribution}%>"
