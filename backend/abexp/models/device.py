"""Device model."""
from sqlalchemy import Column, DateTime, Uuid

from abexp.database import Base
from abexp.models.experiment import utcnow


class DeviceRecord(Base):
    """Device, registered the first time it asks for its experiments."""

    __tablename__ = "devices"

    id = Column(Uuid, primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Device {self.id}>"
