"""SQLAlchemy ORM models."""
from sqlalchemy import Column, DateTime, Integer, String

from device_inventory.infrastructure.database.base import Base


class DeviceRecord(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    brand = Column(String(50), nullable=False, index=True)
    state = Column(String(20), nullable=False, default="AVAILABLE", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<DeviceRecord(id={self.id}, name={self.name}, state={self.state})>"
