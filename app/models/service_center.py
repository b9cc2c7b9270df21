from sqlalchemy import Column, Integer, String, Boolean, JSON
from core.db import Base


class ServiceCenter(Base):
    __tablename__ = "service_centers"
    center_id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    capacity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    specializations = Column(JSON, nullable=False, default=list)
    bookings = Column(JSON, nullable=False, default=list)  # mirrored bookings; len() is the current load
