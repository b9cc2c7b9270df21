from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from core.db import Base


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(String, unique=True, nullable=False, index=True)  # natural dedup key
    confirmation_code = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="")
    user_id = Column(String, nullable=True)

    # scheduledService
    is_scheduled = Column(Boolean, nullable=False, default=False)
    service_center_id = Column(String, nullable=False, default="")
    service_center_name = Column(String, nullable=False, default="")
    scheduled_at = Column(String, nullable=False, default="")  # caller supplied, not validated

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "vehicleId": self.vehicle_id,
            "confirmationCode": self.confirmation_code,
            "status": self.status,
            "userId": self.user_id,
            "scheduledService": {
                "isScheduled": self.is_scheduled,
                "serviceCenterId": self.service_center_id,
                "serviceCenterName": self.service_center_name,
                "dateTime": self.scheduled_at,
            },
        }

    def to_center_entry(self) -> dict:
        """Shape of a booking embedded in a service center's `bookings` list."""
        return {
            "vehicleId": self.vehicle_id,
            "confirmationCode": self.confirmation_code,
            "status": self.status,
            "scheduledService": {
                "isScheduled": self.is_scheduled,
                "serviceCenterName": self.service_center_name,
                "dateTime": self.scheduled_at,
            },
        }
