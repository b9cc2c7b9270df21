from sqlalchemy import Column, Integer, String, JSON
from core.db import Base


class LogEntry(Base):
    """Append-only audit record of a booking lifecycle event."""
    __tablename__ = "logs"
    id = Column(Integer, primary_key=True, index=True)
    log_id = Column(String, nullable=False, index=True)  # LOG_<YYYYMMDD>_<NNNN>, not unique
    user_id = Column(String, nullable=True)
    vehicle_id = Column(String, nullable=False, index=True)
    timestamp = Column(String, nullable=False)  # UTC RFC3339
    log_type = Column(String, nullable=False, default="BOOKING")
    data = Column(JSON, nullable=False, default=dict)

    def to_dict(self) -> dict:
        return {
            "logId": self.log_id,
            "userId": self.user_id,
            "vehicleId": self.vehicle_id,
            "timestamp": self.timestamp,
            "logType": self.log_type,
            "data": self.data,
        }
