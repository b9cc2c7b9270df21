from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


class ScheduledServiceIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_scheduled: bool = Field(False, alias="isScheduled")
    service_center_id: str = Field("", alias="serviceCenterId")
    service_center_name: str = Field("", alias="serviceCenterName")
    date_time: str = Field("", alias="dateTime", description="ISO-8601-like, not validated")

    @field_validator("service_center_id", "service_center_name", "date_time", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v

    @field_validator("is_scheduled", mode="before")
    @classmethod
    def none_as_unscheduled(cls, v):
        return False if v is None else v


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vehicle_id: str = Field(..., alias="vehicleId", min_length=1)
    confirmation_code: str = Field("", alias="confirmationCode")
    status: str = ""
    user_id: Optional[str] = Field(None, alias="userId")
    log_id: Optional[str] = Field(None, alias="logId")
    scheduled_service: ScheduledServiceIn = Field(default_factory=ScheduledServiceIn, alias="scheduledService")

    @field_validator("vehicle_id")
    @classmethod
    def vehicle_id_not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("vehicleId must not be blank")
        return v

    @field_validator("confirmation_code", "status", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v

    @field_validator("scheduled_service", mode="before")
    @classmethod
    def none_as_unscheduled(cls, v):
        return ScheduledServiceIn() if v is None else v


class BookingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_status: str = Field(..., alias="bookingStatus")
    generated_log_id: str = Field(..., alias="generatedLogId")
    assigned_center: str = Field(..., alias="assignedCenter")
    message: str
