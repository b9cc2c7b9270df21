# Alembic will detect models here
from .booking import Booking
from .log_entry import LogEntry
from .service_center import ServiceCenter
