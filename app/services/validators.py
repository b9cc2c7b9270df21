from services.exceptions import BadRequestError


class BookingRules:
    USER_ID_PREFIX = "USR_"
    SCOPE_SEPARATOR = "_"
    NULL_CENTER_LITERAL = "null"

    @staticmethod
    def company_scope(vehicle_id: str) -> str:
        """
        Derives the company-name scope used to filter centers from a vehicle id.

        The vehicle id is split on `_` and the first segment is the company
        ("PQR_999" -> "PQR"). An id without `_` is its own single segment.
        Empty or blank ids, or ids starting with `_`, are rejected.
        """
        if vehicle_id is None or not vehicle_id.strip():
            raise BadRequestError("Invalid Vehicle ID format")
        company = vehicle_id.strip().split(BookingRules.SCOPE_SEPARATOR)[0]
        if not company:
            raise BadRequestError("Invalid Vehicle ID format")
        return company

    @staticmethod
    def is_explicit_center(center_id: str) -> bool:
        """True when the caller picked a center (non-empty and not the literal "null")."""
        if center_id is None:
            return False
        value = center_id.strip()
        return bool(value) and value != BookingRules.NULL_CENTER_LITERAL

    @staticmethod
    def default_user_id(vehicle_id: str) -> str:
        return f"{BookingRules.USER_ID_PREFIX}{vehicle_id}"
