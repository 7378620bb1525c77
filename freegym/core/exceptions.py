"""
Application exceptions rendered by the central error handlers
"""

from typing import Optional, Dict, Any


class BaseAppException(Exception):
    """Base application exception"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# === Authentication ===
class AuthenticationError(BaseAppException):
    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 401, "AUTHENTICATION_ERROR", details)


class AuthorizationError(BaseAppException):
    def __init__(
        self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, 403, "AUTHORIZATION_ERROR", details)


# === Validation ===
class ValidationError(BaseAppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class DuplicateError(BaseAppException):
    def __init__(self, resource: str, field: str, value: str):
        message = f"{resource} with {field} '{value}' already exists"
        details = {"resource": resource, "field": field, "value": value}
        super().__init__(message, 409, "DUPLICATE_ERROR", details)


# === Resources ===
class NotFoundError(BaseAppException):
    def __init__(self, resource: str, identifier: str = None):
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
            details = {"resource": resource, "identifier": identifier}
        else:
            message = f"{resource} not found"
            details = {"resource": resource}
        super().__init__(message, 404, "NOT_FOUND", details)


# === Business rules ===
class BusinessLogicError(BaseAppException):
    """
    A declared outcome of a domain operation.

    Callers present these to the member and may retry; they are never
    retried automatically.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        error_code: str = "BUSINESS_LOGIC_ERROR",
    ):
        super().__init__(message, status_code, error_code, details)


class NoMembershipError(BusinessLogicError):
    """No active, unexpired membership"""

    def __init__(self, member_id: int):
        super().__init__(
            "An active membership is required",
            {"member_id": member_id},
            403,
            "NO_MEMBERSHIP",
        )


class InsufficientCreditError(BusinessLogicError):
    """Balance would go negative"""

    def __init__(self, member_id: int, requested: int, available: Optional[int] = None):
        details = {"member_id": member_id, "requested": requested}
        if available is not None:
            details["available"] = available
        super().__init__("Not enough credits", details, 409, "INSUFFICIENT_CREDIT")


class LessonFullError(BusinessLogicError):
    def __init__(self, lesson_id: int, booking_date: str, capacity: int):
        super().__init__(
            "The lesson is full",
            {"lesson_id": lesson_id, "booking_date": booking_date, "capacity": capacity},
            409,
            "LESSON_FULL",
        )


class AlreadyBookedError(BusinessLogicError):
    def __init__(self, member_id: int, lesson_id: int, booking_date: str):
        super().__init__(
            "You have already booked this lesson",
            {"member_id": member_id, "lesson_id": lesson_id, "booking_date": booking_date},
            409,
            "ALREADY_BOOKED",
        )


class AlreadyCancelledError(BusinessLogicError):
    """Booking is not in the confirmed state"""

    def __init__(self, booking_id: int, status: str):
        super().__init__(
            f"Booking {booking_id} is {status} and cannot be cancelled",
            {"booking_id": booking_id, "status": status},
            409,
            "ALREADY_CANCELLED",
        )


class MembershipActiveError(BusinessLogicError):
    def __init__(self, member_id: int):
        super().__init__(
            "You already have an active membership",
            {"member_id": member_id},
            409,
            "MEMBERSHIP_ACTIVE",
        )


class PaymentPendingError(BusinessLogicError):
    def __init__(self, member_id: int):
        super().__init__(
            "You already have a pending payment",
            {"member_id": member_id},
            409,
            "PAYMENT_PENDING",
        )


class NotPendingError(BusinessLogicError):
    """Decision on a payment that is no longer pending"""

    def __init__(self, payment_id: int, status: str):
        super().__init__(
            f"Payment {payment_id} is already {status}",
            {"payment_id": payment_id, "status": status},
            409,
            "NOT_PENDING",
        )


# === Database ===
class DatabaseError(BaseAppException):
    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 500, "DATABASE_ERROR", details)


class DatabaseConnectionError(BaseAppException):
    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message, 503, "DATABASE_CONNECTION_ERROR")


class DatabaseTimeoutError(BaseAppException):
    def __init__(self, operation: str, timeout: int):
        message = f"Database operation '{operation}' timed out after {timeout}s"
        details = {"operation": operation, "timeout": timeout}
        super().__init__(message, 504, "DATABASE_TIMEOUT", details)


class DatabaseIntegrityError(BaseAppException):
    def __init__(self, constraint: str, details: Optional[Dict[str, Any]] = None):
        message = f"Database integrity constraint violated: {constraint}"
        error_details = {"constraint": constraint}
        if details:
            error_details.update(details)
        super().__init__(message, 409, "DATABASE_INTEGRITY_ERROR", error_details)


# === Configuration ===
class ConfigurationError(BaseAppException):
    def __init__(self, parameter: str, message: str = None):
        message = (
            message or f"Configuration parameter '{parameter}' is invalid or missing"
        )
        details = {"parameter": parameter}
        super().__init__(message, 500, "CONFIGURATION_ERROR", details)
