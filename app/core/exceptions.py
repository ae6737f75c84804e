from typing import Any, Dict, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DomainError(ServiceError):
    """
    Expected failure of a domain operation (admission, invite code allocation).

    Each subclass has a stable ``kind`` so callers can branch on it without
    parsing the message; ``to_detail()`` is what the HTTP layer returns.
    """

    kind: str = "DomainError"
    default_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code or self.default_status)

    def context(self) -> Dict[str, Any]:
        return {}

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        detail.update(self.context())
        return detail


class InvalidClass(DomainError):
    kind = "InvalidClass"

    def __init__(self, class_id: int) -> None:
        super().__init__("Invalid class ID")
        self.class_id = class_id


class ClassNotOpen(DomainError):
    kind = "ClassNotOpen"

    def __init__(self, class_id: int, class_status: str) -> None:
        super().__init__("Cannot enroll in inactive class")
        self.class_id = class_id
        self.class_status = class_status


class CapacityExceeded(DomainError):
    kind = "CapacityExceeded"

    def __init__(self, class_id: int, capacity: int) -> None:
        super().__init__(
            f"Class is at full capacity: this class has reached its capacity of {capacity} students."
        )
        self.class_id = class_id
        self.capacity = capacity

    def context(self) -> Dict[str, Any]:
        return {"capacity": self.capacity}


class InvalidStudent(DomainError):
    kind = "InvalidStudent"

    def __init__(self, student_id: str) -> None:
        super().__init__("Invalid student ID")
        self.student_id = student_id


class DuplicateEnrollment(DomainError):
    kind = "DuplicateEnrollment"
    default_status = status.HTTP_409_CONFLICT

    def __init__(self, student_id: str, class_id: int) -> None:
        super().__init__("Student is already enrolled in this class")
        self.student_id = student_id
        self.class_id = class_id


class AllocationExhausted(DomainError):
    kind = "AllocationExhausted"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not generate a unique invite code after {attempts} attempts")
        self.attempts = attempts

    def context(self) -> Dict[str, Any]:
        return {"attempts": self.attempts}


class StorageUnavailable(DomainError):
    kind = "StorageUnavailable"
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Storage is unavailable, please retry") -> None:
        super().__init__(message)
