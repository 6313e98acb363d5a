# backend/glamup/core/exceptions.py
"""
Domain-specific exceptions for the GlamUp scheduling core.

These exceptions carry a stable ``code`` and a human message so the API
layer can render them without knowing which flow raised them.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when required fields are missing or contradictory."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCombinationException(ValidationException):
    """Raised when a booking names both services and a package, or neither."""

    def __init__(
        self,
        message: str = "Provide either services or a package, not both",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, code="INVALID_COMBINATION", details=details)


class NotFoundException(DomainException):
    """Raised when a referenced entity is missing, inactive or deleted."""

    status_code = status.HTTP_404_NOT_FOUND


class CrossTenantException(NotFoundException):
    """Raised when an entity exists but belongs to a different business."""

    def __init__(self, entity: str, entity_id: str, business_id: str) -> None:
        super().__init__(
            message=f"{entity} not found for this business",
            code="CROSS_TENANT",
            details={"entity": entity, "entity_id": entity_id, "business_id": business_id},
        )


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class SlotConflictException(ConflictException):
    """Raised when a requested window overlaps an active appointment."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or "This time slot conflicts with an existing appointment",
            code="SLOT_CONFLICT",
            details=details or {},
        )


class BusinessRuleException(DomainException):
    """Raised when a lifecycle rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class AlreadyTerminalException(BusinessRuleException):
    """Raised when acting on an appointment that can no longer change."""

    def __init__(self, appointment_id: str, current_status: str, action: str) -> None:
        super().__init__(
            message=f"Cannot {action} an appointment with status {current_status}",
            code="ALREADY_TERMINAL",
            details={
                "appointment_id": appointment_id,
                "status": current_status,
                "action": action,
            },
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message or "An error occurred processing your request",
            "code": self.code,
            "details": self.details if self.details else {},
        }


class TransactionException(ServiceException):
    """Raised when the storage layer fails to commit a unit of work."""


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """
