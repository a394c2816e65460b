"""
opsdesk error definitions

Standard exceptions raised by the volume registry, the recovery ledger
and the saga operation log, and re-raised unchanged by the client SDK.
"""

from typing import Optional, Dict, Any, Type


class OpsDeskError(Exception):
    """Base exception for all opsdesk errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "UNKNOWN"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(OpsDeskError):
    """Missing or malformed required field"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid field '{field}': {reason}",
            error_code="VALIDATION_ERROR",
            details={"field": field, "reason": reason},
        )
        self.field = field
        self.value = value
        self.reason = reason


class NotFoundError(OpsDeskError):
    """Identifier has no matching live entity"""

    resource = "Resource"
    code = "NOT_FOUND"

    def __init__(self, identifier: str):
        super().__init__(
            message=f"{self.resource} '{identifier}' not found",
            error_code=self.code,
            details={"id": identifier},
        )
        self.identifier = identifier


class VolumeNotFoundError(NotFoundError):
    resource = "Volume"
    code = "VOLUME_NOT_FOUND"


class VolumeRecordNotFoundError(NotFoundError):
    resource = "Volume record"
    code = "VOLUME_RECORD_NOT_FOUND"


class OperateLogNotFoundError(NotFoundError):
    resource = "Saga operate log"
    code = "OPERATE_LOG_NOT_FOUND"


class ImmutableFieldError(OpsDeskError):
    """Attempt to change a field fixed at creation time"""

    def __init__(self, field: str, identifier: str):
        super().__init__(
            message=f"Field '{field}' of '{identifier}' cannot be changed after creation",
            error_code="IMMUTABLE_FIELD",
            details={"field": field, "id": identifier},
        )
        self.field = field
        self.identifier = identifier


class ConflictError(OpsDeskError):
    """Duplicate unique key on create"""

    def __init__(self, field: str, value: str):
        super().__init__(
            message=f"{field} '{value}' already exists",
            error_code="CONFLICT",
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class ProtectedResourceError(OpsDeskError):
    """Deletion blocked by a built-in or system flag"""

    def __init__(self, identifier: str, reason: str):
        super().__init__(
            message=f"'{identifier}' is protected: {reason}",
            error_code="PROTECTED_RESOURCE",
            details={"id": identifier, "reason": reason},
        )
        self.identifier = identifier
        self.reason = reason


# Error codes
ERROR_CODES = {
    "VALIDATION_ERROR": "Missing or malformed required field",
    "NOT_FOUND": "Resource not found",
    "VOLUME_NOT_FOUND": "Volume not found",
    "VOLUME_RECORD_NOT_FOUND": "Volume record not found",
    "OPERATE_LOG_NOT_FOUND": "Saga operate log not found",
    "IMMUTABLE_FIELD": "Field cannot be changed after creation",
    "CONFLICT": "Duplicate unique key",
    "PROTECTED_RESOURCE": "Resource is protected from deletion",
}

# error_code -> exception class, used to rebuild errors from API responses
ERROR_CLASSES: Dict[str, Type[OpsDeskError]] = {
    "VALIDATION_ERROR": ValidationError,
    "NOT_FOUND": NotFoundError,
    "VOLUME_NOT_FOUND": VolumeNotFoundError,
    "VOLUME_RECORD_NOT_FOUND": VolumeRecordNotFoundError,
    "OPERATE_LOG_NOT_FOUND": OperateLogNotFoundError,
    "IMMUTABLE_FIELD": ImmutableFieldError,
    "CONFLICT": ConflictError,
    "PROTECTED_RESOURCE": ProtectedResourceError,
}


def error_from_payload(
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> OpsDeskError:
    """
    Rebuild a typed exception from an API error payload.

    The subclasses take domain arguments rather than a message, so the
    instance is created without running their __init__ and then filled
    with the server's message, code and details.
    """
    cls = ERROR_CLASSES.get(error_code, OpsDeskError)
    details = details or {}
    exc = cls.__new__(cls)
    OpsDeskError.__init__(exc, message, error_code=error_code, details=details)
    for attr in ("field", "reason", "value"):
        setattr(exc, attr, details.get(attr))
    exc.identifier = details.get("id")
    return exc
