"""
complyreg Failure Conditions

Every registry operation either returns a success value or raises a
RegistryError subclass naming one of the standard failure codes.
Lookups never raise for absence; they return None.
"""

from enum import Enum
from typing import Any, Dict


class FailureCode(str, Enum):
    """Standard failure codes shared by all registries."""
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    NOT_VERIFIED = "NOT_VERIFIED"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"


class RegistryError(Exception):
    """Base class for all registry failures."""

    code: FailureCode = FailureCode.INVALID_ARGUMENT

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(f"{self.code.value}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        d = {"code": self.code.value, "message": self.message}
        if self.details:
            d["details"] = self.details
        return d


class Unauthorized(RegistryError):
    """Caller is not the registry admin."""
    code = FailureCode.UNAUTHORIZED


class NotFound(RegistryError):
    """A referenced id or composite key is absent."""
    code = FailureCode.NOT_FOUND


class AlreadyExists(RegistryError):
    code = FailureCode.ALREADY_EXISTS


class AlreadyVerified(RegistryError):
    code = FailureCode.ALREADY_VERIFIED


class NotVerified(RegistryError):
    code = FailureCode.NOT_VERIFIED


class AlreadyAssigned(RegistryError):
    code = FailureCode.ALREADY_ASSIGNED


class InvalidTransition(RegistryError):
    """Operation is not valid from the record's current state."""
    code = FailureCode.INVALID_TRANSITION


class InvalidArgument(RegistryError):
    """Malformed input."""
    code = FailureCode.INVALID_ARGUMENT

    def __init__(self, field: str, message: str, **details: Any):
        self.field = field
        super().__init__(f"{field}: {message}", field=field, **details)

