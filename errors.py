#=======================================================================================================
# Error taxonomy for the subscription / commission service
#=======================================================================================================
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from blinker import Namespace

from logger import app_logger


store_signals = Namespace()

# Fired with the StorePermissionError as sender every time the store denies an operation.
permission_denied = store_signals.signal("permission-denied")


class ServiceError(Exception):
    """Base class for every recoverable, reportable failure of a single operation."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class OwnerNotFound(NotFound):
    pass


class InvalidState(ServiceError):
    status_code = 409


@dataclass
class SecurityRuleContext:
    path: str
    operation: str  # get | list | create | update | delete | write
    request_resource_data: Optional[Dict[str, Any]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "operation": self.operation,
            "requestResourceData": self.request_resource_data,
        }


class StoreError(ServiceError):
    """A store read/write failed; carries the path and operation that failed."""

    def __init__(self, message: str, context: SecurityRuleContext):
        super().__init__(message)
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "context": self.context.to_dict()}


class StorePermissionError(StoreError):
    status_code = 403

    def __init__(self, context: SecurityRuleContext):
        formatted_context = json.dumps(context.to_dict(), indent=2, default=str)
        message = (
            "StoreError: Missing or insufficient permissions: "
            f"The following request was denied by the store:\n{formatted_context}"
        )
        super().__init__(message, context)


_PERMISSION_MARKERS = ("permission denied", "insufficient privilege", "access denied", "readonly database")


def translate_store_error(exc: Exception, path: str, operation: str, data: Optional[Dict[str, Any]] = None) -> StoreError:
    """
    Wrap a raw SQLAlchemy failure into a StoreError, promoting permission
    denials to StorePermissionError and publishing them on `permission_denied`.
    """
    context = SecurityRuleContext(path=path, operation=operation, request_resource_data=data)
    text = str(getattr(exc, "orig", None) or exc).lower()

    if any(marker in text for marker in _PERMISSION_MARKERS):
        error = StorePermissionError(context)
        permission_denied.send(error)
        return error

    # The raw driver error carries SQL and bound parameters: log it, never return it.
    app_logger.error(f"Store {operation} failed at {path}: {exc}")
    return StoreError(f"Store {operation} failed at {path}", context)
