"""
Logging configuration for complyreg.

Every record is emitted as one JSON object. Registry activity is logged with
its registry, operation, caller and block height as top-level keys, so the
log of one registry or one height can be followed with a plain field filter:

    {"timestamp": "...", "level": "INFO", "logger": "complyreg.audit",
     "service": "complyreg", "env": "prod", "request_id": "...",
     "event_type": "MUTATION_COMMITTED", "registry": "reports",
     "operation": "finalize_report", "caller": "ST1...", "block_height": 42}

The request id is tracked per request in a ContextVar; inbound ids that are
not short opaque tokens are replaced with a generated one.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')

REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,64}")

# Call-scoped keys lifted to the top level when passed through `extra=`
CONTEXT_FIELDS = ("registry", "operation", "caller", "block_height")


class RequestIdFilter(logging.Filter):
    """Stamp each record with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter carrying the service identity and registry call context."""

    def __init__(self, service: str = "complyreg", env: Optional[str] = None):
        super().__init__()
        self._static: Dict[str, str] = {"service": service}
        if env:
            self._static["env"] = env

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        log_data: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            **self._static,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        audit = getattr(record, "audit", None)
        if audit:
            log_data.update({k: v for k, v in audit.items() if v is not None})
        else:
            # Audit records all come from AuditLogger._log, so location is constant
            log_data["location"] = f"{record.module}.{record.funcName}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for registry audit events.

    Every committed or rejected mutation and every admin transfer is
    logged with the caller and block height it ran under.
    """

    def __init__(self, name: str = "complyreg.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, message: str, **fields: Any) -> None:
        self._logger.log(
            level, "%s: %s", event_type, message,
            extra={"audit": {"event_type": event_type, **fields}},
        )

    def mutation_committed(
        self,
        registry: str,
        operation: str,
        caller: str,
        block_height: int,
        result: Any = None
    ) -> None:
        """Log a successful registry mutation."""
        self._log(
            logging.INFO,
            "MUTATION_COMMITTED",
            f"{registry}.{operation} committed",
            registry=registry,
            operation=operation,
            caller=caller,
            block_height=block_height,
            result=result,
        )

    def mutation_rejected(
        self,
        registry: str,
        operation: str,
        caller: str,
        block_height: int,
        code: str,
        reason: str
    ) -> None:
        """Log a rejected registry mutation. Nothing was written."""
        level = logging.WARNING if code == "UNAUTHORIZED" else logging.INFO
        self._log(
            level,
            "MUTATION_REJECTED",
            f"{registry}.{operation} rejected: {code}",
            registry=registry,
            operation=operation,
            caller=caller,
            block_height=block_height,
            failure_code=code,
            reason=reason,
        )

    def admin_transferred(
        self,
        registry: str,
        previous_admin: str,
        new_admin: str,
        block_height: int
    ) -> None:
        self._log(
            logging.WARNING,
            "ADMIN_TRANSFERRED",
            f"Admin of {registry} transferred",
            registry=registry,
            operation="transfer_admin",
            caller=previous_admin,
            new_admin=new_admin,
            block_height=block_height,
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details: Any
    ) -> None:
        """Log a rejected or suspicious service request."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            f"Security event: {event}",
            security_event=event,
            severity=severity,
            **details,
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
    env: Optional[str] = None
) -> None:
    """
    Route all complyreg logging to stdout, and optionally a file.

    Args:
        level: Log level name
        json_format: One JSON object per line; otherwise a single text line
            that still shows the request id
        log_file: Optional file path for a second copy of the output
        env: Deployment name stamped on every JSON record
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter(env=env)
    else:
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s'
        )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Bind the request id for the current context.

    An inbound id is kept only if it is a short token of letters, digits
    and `._:-`; anything else is replaced so it cannot forge log fields.

    Returns:
        The request ID that was set
    """
    if not request_id or not REQUEST_ID_PATTERN.fullmatch(request_id):
        request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


# Global audit logger instance
audit_log = AuditLogger()
