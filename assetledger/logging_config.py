"""
Logging configuration for AssetLedger.

Structured JSON logging plus an audit logger that records every committed
ledger mutation and every rejected operation.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

# Request ID of the call being served, if any
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Logger for ledger audit events.

    Each method emits one record whose ``extra_fields`` carry the event type
    and its identifying fields.
    """

    def __init__(self, name: str = "assetledger.audit"):
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, log_level: int, event_type: str, message: str, **fields) -> None:
        extra = {"event_type": event_type, **fields}
        request_id = get_request_id()
        if request_id:
            extra["request_id"] = request_id
        self._logger.log(log_level, "%s: %s", event_type, message, extra={"extra_fields": extra})

    def asset_registered(self, asset_id: int, owner: str, height: int) -> None:
        self._log(
            logging.INFO, "ASSET_REGISTERED",
            f"asset {asset_id} registered by {owner}",
            asset_id=asset_id, owner=owner, height=height
        )

    def metadata_updated(self, asset_id: int, principal: str, fields: List[str], height: int) -> None:
        self._log(
            logging.INFO, "METADATA_UPDATED",
            f"asset {asset_id} metadata updated",
            asset_id=asset_id, principal=principal, fields=fields, height=height
        )

    def ownership_transferred(
        self,
        asset_id: int,
        from_owner: str,
        to_owner: str,
        sequence: int,
        reason: str,
        height: int
    ) -> None:
        self._log(
            logging.INFO, "OWNERSHIP_TRANSFERRED",
            f"asset {asset_id} transferred from {from_owner} to {to_owner}",
            asset_id=asset_id, from_owner=from_owner, to_owner=to_owner,
            sequence=sequence, reason=reason, height=height
        )

    def status_changed(self, asset_id: int, status: str, principal: str, height: int) -> None:
        self._log(
            logging.WARNING, "STATUS_CHANGED",
            f"asset {asset_id} status set to {status}",
            asset_id=asset_id, status=status, principal=principal, height=height
        )

    def access_granted(self, asset_id: int, viewer: str, level: str, principal: str, height: int) -> None:
        self._log(
            logging.INFO, "ACCESS_GRANTED",
            f"{viewer} granted {level} on asset {asset_id}",
            asset_id=asset_id, viewer=viewer, level=level, principal=principal, height=height
        )

    def access_revoked(self, asset_id: int, viewer: str, principal: str, height: int) -> None:
        self._log(
            logging.INFO, "ACCESS_REVOKED",
            f"{viewer} revoked on asset {asset_id}",
            asset_id=asset_id, viewer=viewer, principal=principal, height=height
        )

    def operation_rejected(
        self,
        operation: str,
        code: str,
        principal: str,
        asset_id: Optional[int] = None,
        detail: Optional[str] = None
    ) -> None:
        """Authorization rejections log at WARNING, everything else at INFO."""
        level = logging.WARNING if code in _AUTHORIZATION_CODES else logging.INFO
        self._log(
            level, "OPERATION_REJECTED",
            f"{operation} rejected: {code}",
            operation=operation, code=code, principal=principal,
            asset_id=asset_id, detail=detail
        )


_AUTHORIZATION_CODES = {
    "AdministrativeAccessRequired",
    "AccessPermissionDenied",
    "OwnershipVerificationFailed",
    "ViewAuthorizationRejected",
}


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request ID for the current context, generating one if needed."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


audit_log = AuditLogger()
