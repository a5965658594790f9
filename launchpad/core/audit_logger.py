"""
Audit logging for advertising platform operations.

Every call an adapter makes against a third-party ad platform is recorded with:
- Timestamps
- Campaign context
- Operation tracking
- Success/failure status
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

audit_logger = logging.getLogger("launchpad.audit")
audit_logger.setLevel(logging.INFO)

# Machine-readable trail, one JSON document per operation
structured_logger = logging.getLogger("launchpad.audit.structured")


class AuditLogger:
    """Provides audit logging for channel operations."""

    def __init__(self, adapter_name: str):
        self.adapter_name = adapter_name

    def log_operation(
        self,
        operation: str,
        campaign_id: str | None = None,
        external_id: str | None = None,
        success: bool = True,
        details: dict[str, Any] | None = None,
        error: str | None = None,
    ):
        """Log an adapter operation with full audit context.

        Args:
            operation: The operation being performed (e.g., "create_campaign")
            campaign_id: Internal campaign ID, when known
            external_id: Platform-assigned campaign ID, when known
            success: Whether the operation succeeded
            details: Additional operation details
            error: Error message if operation failed
        """
        message = f"{self.adapter_name}.{operation}"
        if campaign_id:
            message += f" for campaign '{campaign_id}'"
        if external_id:
            message += f" ({self.adapter_name} campaign ID: {external_id})"

        if success:
            audit_logger.info(message)
            if details:
                for key, value in details.items():
                    audit_logger.info(f"  {key}: {value}")
        else:
            audit_logger.error(f"{message} - FAILED")
            if error:
                audit_logger.error(f"  Error: {error}")

        self._write_structured_log(operation, campaign_id, external_id, success, details, error)

    def log_success(self, message: str):
        audit_logger.info(f"✓ {message}")

    def log_warning(self, message: str):
        audit_logger.warning(f"⚠️ {message}")

    def _write_structured_log(
        self,
        operation: str,
        campaign_id: str | None,
        external_id: str | None,
        success: bool,
        details: dict[str, Any] | None,
        error: str | None,
    ):
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "adapter": self.adapter_name,
            "operation": operation,
            "campaign_id": campaign_id,
            "external_id": external_id,
            "success": success,
            "details": details or {},
            "error": error,
        }
        structured_logger.info(json.dumps(entry, default=str))


_audit_loggers: dict[str, AuditLogger] = {}


def get_audit_logger(adapter_name: str) -> AuditLogger:
    """Get or create the audit logger for an adapter."""
    if adapter_name not in _audit_loggers:
        _audit_loggers[adapter_name] = AuditLogger(adapter_name)
    return _audit_loggers[adapter_name]
