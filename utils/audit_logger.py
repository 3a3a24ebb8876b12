import json
import logging
from typing import Any, Dict, Optional

# Journal d'audit des tests de permissions
audit_logger = logging.getLogger('abac.audit')
audit_logger.setLevel(logging.INFO)


def configure_audit_logger(enabled: bool = True):
    """Attach the audit handler once; a disabled audit log drops every record."""
    audit_logger.disabled = not enabled
    if enabled and not audit_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - ABAC_AUDIT - %(message)s'))
        audit_logger.addHandler(handler)
        audit_logger.propagate = False


def log_permission_decision(user_id: Optional[str], decision: Dict[str, Any],
                            explanation: str) -> None:
    """
    Logger une décision de permission.

    Args:
        user_id: Identity of the admin who ran the test
        decision: PermissionDecision as a dict
        explanation: Human-readable explanation from the report
    """
    entry = {
        'user_id': user_id,
        'role': decision.get('role'),
        'resource': decision.get('resource'),
        'action': decision.get('action'),
        'state': decision.get('state'),
        'allowed': decision.get('allowed'),
        'condition_result': decision.get('condition_result'),
        'final_result': decision.get('final_result'),
        'explanation': explanation,
    }
    audit_logger.info(f"PERMISSION_TEST {json.dumps(entry, default=str)}")
