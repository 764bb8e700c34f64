import logging
from typing import Any

audit_logger = logging.getLogger("app.audit")

def log_user_action(user_id: int, action: str, entity: str, entity_id: Any = None, **details: Any):
    """Append one line to the audit trail, e.g. user=7 action=receive entity=purchase_order id=3 units=4"""
    parts = [
        f"user={user_id}",
        f"action={action}",
        f"entity={entity}",
        f"id={entity_id if entity_id is not None else '-'}",
    ]
    parts.extend(f"{key}={value}" for key, value in sorted(details.items()) if value is not None)
    audit_logger.info(" ".join(parts))
