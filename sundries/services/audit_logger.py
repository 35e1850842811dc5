from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from sundries.models.audit import AuditLog


def log_audit(
    db: Session,
    *,
    user_id: Optional[int],
    action: str,  # "CREATE" | "UPDATE" | "DELETE" | "RECONCILE" | "INVOICE"
    table_name: str,
    record_id: Any,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Stage one audit event on the caller's session.

    Does not commit: the row lands in the same transaction as the change it
    describes, and disappears with it on rollback.
    """
    log = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=str(record_id),
        old_values=old_values,
        new_values=new_values,
    )
    db.add(log)
    return log
