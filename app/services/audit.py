from app.services.base import BaseService
from app.models.audit_log import AuditLog
from typing import Any, Optional


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        user_role: Optional[str],
        details: dict,
        ip_address: Optional[str] = None,
    ):
        """
        Create an append-only audit entry inside the caller's transaction.
        The caller commits; a failed action rolls its audit entry back with it.
        """
        def sanitize(obj: Any):
            if hasattr(obj, "model_dump"):
                return obj.model_dump(mode="json")
            if isinstance(obj, dict):
                return {k: sanitize(v) for k, v in obj.items()}
            if isinstance(obj, (list, tuple, set)):
                return [sanitize(i) for i in obj]
            if hasattr(obj, "isoformat"):
                return obj.isoformat()
            return obj

        role = user_role.value if hasattr(user_role, "value") else user_role
        db_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            user_role=role,
            details=sanitize(details),
            ip_address=ip_address,
        )
        self.db.add(db_log)
        self.db.flush()
        return db_log
