"""Audit entry entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ...permissions.entities import GLOBAL_CONTEXT, ContextRef, EntityRef


class AuditAction(str, Enum):
    PERMISSION_GRANTED = "permission.granted"
    PERMISSION_REVOKED = "permission.revoked"
    ROLE_ASSIGNED = "role.assigned"
    ROLE_REMOVED = "role.removed"
    CAPABILITY_ASSIGNED = "capability.assigned"
    CAPABILITY_REMOVED = "capability.removed"
    GRANTS_SYNCED = "grants.synced"
    PERMISSION_CHECK = "permission.check"
    ROLE_CHECK = "role.check"
    ACCESS_DENIED = "access.denied"


@dataclass(frozen=True)
class AuditEntry:
    action: AuditAction
    subject: Optional[EntityRef]
    names: Tuple[str, ...] = ()
    context: ContextRef = GLOBAL_CONTEXT
    result: Optional[bool] = None
    grant_path: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "subject": str(self.subject) if self.subject else None,
            "names": list(self.names),
            "context": None if self.context.is_global else str(self.context),
            "result": self.result,
            "grant_path": self.grant_path,
            "metadata": dict(self.metadata),
            "occurred_at": self.occurred_at.isoformat(),
        }
