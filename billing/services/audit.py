from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from billing.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Record who did what to which billing object.

    Runs inside the caller's transaction: a bill or payment rolled back
    leaves no audit row behind.
    """
    actor = user if isinstance(user, User) else None
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )
