"""
Role based permission classes for the billing desks.

``super`` passes every check.
"""
from rest_framework.permissions import BasePermission


class HasBillingRole(BasePermission):
    """Allow users whose role is in ``allowed_roles``."""
    allowed_roles: frozenset = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        role = getattr(user, "role", None)
        return role == "super" or role in self.allowed_roles


class CanGenerateBills(HasBillingRole):
    """billing desk and administrators."""
    allowed_roles = frozenset({"billing", "admin"})


class CanPreviewBills(HasBillingRole):
    allowed_roles = frozenset({"billing", "admin", "doctor"})


class CanViewBills(HasBillingRole):
    allowed_roles = frozenset({"billing", "admin", "receptionist"})


class CanViewVisitBills(HasBillingRole):
    allowed_roles = frozenset({"billing", "admin", "doctor", "receptionist"})


class CanRecordPayments(HasBillingRole):
    allowed_roles = frozenset({"billing", "admin", "receptionist"})


class CanViewOutstanding(HasBillingRole):
    allowed_roles = frozenset({"billing", "admin"})
