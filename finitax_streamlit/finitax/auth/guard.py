"""
Request-side access checks.

Order is always: authenticated user -> membership in the organization ->
permission model. The permission model is never asked about a user whose
role could not be established.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from finitax.auth.permissions import Role, has_any_permission, has_permission
from finitax.core.utils import setup_logging
from finitax.db.models import OrganizationMember

NOT_AUTHENTICATED = "No autenticado"
NO_ACCESS = "No tienes acceso a esta empresa"
FORBIDDEN = "No tienes permisos para realizar esta acción"
ADMIN_ONLY = "Solo administradores pueden realizar esta acción"

@dataclass(frozen=True)
class AuthContext:
    user_id: str
    org_id: str
    role: str

def get_org_membership(session, user_id: str, org_id: str) -> Optional[Dict[str, str]]:
    member = (
        session.query(OrganizationMember)
        .filter_by(organization_id=org_id, user_id=user_id)
        .one_or_none()
    )
    if member is None:
        return None
    return {"member_id": member.id, "role": member.role}

def require_org_membership(session, user_id: Optional[str], org_id: str) -> Optional[AuthContext]:
    if not user_id:
        return None
    membership = get_org_membership(session, user_id, org_id)
    if membership is None:
        return None
    return AuthContext(user_id=user_id, org_id=org_id, role=membership["role"])

def _check(session, user_id, org_id, allowed, denied_message, what) -> Dict[str, Any]:
    if not user_id:
        return {"success": False, "error": NOT_AUTHENTICATED}
    context = require_org_membership(session, user_id, org_id)
    if context is None:
        setup_logging().warning("user %s is not a member of %r", user_id, org_id)
        return {"success": False, "error": NO_ACCESS}
    if not allowed(context.role):
        setup_logging(context.org_id).warning("denied %s to user %s (%s)", what, user_id, context.role)
        return {"success": False, "error": denied_message}
    return {"success": True, "context": context}

def require_permission(session, user_id: Optional[str], org_id: str, permission: str) -> Dict[str, Any]:
    return _check(session, user_id, org_id,
                  lambda role: has_permission(role, permission), FORBIDDEN, permission)

def require_any_permission(session, user_id: Optional[str], org_id: str, permissions: Iterable[str]) -> Dict[str, Any]:
    permissions = [permissions] if isinstance(permissions, str) else list(permissions)
    return _check(session, user_id, org_id,
                  lambda role: has_any_permission(role, permissions), FORBIDDEN, permissions)

def require_admin(session, user_id: Optional[str], org_id: str) -> Dict[str, Any]:
    return _check(session, user_id, org_id,
                  lambda role: role == Role.ADMIN, ADMIN_ONLY, "admin")
