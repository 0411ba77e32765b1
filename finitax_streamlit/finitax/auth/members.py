from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from finitax.auth.guard import require_permission
from finitax.auth.permissions import ROLE_META, Role
from finitax.core.audit import AuditLogger
from finitax.core.utils import hash_password, random_password, setup_logging
from finitax.db.models import Organization, OrganizationMember, User

def _fail(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}

class MembershipManager:
    """Organizations, their members and member roles."""

    def __init__(self, session):
        self.session = session

    def _commit(self, org_id: str, what: str) -> bool:
        try:
            self.session.commit()
            return True
        except SQLAlchemyError:
            self.session.rollback()
            setup_logging(org_id).exception("%s failed", what)
            return False

    def _admin_count(self, org_id: str) -> int:
        return (
            self.session.query(OrganizationMember)
            .filter_by(organization_id=org_id, role=Role.ADMIN.value)
            .count()
        )

    def create_organization_with_admin(self, name: str, admin_email: str, admin_password: Optional[str] = None,
                                       nit: Optional[str] = None) -> Dict[str, Any]:
        if nit and self.session.query(Organization).filter_by(nit=nit).first():
            return _fail("Ya existe una empresa con este NIT")

        user = self.session.query(User).filter_by(email=admin_email).one_or_none()
        password = None
        if user is None:
            password = admin_password or random_password()
            user = User(email=admin_email, password_hash=hash_password(password))
            self.session.add(user)

        org = Organization(name=name, nit=nit)
        self.session.add(org)
        self.session.flush()
        self.session.add(OrganizationMember(organization_id=org.id, user_id=user.id, role=Role.ADMIN.value))
        if not self._commit(org.id, "create organization"):
            return _fail("Error al crear la empresa")

        setup_logging(org.id).info("organization %s created by %s", name, admin_email)
        AuditLogger(org.id).log(user.id, "organization.create", "organization", f"Empresa creada: {name}", org.id)
        return {"success": True, "data": {"organization_id": org.id, "user_id": user.id, "password": password}}

    def add_member(self, actor_id: str, org_id: str, email: str, role: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, actor_id, org_id, "members.invite")
        if not rbac["success"]:
            return rbac
        if role not in ROLE_META:
            return _fail("Rol inválido")

        user = self.session.query(User).filter_by(email=email).one_or_none()
        if user is None:
            return _fail("Usuario no encontrado. Debe crear una cuenta primero")
        if user.id == actor_id:
            return _fail("No puedes invitarte a ti mismo")
        exists = self.session.query(OrganizationMember).filter_by(organization_id=org_id, user_id=user.id).first()
        if exists:
            return _fail("Este usuario ya es miembro de la empresa")

        member = OrganizationMember(organization_id=org_id, user_id=user.id, role=Role(role).value)
        self.session.add(member)
        if not self._commit(org_id, "add member"):
            return _fail("Error al agregar miembro")

        AuditLogger(org_id).log_from_context(rbac["context"], "member.add", "member",
                                             f"Miembro agregado: {email}", member.id, {"role": member.role})
        return {"success": True, "data": {"member_id": member.id, "user_id": user.id, "role": member.role}}

    def list_members(self, actor_id: str, org_id: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, actor_id, org_id, "members.view")
        if not rbac["success"]:
            return rbac
        members = (
            self.session.query(OrganizationMember)
            .filter_by(organization_id=org_id)
            .order_by(OrganizationMember.created_at)
            .all()
        )
        return {"success": True, "data": [
            {"member_id": m.id, "user_id": m.user_id, "email": m.user.email, "role": m.role}
            for m in members
        ]}

    def change_role(self, actor_id: str, member_id: str, new_role: str) -> Dict[str, Any]:
        member = self.session.get(OrganizationMember, member_id)
        if member is None:
            return _fail("Miembro no encontrado")
        org_id = member.organization_id
        rbac = require_permission(self.session, actor_id, org_id, "members.change_role")
        if not rbac["success"]:
            return rbac
        if new_role not in ROLE_META:
            return _fail("Rol inválido")
        if member.role == Role.ADMIN.value and new_role != Role.ADMIN and self._admin_count(org_id) <= 1:
            return _fail("Debe haber al menos un administrador")

        member.role = Role(new_role).value
        if not self._commit(org_id, "change role"):
            return _fail("Error al actualizar rol")

        AuditLogger(org_id).log_from_context(rbac["context"], "member.role_change", "member",
                                             f"Rol actualizado a {member.role}", member_id, {"newRole": member.role})
        return {"success": True}

    def remove_member(self, actor_id: str, org_id: str, member_id: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, actor_id, org_id, "members.remove")
        if not rbac["success"]:
            return rbac
        member = self.session.get(OrganizationMember, member_id)
        if member is None or member.organization_id != org_id:
            return _fail("Miembro no encontrado")
        if member.user_id == actor_id and member.role == Role.ADMIN.value and self._admin_count(org_id) <= 1:
            return _fail("No puedes removerte si eres el único administrador")

        self.session.delete(member)
        if not self._commit(org_id, "remove member"):
            return _fail("Error al remover miembro")

        AuditLogger(org_id).log_from_context(rbac["context"], "member.remove", "member", "Miembro removido", member_id)
        return {"success": True}
