from finitax.auth.guard import FORBIDDEN
from finitax.auth.members import MembershipManager
from finitax.core.audit import AuditLogger
from finitax.core.utils import verify_password
from finitax.db.models import OrganizationMember, User

def test_new_organization_has_admin(session):
    res = MembershipManager(session).create_organization_with_admin("Ceiba SA", "dueña@ceiba.sv")
    assert res["success"] is True
    data = res["data"]
    user = session.get(User, data["user_id"])
    assert verify_password(data["password"], user.password_hash)
    member = session.query(OrganizationMember).filter_by(organization_id=data["organization_id"]).one()
    assert member.role == "ADMIN"
    actions = [e["action"] for e in AuditLogger(data["organization_id"]).get_history()]
    assert actions == ["organization.create"]

def test_existing_user_keeps_password(session, org):
    res = MembershipManager(session).create_organization_with_admin("Segunda", "admin@roble.sv")
    assert res["success"] and res["data"]["user_id"] == org["admin_id"]
    assert res["data"]["password"] is None

def test_duplicate_nit(session, org):
    res = MembershipManager(session).create_organization_with_admin("Copia", "x@copia.sv", nit="06142301051012")
    assert res == {"success": False, "error": "Ya existe una empresa con este NIT"}

def test_add_member_checks(session, org):
    mm = MembershipManager(session)
    assert mm.add_member(org["employee_id"], org["org_id"], "otro@ceiba.sv", "EMPLOYEE")["error"] == FORBIDDEN
    assert mm.add_member(org["admin_id"], org["org_id"], "otro@ceiba.sv", "OWNER")["error"] == "Rol inválido"
    assert mm.add_member(org["admin_id"], org["org_id"], "nadie@ceiba.sv", "EMPLOYEE")["error"].startswith("Usuario no encontrado")
    assert mm.add_member(org["admin_id"], org["org_id"], "admin@roble.sv", "EMPLOYEE")["error"] == "No puedes invitarte a ti mismo"
    assert mm.add_member(org["admin_id"], org["org_id"], "cajera@roble.sv", "EMPLOYEE")["error"] == "Este usuario ya es miembro de la empresa"
    res = mm.add_member(org["admin_id"], org["org_id"], "otro@ceiba.sv", "ACCOUNTANT")
    assert res["success"] and res["data"]["role"] == "ACCOUNTANT"

def test_list_members(session, org):
    mm = MembershipManager(session)
    res = mm.list_members(org["admin_id"], org["org_id"])
    assert sorted(m["role"] for m in res["data"]) == ["ACCOUNTANT", "ADMIN", "EMPLOYEE"]
    assert mm.list_members(org["accountant_id"], org["org_id"])["error"] == FORBIDDEN

def test_last_admin_cannot_be_demoted(session, org):
    mm = MembershipManager(session)
    admin_member = get_member(session, org, org["admin_id"])
    res = mm.change_role(org["admin_id"], admin_member.id, "EMPLOYEE")
    assert res["error"] == "Debe haber al menos un administrador"

    assert mm.change_role(org["admin_id"], org["members"]["accountant"], "ADMIN")["success"]
    assert mm.change_role(org["admin_id"], admin_member.id, "EMPLOYEE")["success"]
    assert mm.change_role(org["admin_id"], admin_member.id, "ADMIN")["error"] == FORBIDDEN

def test_change_role_needs_permission(session, org):
    mm = MembershipManager(session)
    assert mm.change_role(org["accountant_id"], org["members"]["employee"], "ADMIN")["error"] == FORBIDDEN
    assert mm.change_role(org["admin_id"], "missing", "ADMIN")["error"] == "Miembro no encontrado"
    assert mm.change_role(org["admin_id"], org["members"]["employee"], "ROOT")["error"] == "Rol inválido"

def test_remove_member(session, org):
    mm = MembershipManager(session)
    admin_member = get_member(session, org, org["admin_id"])
    res = mm.remove_member(org["admin_id"], org["org_id"], admin_member.id)
    assert res["error"] == "No puedes removerte si eres el único administrador"

    assert mm.remove_member(org["admin_id"], org["org_id"], org["members"]["employee"]) == {"success": True}
    assert get_member(session, org, org["employee_id"]) is None
    history = AuditLogger(org["org_id"]).get_history(entity_type="member")
    assert history[0]["action"] == "member.remove"
    assert history[0]["user_id"] == org["admin_id"]

def get_member(session, org, user_id):
    return session.query(OrganizationMember).filter_by(organization_id=org["org_id"], user_id=user_id).one_or_none()
