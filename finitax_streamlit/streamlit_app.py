import streamlit as st
import pandas as pd
from datetime import date

from finitax.auth.members import MembershipManager
from finitax.auth.permissions import Role, has_permission
from finitax.core.utils import verify_password
from finitax.db.models import User
from finitax.db.session import SessionLocal, init_db
from finitax.payroll.engine import EMPLOYEE_STATUSES, PayrollEngine
from finitax.tax.payroll import calculate_deductions
from finitax.ui.navigation import organization_options, role_label, visible_pages

st.set_page_config(page_title="FiniTax | Contabilidad para El Salvador", layout="wide", page_icon="🇸🇻")

init_db()
session = SessionLocal()

def login_form():
    st.markdown("# 🇸🇻 FiniTax")
    tab1, tab2 = st.tabs(["🔐 Ingresar", "📝 Registrar empresa"])

    with tab1:
        email = st.text_input("Correo", key="login_email")
        pw = st.text_input("Contraseña", type="password", key="login_password")
        if st.button("Ingresar", key="login_btn"):
            user = session.query(User).filter_by(email=email).one_or_none()
            if user and verify_password(pw, user.password_hash):
                st.session_state["user_id"] = user.id
                st.rerun()
            else:
                st.error("Credenciales inválidas")

    with tab2:
        with st.form("registration_form"):
            reg_email = st.text_input("Correo")
            reg_password = st.text_input("Contraseña", type="password")
            company_name = st.text_input("Nombre de la empresa")
            nit = st.text_input("NIT")
            if st.form_submit_button("Registrar"):
                if len(reg_password) < 6:
                    st.error("La contraseña debe tener al menos 6 caracteres")
                elif not reg_email or not company_name:
                    st.error("Complete todos los campos")
                else:
                    res = MembershipManager(session).create_organization_with_admin(
                        company_name, reg_email, reg_password, nit or None)
                    if not res["success"]:
                        st.error(res["error"])
                    else:
                        st.session_state["user_id"] = res["data"]["user_id"]
                        st.rerun()

def page_calculator():
    st.header("Calculadora de planilla")
    gross = st.number_input("Salario bruto mensual (USD)", min_value=0.0, value=1000.0, step=10.0)
    ded = calculate_deductions(str(gross))
    rows = [
        ("ISSS empleado", ded.isss_employee), ("AFP empleado", ded.afp_employee),
        ("ISR retenido", ded.income_tax), ("Total descuentos", ded.total_deductions),
        ("Salario neto", ded.net_salary), ("ISSS patronal", ded.isss_employer),
        ("AFP patronal", ded.afp_employer), ("Costo patronal", ded.employer_cost),
    ]
    st.table(pd.DataFrame([(k, f"${v:,.2f}") for k, v in rows], columns=["Concepto", "Monto"]))

def employee_form(key, employee=None):
    """Inputs for EmployeeInput; returns the data dict on submit, else None."""
    e = employee
    with st.form(key):
        c1, c2 = st.columns(2)
        data = {
            "first_name": c1.text_input("Nombres", value=e.first_name if e else ""),
            "last_name": c2.text_input("Apellidos", value=e.last_name if e else ""),
            "dui_number": c1.text_input("DUI (9 dígitos)", value=e.dui_number if e else ""),
            "nit_number": c2.text_input("NIT", value=(e.nit_number or "") if e else "") or None,
            "afp_number": c1.text_input("NUP AFP", value=(e.afp_number or "") if e else "") or None,
            "isss_number": c2.text_input("Afiliación ISSS", value=(e.isss_number or "") if e else "") or None,
            "base_salary": str(c1.number_input("Salario base (USD)", min_value=0.0, step=10.0,
                                               value=float(e.base_salary) if e else 0.0)),
            "hire_date": c2.date_input("Fecha de ingreso", value=e.hire_date if e else date.today()),
            "department": c1.text_input("Departamento", value=(e.department or "") if e else "") or None,
            "position": c2.text_input("Cargo", value=(e.position or "") if e else "") or None,
            "bank_account": c1.text_input("Cuenta bancaria", value=(e.bank_account or "") if e else "") or None,
        }
        if st.form_submit_button("Guardar"):
            return data
    return None

def page_employees(engine, user_id, role):
    employees = engine.list_employees(user_id)["data"]
    if employees:
        st.dataframe(pd.DataFrame([{
            "Nombre": e.full_name, "DUI": e.dui_number, "Cargo": e.position or "",
            "Salario": float(e.base_salary), "Estado": e.status,
        } for e in employees]), use_container_width=True, hide_index=True)
    else:
        st.info("Aún no hay empleados registrados")

    if not has_permission(role, "payroll.manage_employees"):
        return
    with st.expander("➕ Nuevo empleado"):
        data = employee_form("new_employee")
        if data:
            res = engine.create_employee(user_id, data)
            if res["success"]:
                st.success(f"Empleado creado: {res['data'].full_name}")
                st.rerun()
            st.error(res["error"])

    if employees:
        by_id = {e.id: e for e in employees}
        selected = by_id[st.selectbox("Empleado", list(by_id), format_func=lambda i: by_id[i].full_name)]
        with st.expander("✏️ Editar empleado"):
            data = employee_form(f"edit_{selected.id}", selected)
            if data:
                res = engine.update_employee(user_id, selected.id, data)
                if res["success"]:
                    st.rerun()
                st.error(res["error"])
        status = st.selectbox("Estado", EMPLOYEE_STATUSES, index=EMPLOYEE_STATUSES.index(selected.status))
        if status != selected.status and st.button("Actualizar estado"):
            res = engine.update_employee_status(user_id, selected.id, status,
                                                date.today() if status == "TERMINATED" else None)
            if res["success"]:
                st.rerun()
            st.error(res["error"])

def page_payroll(user_id, org_id, role):
    st.header("Planillas")
    engine = PayrollEngine(org_id, session)
    stats = engine.get_payroll_stats(user_id)
    if not stats["success"]:
        st.error(stats["error"])
        return
    c1, c2, c3 = st.columns(3)
    c1.metric("Empleados activos", stats["data"]["active_employees"])
    c2.metric("Planilla mensual", f"${stats['data']['total_monthly_payroll']:,.2f}")
    c3.metric("Costo patronal", f"${stats['data']['total_employer_cost']:,.2f}")

    runs_tab, employees_tab = st.tabs(["💰 Planillas", "👥 Empleados"])
    with employees_tab:
        page_employees(engine, user_id, role)

    with runs_tab:
        if has_permission(role, "payroll.run"):
            col1, col2 = st.columns(2)
            start = col1.date_input("Inicio", value=date.today().replace(day=1))
            end = col2.date_input("Fin", value=date.today())
            if st.button("Generar planilla"):
                res = engine.create_payroll_run(user_id, start, end)
                if res["success"]:
                    st.success(f"Planilla generada: neto ${res['data']['total_net']:,.2f}")
                else:
                    st.error(res["error"])

        for run in engine.list_payroll_runs(user_id)["data"]:
            with st.expander(f"{run['period_start']} a {run['period_end']} · {run['status']}"):
                frame = engine.run_details_frame(user_id, run["id"])
                if frame["success"]:
                    st.dataframe(frame["data"], use_container_width=True)
                if run["status"] in ("DRAFT", "APPROVED") and has_permission(role, "payroll.approve"):
                    target = "APPROVED" if run["status"] == "DRAFT" else "PAID"
                    if st.button("Aprobar" if target == "APPROVED" else "Marcar pagada", key=f"st_{run['id']}"):
                        res = engine.update_run_status(user_id, run["id"], target)
                        if not res["success"]:
                            st.error(res["error"])
                        st.rerun()
                if run["status"] == "DRAFT" and has_permission(role, "payroll.run"):
                    if st.button("Eliminar", key=f"del_{run['id']}"):
                        res = engine.delete_payroll_run(user_id, run["id"])
                        if not res["success"]:
                            st.error(res["error"])
                        st.rerun()

def page_members(user_id, org_id, role):
    st.header("Miembros")
    mm = MembershipManager(session)
    res = mm.list_members(user_id, org_id)
    if not res["success"]:
        st.error(res["error"])
        return
    roles = [r.value for r in Role]
    for m in res["data"]:
        c1, c2, c3 = st.columns([3, 2, 1])
        c1.write(m["email"])
        new_role = c2.selectbox("Rol", roles, index=roles.index(m["role"]) if m["role"] in roles else 0,
                                format_func=role_label,
                                key=f"role_{m['member_id']}", label_visibility="collapsed",
                                disabled=not has_permission(role, "members.change_role"))
        if m["role"] in roles and new_role != m["role"]:
            out = mm.change_role(user_id, m["member_id"], new_role)
            if not out["success"]:
                st.error(out["error"])
            else:
                st.rerun()
        if has_permission(role, "members.remove") and c3.button("Remover", key=f"rm_{m['member_id']}"):
            out = mm.remove_member(user_id, org_id, m["member_id"])
            if not out["success"]:
                st.error(out["error"])
            else:
                st.rerun()

    if has_permission(role, "members.invite"):
        with st.form("add_member"):
            email = st.text_input("Correo del usuario")
            new_role = st.selectbox("Rol", roles, format_func=role_label)
            if st.form_submit_button("Agregar"):
                out = mm.add_member(user_id, org_id, email, new_role)
                if out["success"]:
                    st.rerun()
                st.error(out["error"])

def main():
    user_id = st.session_state.get("user_id")
    if not user_id:
        login_form()
        return

    user = session.get(User, user_id)
    memberships = user.memberships if user else []
    if not memberships:
        st.warning("No perteneces a ninguna empresa")
        return

    by_org = organization_options(memberships)
    org_id = st.sidebar.selectbox("Empresa", list(by_org), format_func=lambda i: by_org[i].organization.name)
    membership = by_org[org_id]
    role = membership.role
    st.sidebar.caption(role_label(role))

    pages = visible_pages(role)
    labels = [p.label for p in pages] + ["Calculadora"]
    if has_permission(role, "members.view"):
        labels.append("Miembros")
    choice = st.sidebar.radio("Menú", labels)
    if st.sidebar.button("Salir"):
        st.session_state.clear()
        st.rerun()

    if choice == "Calculadora":
        page_calculator()
    elif choice == "Planillas":
        page_payroll(user_id, org_id, role)
    elif choice == "Miembros":
        page_members(user_id, org_id, role)
    else:
        st.header(choice)
        st.info("Módulo disponible en la aplicación web completa.")

main()
