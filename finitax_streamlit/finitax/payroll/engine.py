"""
Employees and payroll runs for one organization.

Every public method checks the caller's permission first and returns a
result dict: {"success": True, "data": ...} or {"success": False, "error": ...}.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from finitax.auth.guard import require_permission
from finitax.core.audit import AuditLogger
from finitax.core.money import ZERO, round_money
from finitax.core.utils import setup_logging
from finitax.db.models import Employee, PayrollDetail, PayrollRun
from finitax.tax.payroll import calculate_deductions

EMPLOYEE_STATUSES = ("ACTIVE", "INACTIVE", "TERMINATED")

# allowed target status -> required current status
RUN_TRANSITIONS = {"APPROVED": "DRAFT", "PAID": "APPROVED"}

class EmployeeInput(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    dui_number: str = Field(pattern=r"^[0-9]{9}$")
    nit_number: Optional[str] = Field(None, max_length=14)
    afp_number: Optional[str] = Field(None, max_length=50)
    isss_number: Optional[str] = Field(None, max_length=50)
    base_salary: Decimal = Field(gt=0)
    hire_date: date
    department: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    bank_account: Optional[str] = Field(None, max_length=50)

    @field_validator("first_name", "last_name", "dui_number", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

def _fail(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}

DETAIL_COLUMNS = ["employee_name", "dui_number", "gross_salary", "isss_employee", "isss_employer",
                  "afp_employee", "afp_employer", "income_tax", "other_deductions", "net_salary"]

def _run_dict(run: PayrollRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "period_start": run.period_start,
        "period_end": run.period_end,
        "status": run.status,
        "total_gross": run.total_gross,
        "total_deductions": run.total_deductions,
        "total_net": run.total_net,
        "employees": len(run.details),
    }

class PayrollEngine:
    def __init__(self, org_id: str, session):
        self.org_id = org_id
        self.session = session
        self.logger = setup_logging(org_id)
        self.audit = AuditLogger(org_id)

    def _commit(self, what: str) -> bool:
        try:
            self.session.commit()
            return True
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception("%s failed", what)
            return False

    def _get_run(self, run_id: str) -> Optional[PayrollRun]:
        run = self.session.get(PayrollRun, run_id)
        if run is None or run.organization_id != self.org_id:
            return None
        return run

    def _get_employee(self, employee_id: str) -> Optional[Employee]:
        employee = self.session.get(Employee, employee_id)
        if employee is None or employee.organization_id != self.org_id:
            return None
        return employee

    @staticmethod
    def _parse_employee(data: Dict[str, Any]):
        """(values, None) for valid input, (None, message) otherwise."""
        try:
            parsed = EmployeeInput(**data)
        except ValidationError as e:
            err = e.errors()[0]
            return None, f"{err['loc'][0]}: {err['msg']}" if err.get("loc") else "Datos inválidos"
        values = parsed.model_dump()
        values["base_salary"] = round_money(values["base_salary"])
        return values, None

    # ---- employees ----

    def list_employees(self, user_id: str, status: Optional[str] = None) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.view")
        if not rbac["success"]:
            return rbac
        query = self.session.query(Employee).filter_by(organization_id=self.org_id)
        if status:
            query = query.filter_by(status=status)
        return {"success": True, "data": query.order_by(Employee.last_name, Employee.first_name).all()}

    def get_employee(self, user_id: str, employee_id: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.view")
        if not rbac["success"]:
            return rbac
        employee = self._get_employee(employee_id)
        if employee is None:
            return _fail("Empleado no encontrado")
        return {"success": True, "data": employee}

    def create_employee(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.manage_employees")
        if not rbac["success"]:
            return rbac
        values, error = self._parse_employee(data)
        if error:
            return _fail(error)

        employee = Employee(organization_id=self.org_id, status="ACTIVE", **values)
        self.session.add(employee)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return _fail("Ya existe un empleado con ese DUI")
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception("create employee failed")
            return _fail("Error al crear empleado")

        self.logger.info("employee %s created by %s", employee.id, user_id)
        self.audit.log_from_context(rbac["context"], "employee.create", "employee",
                                    f"Empleado creado: {employee.full_name}", employee.id)
        return {"success": True, "data": employee}

    def update_employee(self, user_id: str, employee_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the editable fields of an employee. Status has its own operation."""
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.manage_employees")
        if not rbac["success"]:
            return rbac
        values, error = self._parse_employee(data)
        if error:
            return _fail(error)
        employee = self._get_employee(employee_id)
        if employee is None:
            return _fail("Empleado no encontrado")

        for field, value in values.items():
            setattr(employee, field, value)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return _fail("Ya existe otro empleado con ese DUI")
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception("update employee failed")
            return _fail("Error al actualizar empleado")

        self.audit.log_from_context(rbac["context"], "employee.update", "employee",
                                    f"Empleado actualizado: {employee.full_name}", employee_id)
        return {"success": True, "data": employee}

    def update_employee_status(self, user_id: str, employee_id: str, status: str,
                               termination_date: Optional[date] = None) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.manage_employees")
        if not rbac["success"]:
            return rbac
        if status not in EMPLOYEE_STATUSES:
            return _fail("Estado inválido")
        employee = self._get_employee(employee_id)
        if employee is None:
            return _fail("Empleado no encontrado")

        employee.status = status
        if status == "TERMINATED" and termination_date:
            employee.termination_date = termination_date
        if not self._commit("update employee status"):
            return _fail("Error al actualizar empleado")

        self.audit.log_from_context(rbac["context"], "employee.update", "employee",
                                    f"Empleado cambió estado a {status}", employee_id, {"status": status})
        return {"success": True}

    # ---- payroll runs ----

    def create_payroll_run(self, user_id: str, period_start: date, period_end: date) -> Dict[str, Any]:
        """Create a DRAFT run with one detail row per ACTIVE employee."""
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.run")
        if not rbac["success"]:
            return rbac
        if not period_start or not period_end:
            return _fail("Período requerido")
        if period_end < period_start:
            return _fail("El período termina antes de iniciar")

        employees = (
            self.session.query(Employee)
            .filter_by(organization_id=self.org_id, status="ACTIVE")
            .all()
        )
        if not employees:
            return _fail("No hay empleados activos para generar planilla")

        run = PayrollRun(organization_id=self.org_id, period_start=period_start,
                         period_end=period_end, status="DRAFT", created_by=user_id)
        total_gross = total_deductions = total_net = ZERO
        for emp in employees:
            ded = calculate_deductions(emp.base_salary)
            run.details.append(PayrollDetail(
                employee_id=emp.id,
                gross_salary=ded.gross_salary,
                isss_employee=ded.isss_employee,
                isss_employer=ded.isss_employer,
                afp_employee=ded.afp_employee,
                afp_employer=ded.afp_employer,
                income_tax=ded.income_tax,
                other_deductions=ZERO,
                net_salary=ded.net_salary,
            ))
            total_gross += ded.gross_salary
            total_deductions += ded.total_deductions
            total_net += ded.net_salary

        run.total_gross = round_money(total_gross)
        run.total_deductions = round_money(total_deductions)
        run.total_net = round_money(total_net)
        # run and details go in together or not at all
        self.session.add(run)
        if not self._commit("create payroll run"):
            return _fail("Error al crear planilla")

        self.logger.info("payroll run %s: %d employees, net %s", run.id, len(employees), run.total_net)
        self.audit.log_from_context(
            rbac["context"], "payroll.run", "payroll",
            f"Planilla generada: {period_start} a {period_end} ({len(employees)} empleados, neto ${run.total_net})",
            run.id, {"employees": len(employees), "total_net": run.total_net})
        return {"success": True, "data": _run_dict(run)}

    def list_payroll_runs(self, user_id: str, status: Optional[str] = None) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.view")
        if not rbac["success"]:
            return rbac
        query = self.session.query(PayrollRun).filter_by(organization_id=self.org_id)
        if status:
            query = query.filter_by(status=status)
        runs = query.order_by(PayrollRun.period_end.desc()).all()
        return {"success": True, "data": [_run_dict(r) for r in runs]}

    def update_run_status(self, user_id: str, run_id: str, status: str) -> Dict[str, Any]:
        """DRAFT -> APPROVED -> PAID, nothing else."""
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.approve")
        if not rbac["success"]:
            return rbac
        if status not in RUN_TRANSITIONS:
            return _fail("Estado inválido")
        run = self._get_run(run_id)
        if run is None:
            return _fail("Planilla no encontrada")
        if run.status != RUN_TRANSITIONS[status]:
            if status == "APPROVED":
                return _fail("Solo se pueden aprobar planillas en borrador")
            return _fail("Solo se pueden pagar planillas aprobadas")

        run.status = status
        if not self._commit("update payroll run status"):
            return _fail("Error al actualizar planilla")

        action = "payroll.approve" if status == "APPROVED" else "payroll.paid"
        self.audit.log_from_context(rbac["context"], action, "payroll",
                                    "Planilla aprobada" if status == "APPROVED" else "Planilla pagada",
                                    run_id, {"status": status})
        return {"success": True}

    def delete_payroll_run(self, user_id: str, run_id: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.run")
        if not rbac["success"]:
            return rbac
        run = self._get_run(run_id)
        if run is None:
            return _fail("Planilla no encontrada")
        if run.status != "DRAFT":
            return _fail("Solo se pueden eliminar planillas en borrador")

        self.session.delete(run)
        if not self._commit("delete payroll run"):
            return _fail("Error al eliminar planilla")

        self.audit.log_from_context(rbac["context"], "payroll.delete", "payroll", "Planilla eliminada", run_id)
        return {"success": True}

    def get_payroll_stats(self, user_id: str) -> Dict[str, Any]:
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.view")
        if not rbac["success"]:
            return rbac
        active = (
            self.session.query(Employee)
            .filter_by(organization_id=self.org_id, status="ACTIVE")
            .all()
        )
        total_payroll = sum((e.base_salary for e in active), ZERO)
        total_employer_cost = sum(
            (e.base_salary + calculate_deductions(e.base_salary).employer_cost for e in active), ZERO
        )
        last_run = (
            self.session.query(PayrollRun)
            .filter_by(organization_id=self.org_id)
            .order_by(PayrollRun.created_at.desc())
            .first()
        )
        return {"success": True, "data": {
            "active_employees": len(active),
            "total_monthly_payroll": round_money(total_payroll),
            "total_employer_cost": round_money(total_employer_cost),
            "last_run_status": last_run.status if last_run else None,
        }}

    def _detail_rows(self, run: PayrollRun) -> List[Dict[str, Any]]:
        rows = []
        for d in run.details:
            rows.append({
                "employee_id": d.employee_id,
                "employee_name": d.employee.full_name if d.employee else "Desconocido",
                "dui_number": d.employee.dui_number if d.employee else "",
                "gross_salary": d.gross_salary,
                "isss_employee": d.isss_employee,
                "isss_employer": d.isss_employer,
                "afp_employee": d.afp_employee,
                "afp_employer": d.afp_employer,
                "income_tax": d.income_tax,
                "other_deductions": d.other_deductions,
                "net_salary": d.net_salary,
            })
        return sorted(rows, key=lambda r: r["employee_name"])

    def get_payroll_run(self, user_id: str, run_id: str) -> Dict[str, Any]:
        """A run with its detail rows, employee name and DUI included."""
        rbac = require_permission(self.session, user_id, self.org_id, "payroll.view")
        if not rbac["success"]:
            return rbac
        run = self._get_run(run_id)
        if run is None:
            return _fail("Planilla no encontrada")
        data = _run_dict(run)
        data["details"] = self._detail_rows(run)
        return {"success": True, "data": data}

    def run_details_frame(self, user_id: str, run_id: str) -> Dict[str, Any]:
        """Detail rows of a run as a DataFrame, one row per employee."""
        res = self.get_payroll_run(user_id, run_id)
        if not res["success"]:
            return res
        df = pd.DataFrame(res["data"]["details"], columns=DETAIL_COLUMNS)
        money = DETAIL_COLUMNS[2:]
        df[money] = df[money].astype(float)
        return {"success": True, "data": df}
