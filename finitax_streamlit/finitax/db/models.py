from sqlalchemy import (
    Column, String, Date, DateTime, ForeignKey, Numeric, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from finitax.db.session import Base

def _uuid():
    return str(uuid.uuid4())

Money = Numeric(15, 2, asdecimal=True)

class Organization(Base):
    __tablename__ = "organizations"
    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    nit = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")
    employees = relationship("Employee", back_populates="organization", cascade="all, delete-orphan")

class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    memberships = relationship("OrganizationMember", back_populates="user")

class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (UniqueConstraint("organization_id", "user_id"),)
    id = Column(String, primary_key=True, default=_uuid)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False)  # finitax.auth.permissions.Role value
    created_at = Column(DateTime, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")

class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (UniqueConstraint("organization_id", "dui_number"),)
    id = Column(String, primary_key=True, default=_uuid)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    dui_number = Column(String(9), nullable=False)
    nit_number = Column(String, nullable=True)
    afp_number = Column(String, nullable=True)
    isss_number = Column(String, nullable=True)
    base_salary = Column(Money, nullable=False)
    hire_date = Column(Date, nullable=False)
    termination_date = Column(Date, nullable=True)
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    bank_account = Column(String, nullable=True)
    status = Column(String, nullable=False, default="ACTIVE")  # ACTIVE / INACTIVE / TERMINATED
    created_at = Column(DateTime, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="employees")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

class PayrollRun(Base):
    __tablename__ = "payroll_runs"
    id = Column(String, primary_key=True, default=_uuid)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="DRAFT")  # DRAFT -> APPROVED -> PAID
    total_gross = Column(Money, default=0)
    total_deductions = Column(Money, default=0)
    total_net = Column(Money, default=0)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    details = relationship("PayrollDetail", back_populates="run", cascade="all, delete-orphan")

class PayrollDetail(Base):
    __tablename__ = "payroll_details"
    id = Column(String, primary_key=True, default=_uuid)
    payroll_run_id = Column(String, ForeignKey("payroll_runs.id"), nullable=False, index=True)
    employee_id = Column(String, ForeignKey("employees.id"), nullable=False)
    gross_salary = Column(Money, nullable=False)
    isss_employee = Column(Money, default=0)
    isss_employer = Column(Money, default=0)
    afp_employee = Column(Money, default=0)
    afp_employer = Column(Money, default=0)
    income_tax = Column(Money, default=0)
    other_deductions = Column(Money, default=0)
    net_salary = Column(Money, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    run = relationship("PayrollRun", back_populates="details")
    employee = relationship("Employee")
