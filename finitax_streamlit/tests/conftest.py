import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finitax.auth.members import MembershipManager
from finitax.core.config import settings
from finitax.core.utils import hash_password
from finitax.db.models import User
from finitax.db.session import init_db

@pytest.fixture(autouse=True)
def data_dirs(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_LOG_PATH", str(tmp_path / "audit"))
    monkeypatch.setattr(settings, "LOG_PATH", str(tmp_path / "logs"))
    return tmp_path

@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    db = sessionmaker(bind=engine, autoflush=False)()
    yield db
    db.close()
    engine.dispose()

@pytest.fixture
def org(session):
    """An organization with one member per role plus a user that belongs nowhere."""
    mm = MembershipManager(session)
    res = mm.create_organization_with_admin("Comercial El Roble", "admin@roble.sv", "Clave123!", nit="06142301051012")
    org_id = res["data"]["organization_id"]
    admin_id = res["data"]["user_id"]

    users = {}
    for key, email in [("accountant", "contador@roble.sv"), ("employee", "cajera@roble.sv"), ("outsider", "otro@ceiba.sv")]:
        u = User(email=email, password_hash=hash_password("x"))
        session.add(u)
        users[key] = u
    session.commit()

    members = {}
    members["accountant"] = mm.add_member(admin_id, org_id, "contador@roble.sv", "ACCOUNTANT")["data"]["member_id"]
    members["employee"] = mm.add_member(admin_id, org_id, "cajera@roble.sv", "EMPLOYEE")["data"]["member_id"]
    return {
        "org_id": org_id,
        "admin_id": admin_id,
        "accountant_id": users["accountant"].id,
        "employee_id": users["employee"].id,
        "outsider_id": users["outsider"].id,
        "members": members,
    }
