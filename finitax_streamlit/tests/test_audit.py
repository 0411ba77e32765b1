from datetime import datetime, timedelta
import json

from finitax.auth.guard import AuthContext
from finitax.core.audit import AuditLogger
from finitax.core.config import settings

def test_log_and_history():
    audit = AuditLogger("org-1")
    assert audit.log("u1", "employee.create", "employee", "Empleado creado", "e1", {"dui": "012345678"})
    assert audit.log_from_context(AuthContext("u2", "org-1", "ADMIN"), "payroll.run", "payroll", "Planilla generada")
    history = audit.get_history()
    assert [e["action"] for e in history] == ["payroll.run", "employee.create"]
    assert history[1]["metadata"] == {"dui": "012345678"}
    assert [e["user_id"] for e in audit.get_history(entity_type="payroll")] == ["u2"]

def test_history_is_per_org():
    AuditLogger("org-a").log("u1", "member.add", "member", "x")
    assert AuditLogger("org-b").get_history() == []

def test_history_skips_old_and_broken_lines():
    audit = AuditLogger("org-1")
    audit.log("u1", "member.add", "member", "nuevo")
    old = {"timestamp": (datetime.now() - timedelta(days=90)).isoformat(), "action": "member.remove",
           "entity_type": "member"}
    with open(audit.log_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(old) + "\n")
        f.write("{not json\n")
    assert [e["action"] for e in audit.get_history()] == ["member.add"]
    assert len(audit.get_history(days=365)) == 2

def test_write_failure_does_not_raise(data_dirs, monkeypatch):
    blocker = data_dirs / "blocked"
    blocker.write_text("not a directory")
    monkeypatch.setattr(settings, "AUDIT_LOG_PATH", str(blocker))
    assert AuditLogger("org-1").log("u1", "member.add", "member", "x") is False
