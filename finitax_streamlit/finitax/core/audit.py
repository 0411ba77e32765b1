"""
Audit trail of user actions per organization.
Entries are appended to a JSONL file; a failed write is logged and never
breaks the action that triggered it.
"""
import json
from pathlib import Path
from typing import Dict, List, Any, Optional
from datetime import datetime, timedelta

from finitax.core.config import settings
from finitax.core.utils import check_file_name, setup_logging

AUDIT_ACTION_META = {
    "organization.create": "Empresa creada",
    "member.add": "Miembro agregado",
    "member.remove": "Miembro removido",
    "member.role_change": "Rol actualizado",
    "employee.create": "Empleado creado",
    "employee.update": "Empleado actualizado",
    "payroll.run": "Planilla generada",
    "payroll.approve": "Planilla aprobada",
    "payroll.paid": "Planilla pagada",
    "payroll.delete": "Planilla eliminada",
}

class AuditLogger:
    """Append-only audit log for one organization."""

    def __init__(self, org_id: str):
        self.org_id = org_id
        self.audit_dir = Path(settings.AUDIT_LOG_PATH)
        self.log_file = self.audit_dir / f"{check_file_name(org_id)}_audit.jsonl"
        self.logger = setup_logging(org_id)

    def log(
        self,
        user_id: Optional[str],
        action: str,
        entity_type: str,
        description: str,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Record one action. Returns False when the entry could not be written."""
        entry = {
            'timestamp': datetime.now().isoformat(),
            'organization_id': self.org_id,
            'user_id': user_id,
            'action': action,
            'entity_type': entity_type,
            'entity_id': entity_id,
            'description': description,
            'metadata': metadata or {}
        }
        try:
            self.audit_dir.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(entry, default=str) + '\n')
        except OSError:
            self.logger.exception("audit write failed for %s", action)
            return False
        return True

    def log_from_context(self, context, action: str, entity_type: str, description: str,
                         entity_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Same as log(), taking the user from an AuthContext returned by the guards."""
        return self.log(context.user_id, action, entity_type, description, entity_id, metadata)

    def get_history(self, entity_type: Optional[str] = None, days: int = 30) -> List[Dict[str, Any]]:
        """Entries of the last N days, newest first."""
        if not self.log_file.exists():
            return []

        cutoff = datetime.now() - timedelta(days=days)
        history = []
        with open(self.log_file, 'r', encoding='utf-8') as f:
            for line in f:
                try:
                    entry = json.loads(line)
                    ts = datetime.fromisoformat(entry['timestamp'])
                except (json.JSONDecodeError, KeyError, ValueError):
                    continue
                if ts < cutoff:
                    continue
                if entity_type is None or entry.get('entity_type') == entity_type:
                    history.append(entry)

        history.sort(key=lambda x: x['timestamp'], reverse=True)
        return history
