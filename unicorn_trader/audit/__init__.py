"""
Audit trail of persona decisions and their executions.
"""

from .audit_logger import AuditEntry, AuditLogger

__all__ = ['AuditEntry', 'AuditLogger']
