"""Authorization policies and audit trail."""

from portal.security.audit import AuditService, AuditSink
from portal.security.authorization import Actor, Authorizer, RoleBasedAuthorizer

__all__ = [
    "Actor",
    "AuditService",
    "AuditSink",
    "Authorizer",
    "RoleBasedAuthorizer",
]
