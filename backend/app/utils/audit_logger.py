"""Audit logging helper for consistent audit trail creation."""

from typing import Optional, Dict, Any
from fastapi import Request
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog


def get_client_ip(request: Optional[Request]) -> Optional[str]:
    """
    Real client IP behind a reverse proxy.

    X-Forwarded-For (first entry) wins over X-Real-IP, which wins over the
    socket peer address.
    """
    if request is None:
        return None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return None


def create_audit_log(
    db: Session,
    request: Optional[Request],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    user: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Create an audit log entry.

    `request` may be None for background work such as the scheduled sweep.

    Usage:
        create_audit_log(
            db, request,
            action="bulk_schedule",
            entity_type="repository",
            entity_id=repository.id,
            user=current_user.github_username,
            details={"total_scheduled": 4}
        )
    """
    audit_log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user=user,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent") if request is not None else None
    )
    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)

    return audit_log
