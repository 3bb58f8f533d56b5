from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.models.audit_log import AuditLog
from app.utils.audit_logger import create_audit_log, get_client_ip


def make_request(headers=None, host="10.0.0.5"):
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    return request


def test_client_ip_prefers_forwarded_for():
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "198.51.100.2"})
    assert get_client_ip(request) == "203.0.113.7"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert get_client_ip(make_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert get_client_ip(make_request()) == "10.0.0.5"
    assert get_client_ip(None) is None


def test_writes_entry(db):
    request = make_request({"User-Agent": "pytest"})

    entry = create_audit_log(db, request, action="commit_scheduled", entity_type="scheduled_commit", entity_id=3,
                             user="octocat", details={"repository": "octocat/streak"})

    stored = db.query(AuditLog).one()
    assert stored.id == entry.id
    assert stored.ip_address == "10.0.0.5"
    assert stored.user_agent == "pytest"
    assert stored.details == {"repository": "octocat/streak"}


def test_background_entry_without_request(db):
    entry = create_audit_log(db, None, action="sweep_completed", user="scheduler")
    assert entry.ip_address is None
    assert entry.user_agent is None


def test_write_failure_propagates():
    db = MagicMock()
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))

    with pytest.raises(OperationalError):
        create_audit_log(db, None, action="login_success", user="octocat")
