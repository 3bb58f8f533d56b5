from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.api.v1.endpoints import cron
from app.config import settings
from app.constants.commit_status import CommitStatus
from app.models.scheduled_commit import ScheduledCommit
from app.services.sweep_service import ScheduledCommitSweeper

URL = "/api/v1/cron/process-scheduled-commits"


@pytest.fixture
def fake_sweeper(monkeypatch, fake_github):
    monkeypatch.setattr(
        cron, "ScheduledCommitSweeper",
        lambda db: ScheduledCommitSweeper(db, connector_factory=lambda config: fake_github, sleep=AsyncMock())
    )
    return fake_github


def test_missing_secret_rejected(client):
    response = client.post(URL)
    assert response.status_code == 401


def test_wrong_secret_rejected(client):
    response = client.post(URL, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_unconfigured_secret_is_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", None)
    response = client.post(URL, headers={"Authorization": "Bearer test-cron-secret"})
    assert response.status_code == 500


def test_bearer_secret_accepted(client, fake_sweeper):
    response = client.post(URL, headers={"Authorization": f"Bearer {settings.cron_secret}"})
    assert response.status_code == 200
    assert response.json()["processed"] == 0


def test_query_secret_accepted(client, fake_sweeper):
    response = client.post(URL, params={"token": settings.cron_secret})
    assert response.status_code == 200


def test_processes_due_commits(client, db, repository, fake_sweeper):
    scheduled = ScheduledCommit(
        repository_id=repository.id,
        commit_message="Scheduled",
        file_path="streak.md",
        file_content="content",
        scheduled_time=datetime.now() - timedelta(minutes=1),
        status=CommitStatus.PENDING.value,
        attempts=0
    )
    db.add(scheduled)
    db.commit()

    response = client.post(URL, headers={"Authorization": f"Bearer {settings.cron_secret}"})

    assert response.status_code == 200
    data = response.json()
    assert data["processed"] == 1
    assert data["results"][0]["status"] == "completed"
    assert data["results"][0]["commitSha"] == "file1"
    assert data["results"][0]["repository"] == "octocat/streak"
    db.expire_all()
    assert db.query(ScheduledCommit).one().status == CommitStatus.COMPLETED.value


def test_status_disabled(client):
    response = client.get("/api/v1/cron/status")
    assert response.status_code == 200
    data = response.json()
    assert data["enabled"] is False
    assert data["running"] is False
    assert data["nextRuns"] == []


def test_status_enabled_lists_next_runs(client, monkeypatch):
    monkeypatch.setattr(settings, "sweep_enabled", True)
    monkeypatch.setattr(settings, "sweep_cron", "0 * * * *")
    response = client.get("/api/v1/cron/status")
    data = response.json()
    assert data["enabled"] is True
    assert len(data["nextRuns"]) == 3
    assert all(datetime.fromisoformat(run).minute == 0 for run in data["nextRuns"])
