from datetime import datetime, timedelta

import pytest

from app.auth import create_user_token
from app.constants.commit_status import CommitStatus
from app.models.repository import Repository
from app.models.scheduled_commit import ScheduledCommit

URL = "/api/v1/scheduled-commits/"


@pytest.fixture
def commits(db, repository):
    other_repo = Repository(user_id=repository.user_id, name="octocat/other", url="https://github.com/octocat/other")
    db.add(other_repo)
    db.commit()
    rows = []
    for offset, status, repo in [
        (3, CommitStatus.PENDING, repository),
        (1, CommitStatus.PENDING, repository),
        (2, CommitStatus.COMPLETED, repository),
        (4, CommitStatus.PENDING, other_repo),
    ]:
        row = ScheduledCommit(
            repository_id=repo.id,
            commit_message=f"commit +{offset}",
            file_path="streak.md",
            file_content="x",
            scheduled_time=datetime.now() + timedelta(days=offset),
            status=status.value,
            attempts=0
        )
        db.add(row)
        rows.append(row)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


def test_lists_pending_by_default_in_time_order(client, auth_headers, commits):
    response = client.get(URL, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert [c["commitMessage"] for c in data] == ["commit +1", "commit +3", "commit +4"]
    assert data[0]["repository"]["name"] == "octocat/streak"


def test_status_all(client, auth_headers, commits):
    response = client.get(URL, params={"status": "all"}, headers=auth_headers)
    assert len(response.json()) == 4


def test_filter_by_status_and_repository(client, auth_headers, commits):
    response = client.get(URL, params={"status": "completed", "repository": "octocat/streak"}, headers=auth_headers)
    data = response.json()
    assert len(data) == 1
    assert data[0]["status"] == "completed"


def test_invalid_status(client, auth_headers, commits):
    response = client.get(URL, params={"status": "bogus"}, headers=auth_headers)
    assert response.status_code == 400


def test_other_users_commits_hidden(client, commits, user_factory):
    other = user_factory("hubot", 2)
    response = client.get(URL, headers={"Authorization": f"Bearer {create_user_token(other)}"})
    assert response.json() == []


def test_cancel_pending(client, db, auth_headers, commits):
    response = client.delete(f"{URL}{commits[0].id}", headers=auth_headers)

    assert response.status_code == 204
    assert db.query(ScheduledCommit).filter(ScheduledCommit.id == commits[0].id).first() is None


def test_cancel_missing(client, auth_headers, commits):
    response = client.delete(f"{URL}9999", headers=auth_headers)
    assert response.status_code == 404


def test_cancel_not_pending(client, auth_headers, commits):
    response = client.delete(f"{URL}{commits[2].id}", headers=auth_headers)
    assert response.status_code == 409


def test_cancel_other_users_commit(client, commits, user_factory):
    other = user_factory("hubot", 2)
    response = client.delete(
        f"{URL}{commits[0].id}", headers={"Authorization": f"Bearer {create_user_token(other)}"}
    )
    assert response.status_code == 403
