from datetime import date, timedelta

from app.connectors.exceptions import GitHubAPIError
from app.models.scheduled_commit import ScheduledCommit


def commit_body(day, time="09:00"):
    return {
        "repoName": "streak",
        "filePath": "streak.md",
        "commitMessage": "Daily update",
        "fileContent": "still going",
        "date": day.isoformat(),
        "time": time,
    }


def test_schedule_single_commit(client, db, auth_headers):
    day = date.today() + timedelta(days=3)
    response = client.post("/api/v1/commits/schedule", json=commit_body(day), headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["repository"] == "octocat/streak"
    stored = db.query(ScheduledCommit).one()
    assert stored.id == data["commitId"]
    assert stored.scheduled_time.date() == day
    assert stored.status == "pending"


def test_schedule_in_the_past_rejected(client, db, auth_headers):
    day = date.today() - timedelta(days=1)
    response = client.post("/api/v1/commits/schedule", json=commit_body(day), headers=auth_headers)

    assert response.status_code == 400
    assert db.query(ScheduledCommit).count() == 0


def test_schedule_missing_field(client, auth_headers):
    body = commit_body(date.today() + timedelta(days=1))
    del body["fileContent"]
    response = client.post("/api/v1/commits/schedule", json=body, headers=auth_headers)
    assert response.status_code == 422


def test_backdated_commit(client, auth_headers, fake_github):
    day = date(2024, 5, 17)
    response = client.post("/api/v1/commits/backdated", json=commit_body(day, "14:45"), headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["commitSha"] == "file1"
    assert data["timestamp"].startswith("2024-05-17T14:45:00")
    written = fake_github.put_files[0]
    assert written["repository"] == "octocat/streak"
    assert written["content"] == "still going"
    assert written["author"]["date"] == written["committer"]["date"] == data["timestamp"]


def test_backdated_commit_github_error(client, auth_headers, fake_github):
    fake_github.put_file_errors = [GitHubAPIError("Not Found", status_code=404)]
    response = client.post(
        "/api/v1/commits/backdated", json=commit_body(date(2024, 5, 17)), headers=auth_headers
    )
    assert response.status_code == 404


def test_backdated_commit_upstream_failure(client, auth_headers, fake_github):
    fake_github.put_file_errors = [GitHubAPIError("unavailable", status_code=503)]
    response = client.post(
        "/api/v1/commits/backdated", json=commit_body(date(2024, 5, 17)), headers=auth_headers
    )
    assert response.status_code == 502
