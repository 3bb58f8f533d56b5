import os

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", "ZmDfcTF7_60GrrY167zsiPd67pEvs0aGOv2oasOM1Pg=")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("SWEEP_ENABLED", "false")

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.auth import create_user_token
from app.database import Base, SessionLocal, engine, get_db
from app.dependencies import get_github_connector
from app.main import app
from app.models.repository import Repository
from app.models.user import User
from app.utils.encrypt import encrypt_token


class FakeGitHubConnector:
    """In-memory stand-in for GitHubConnector that records every write."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.head_sha = "head0"
        self.head_tree = "tree0"
        self.blobs: List[str] = []
        self.trees: List[Dict[str, Any]] = []
        self.commits: List[Dict[str, Any]] = []
        self.ref_updates: List[Dict[str, Any]] = []
        self.put_files: List[Dict[str, Any]] = []
        self.failing_blob_contents: set = set()
        self.put_file_errors: List[Exception] = []
        self.before_put_file = None
        self.repositories: List[Dict[str, Any]] = []
        self.contributions: Dict[str, Any] = {}
        self.profile: Dict[str, Any] = {}
        self.files: Dict[str, Any] = {}
        self.errors: Dict[str, Exception] = {}
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        self.closed = True

    async def get_default_branch(self, owner, repo):
        return "main"

    async def get_branch_head(self, owner, repo, branch):
        return self.head_sha

    async def get_commit(self, owner, repo, sha):
        return {"sha": sha, "tree": {"sha": self.head_tree}}

    async def create_blob(self, owner, repo, content):
        if content in self.failing_blob_contents:
            from app.connectors.exceptions import GitHubAPIError
            raise GitHubAPIError("blob rejected", status_code=422)
        self.blobs.append(content)
        return f"blob{len(self.blobs)}"

    async def create_tree(self, owner, repo, base_tree, blobs):
        self.trees.append({"base_tree": base_tree, "blobs": dict(blobs)})
        return f"tree{len(self.trees)}"

    async def create_commit(self, owner, repo, message, tree_sha, parents, author, committer=None):
        sha = f"commit{len(self.commits) + 1}"
        self.commits.append({
            "sha": sha, "message": message, "tree": tree_sha,
            "parents": list(parents), "author": author, "committer": committer or author
        })
        return {"sha": sha}

    async def update_branch_ref(self, owner, repo, branch, sha, force=True):
        self.ref_updates.append({"branch": branch, "sha": sha, "force": force})
        return {"object": {"sha": sha}}

    async def get_file_sha(self, owner, repo, path, ref=None):
        return None

    async def put_file(self, owner, repo, path, content, message, sha=None, author=None, committer=None, branch=None):
        if self.before_put_file is not None:
            self.before_put_file(path)
        if self.put_file_errors:
            raise self.put_file_errors.pop(0)
        self.put_files.append({
            "repository": f"{owner}/{repo}", "path": path, "content": content,
            "message": message, "author": author, "committer": committer
        })
        sha = f"file{len(self.put_files)}"
        return {"sha": sha, "html_url": f"https://github.com/{owner}/{repo}/commit/{sha}"}

    def _raise_for(self, operation):
        if operation in self.errors:
            raise self.errors[operation]

    async def get_authenticated_user(self):
        self._raise_for("get_authenticated_user")
        return self.profile

    async def list_repositories(self, per_page=100):
        self._raise_for("list_repositories")
        return self.repositories

    async def fetch_contributions(self, username, from_dt, to_dt):
        self._raise_for("fetch_contributions")
        return self.contributions

    async def list_directory(self, owner, repo, path="", ref=None):
        self._raise_for("list_directory")
        prefix = f"{path.strip('/')}/" if path.strip("/") else ""
        entries = {}
        for file_path, content in self.files.items():
            if not file_path.startswith(prefix):
                continue
            name, _, rest = file_path[len(prefix):].partition("/")
            entries[name] = {
                "name": name,
                "path": prefix + name,
                "type": "dir" if rest else "file",
                "sha": f"sha-{prefix + name}",
                "size": 0 if rest else len(content)
            }
        return sorted(entries.values(), key=lambda e: e["name"])

    async def get_file_content(self, owner, repo, path, ref=None):
        self._raise_for("get_file_content")
        from app.connectors.exceptions import GitHubAPIError
        if path not in self.files:
            raise GitHubAPIError("Not Found", status_code=404)
        content = self.files[path]
        return {
            "content": content, "sha": f"sha-{path}", "name": path.rsplit("/", 1)[-1],
            "path": path, "size": len(content)
        }


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Override dependency for test database session
def override_get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def db() -> Session:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_github() -> FakeGitHubConnector:
    connector = FakeGitHubConnector()
    app.dependency_overrides[get_github_connector] = lambda: connector
    yield connector
    app.dependency_overrides.pop(get_github_connector, None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _make_user(db: Session, username: str = "octocat", github_id: int = 1) -> User:
    user = User(
        github_id=github_id,
        github_username=username,
        github_access_token=encrypt_token(f"gho_{username}")
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db: Session) -> User:
    return _make_user(db)


@pytest.fixture
def user_factory(db: Session):
    def factory(username: str, github_id: int) -> User:
        return _make_user(db, username, github_id)
    return factory


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def repository(db: Session, user: User) -> Repository:
    repo = Repository(user_id=user.id, name="octocat/streak", url="https://github.com/octocat/streak")
    db.add(repo)
    db.commit()
    db.refresh(repo)
    return repo
