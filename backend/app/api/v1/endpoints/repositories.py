import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector
from app.database import get_db
from app.dependencies import get_github_connector, github_http_error
from app.models.user import User
from app.schemas.repository import FileContent, RepositoryFile, RepositoryResponse
from app.services.repository_service import sync_repositories

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[RepositoryResponse])
async def list_repositories(
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    db: Session = Depends(get_db)
):
    """The user's GitHub repositories, synced into the local repository table."""
    try:
        remote_repos = await connector.list_repositories()
    except GitHubAPIError as e:
        raise github_http_error(e)

    synced = sync_repositories(db, current_user, remote_repos)
    repositories = [
        RepositoryResponse(
            id=repository.id,
            name=repository.name,
            url=repository.url,
            is_private=repository.is_private,
            description=remote.get("description"),
            default_branch=remote.get("default_branch"),
            pushed_at=remote.get("pushed_at")
        )
        for repository, remote in synced
    ]

    log.debug(f"Synced {len(repositories)} repositories for {current_user.github_username}")
    return repositories


@router.get("/{owner}/{repo}/files", response_model=List[RepositoryFile])
async def list_repository_files(
    owner: str,
    repo: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    path: str = Query("", description="Directory to list, the repository root by default"),
    ref: Optional[str] = Query(None, description="Branch, tag or commit SHA")
):
    """Entries of one directory of a repository."""
    try:
        files = await connector.list_directory(owner, repo, path, ref=ref)
    except GitHubAPIError as e:
        raise github_http_error(e)
    log.debug(f"Listed {len(files)} entries of {owner}/{repo}/{path} for {current_user.github_username}")
    return files


@router.get("/{owner}/{repo}/content", response_model=FileContent)
async def get_repository_file_content(
    owner: str,
    repo: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    path: str = Query(..., min_length=1),
    ref: Optional[str] = Query(None, description="Branch, tag or commit SHA")
):
    """Decoded content of one file. A directory path is a 400."""
    try:
        return await connector.get_file_content(owner, repo, path, ref=ref)
    except GitHubAPIError as e:
        raise github_http_error(e)
